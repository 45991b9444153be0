"""WSGI entry point for Gunicorn: ``gunicorn wsgi:app``."""
import sys
import os

# Ensure the app directory is in the Python path
sys.path.insert(0, os.path.dirname(__file__))

from app import create_app

app = create_app(os.getenv('APP_CONFIG', 'config.Config'))

if __name__ == "__main__":
    app.run(host=os.getenv('HOST', '127.0.0.1'), port=int(os.getenv('PORT', '5000')))
