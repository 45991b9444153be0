"""Flask application factory."""
from flask import Flask, g, render_template, request, redirect, url_for, flash, jsonify, session
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
from app.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # CSRF protection for every form post
    CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        if request.is_json or request.headers.get('HX-Request'):
            return jsonify({'status': 'error', 'message': 'Your session has expired. Please reload the page.'}), 400
        flash('Your session expired or the form was invalid. Please try again.', 'warning')
        return redirect(request.referrer or '/')

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Flask-Mail for order confirmations and campaigns
    from app.services.email_service import init_mail
    init_mail(app)

    # Redis cache for catalog and navigation
    from app.services.cache_service import init_cache
    init_cache(app)

    # Prometheus request instrumentation
    from app.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production' or app.config.get('FLASK_ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,
            x_proto=1,
            x_host=1,
            x_port=1,
            x_prefix=0
        )

    init_db(app)

    # Jinja filters
    from app.utils.formatters import money_gbp, percent, date_uk, datetime_uk
    from app.utils.status_badges import badge_for
    app.jinja_env.filters['money_gbp'] = money_gbp
    app.jinja_env.filters['percent'] = percent
    app.jinja_env.filters['date_uk'] = date_uk
    app.jinja_env.filters['datetime_uk'] = datetime_uk
    app.jinja_env.filters['badge'] = lambda status, kind: badge_for(kind, status)

    from app.middleware import load_user

    @app.before_request
    def before_request_handler():
        """Load the signed-in user for each request."""
        load_user()

    # Error Handlers
    from app.exceptions import StoreError

    @app.errorhandler(StoreError)
    def handle_store_error(error):
        """Handle custom application exceptions."""
        app.logger.error(f"StoreError [{error.status_code}]: {error.message}")

        is_htmx = request.headers.get('HX-Request') == 'true'
        if is_htmx:
            return render_template('partials/_alert.html', message=error.message, category='danger'), error.status_code

        if request.is_json:
            return jsonify(error.to_dict()), error.status_code

        flash(error.message, 'danger')
        return redirect(request.referrer or url_for('main.home'))

    @app.errorhandler(403)
    def forbidden_error(error):
        if request.is_json:
            return jsonify({'status': 'error', 'message': 'Forbidden'}), 403
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def not_found_error(error):
        if request.is_json:
            return jsonify({'status': 'error', 'message': 'Not Found'}), 404
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        # Aborts (405, 413, ...) keep their own response
        if isinstance(error, HTTPException) and error.code != 500:
            return error

        app.logger.exception(f"Unhandled Exception: {error}")

        if request.is_json:
            return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

        is_htmx = request.headers.get('HX-Request') == 'true'
        if is_htmx:
            return render_template('partials/_alert.html', message='Something went wrong.', category='danger'), 500

        return render_template('errors/500.html'), 500

    @app.context_processor
    def inject_store_context():
        """Store name, signed-in user and bag count for every template."""
        from app.services.cart_service import CART_SESSION_KEY
        items = (session.get(CART_SESSION_KEY) or {}).get('items', [])
        return {
            'store_name': app.config.get('STORE_NAME', 'Lumicea'),
            'site_url': app.config.get('SITE_URL', '').rstrip('/'),
            'current_user': g.get('user'),
            'cart_count': sum(item.get('quantity', 0) for item in items),
        }

    @app.context_processor
    def inject_navigation_and_seo():
        """Top-level categories for the menu and SEO overrides for the current path."""
        from app.services.navigation_service import navigation_categories, seo_meta_for
        try:
            return {
                'nav_categories': navigation_categories(),
                'seo_meta': seo_meta_for(request.path),
            }
        except Exception as e:
            app.logger.warning(f"Error loading navigation context: {e}")
            return {'nav_categories': [], 'seo_meta': None}

    # Register blueprints
    from app.blueprints.auth import auth_bp
    from app.blueprints.main import main_bp
    from app.blueprints.shop import shop_bp
    from app.blueprints.checkout import checkout_bp
    from app.blueprints.admin import admin_bp
    from app.blueprints.admin_catalog import admin_catalog_bp
    from app.blueprints.admin_marketing import admin_marketing_bp
    from app.blueprints.admin_settings import admin_settings_bp
    from app.blueprints.admin_content import admin_content_bp
    from app.blueprints.metrics import metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(shop_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(admin_catalog_bp)
    app.register_blueprint(admin_marketing_bp)
    app.register_blueprint(admin_settings_bp)
    app.register_blueprint(admin_content_bp)
    app.register_blueprint(metrics_bp)

    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")
    app.logger.info(f"MAIL_DEFAULT_SENDER={app.config.get('MAIL_DEFAULT_SENDER')}")

    return app
