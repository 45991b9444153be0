"""Middleware for authentication and per-request user context."""
from functools import wraps
from urllib.parse import urlparse
from flask import session, g, redirect, url_for, flash, request, current_app, abort
from app.database import get_session
from app.models import UserProfile


def load_user():
    """
    Load the current user into g (Flask's per-request global).

    Called before each request. Sets g.user (or None) and g.is_admin.
    """
    g.user = None
    g.is_admin = False

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        db_session = get_session()
        user = db_session.query(UserProfile).filter_by(id=user_id, active=True).first()
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_user: {e}")
        return

    if user:
        g.user = user
        g.is_admin = user.is_admin
    else:
        session.pop('user_id', None)


def require_login(f):
    """
    Decorator: Require user to be logged in.

    Redirects to the login page with a next parameter to return afterwards.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.user is None:
            flash('Please sign in to continue.', 'warning')
            return redirect(url_for('auth.login', next=request.url))
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """
    Decorator: Require an admin profile.

    Anonymous users go to login; signed-in customers get a 403 page.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.user is None:
            flash('Please sign in as an administrator.', 'warning')
            return redirect(url_for('auth.login', next=request.url))
        if not g.user.is_admin:
            current_app.logger.warning(f"[ADMIN] Access denied for {g.user.email} to {request.path}")
            abort(403)
        return f(*args, **kwargs)
    return decorated_function


def safe_next_url(next_url: str) -> str:
    """Return ``next_url`` if it stays on this site, else an empty string."""
    if not next_url or '\\' in next_url:
        return ''
    parsed = urlparse(next_url)
    if parsed.scheme not in ('', 'http', 'https'):
        return ''
    if parsed.netloc and parsed.netloc != request.host:
        return ''
    return next_url
