"""
Authentication blueprint for storefront customers and admins.
Handles registration, login and logout with session-based auth.
"""

from flask import Blueprint, render_template, request, redirect, url_for, flash, session, g, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import Union, List
from app.database import db_session
from app.middleware import safe_next_url
from app.models import UserProfile, UserRole
import re
import logging
from app.exceptions import BusinessLogicError

logger = logging.getLogger(__name__)


auth_bp = Blueprint('auth', __name__, url_prefix='/account')


def is_valid_email(email: str) -> bool:
    """Validate email format."""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def _landing_for(user: UserProfile) -> str:
    return url_for('admin.dashboard') if user.is_admin else url_for('main.home')


def _validate_registration_form(form: dict) -> List[str]:
    """Validate registration form fields and return list of errors."""
    errors = []
    email = form.get('email', '').strip()
    password = form.get('password', '')
    password_confirm = form.get('password_confirm', '')
    full_name = form.get('full_name', '').strip()

    if not email or not is_valid_email(email):
        errors.append('Please enter a valid email address.')

    if not password or len(password) < 8:
        errors.append('Password must be at least 8 characters.')

    if password != password_confirm:
        errors.append('Passwords do not match.')

    if not full_name:
        errors.append('Your name is required.')

    return errors


@auth_bp.route('/register', methods=['GET', 'POST'])
def register() -> Union[str, Response]:
    """Customer registration; signs the new customer in."""
    if g.user:
        return redirect(_landing_for(g.user))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        full_name = request.form.get('full_name', '').strip()
        password = request.form.get('password', '')
        marketing_opt_in = request.form.get('marketing_opt_in') == 'on'

        errors = _validate_registration_form(request.form)
        if errors:
            for error in errors:
                flash(error, 'danger')
            return render_template('auth/register.html', email=email, full_name=full_name), 400

        exists = db_session.query(UserProfile).filter(func.lower(UserProfile.email) == email).first()
        if exists:
            flash('An account with this email already exists. Please sign in.', 'danger')
            return render_template('auth/register.html', email=email, full_name=full_name), 400

        try:
            user = UserProfile(
                email=email,
                full_name=full_name,
                role=UserRole.CUSTOMER.value,
                active=True,
                marketing_opt_in=marketing_opt_in,
            )
            user.set_password(password)
            db_session.add(user)
            db_session.commit()
        except IntegrityError:
            db_session.rollback()
            raise BusinessLogicError('Could not create the account. Please try again.')

        session.clear()
        session['user_id'] = user.id
        session.permanent = True
        logger.info(f"[AUTH] New customer registered: {email}")

        flash(f'Welcome to Lumicea, {user.first_name}!', 'success')
        return redirect(safe_next_url(request.args.get('next')) or url_for('main.home'))

    return render_template('auth/register.html', email='', full_name='')


@auth_bp.route('/login', methods=['GET', 'POST'])
def login() -> Union[str, Response]:
    """Login page - validates email + password."""
    if g.user:
        return redirect(_landing_for(g.user))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')
        next_url = safe_next_url(request.args.get('next'))

        if not email or not password:
            flash('Email and password are required.', 'danger')
            return render_template('auth/login.html', email=email), 400

        user = db_session.query(UserProfile).filter(func.lower(UserProfile.email) == email).first()

        if not user or not user.active or not user.check_password(password):
            logger.info(f"[AUTH] Failed login for {email}")
            flash('Incorrect email or password.', 'danger')
            return render_template('auth/login.html', email=email), 401

        # Cart and checkout draft survive sign-in
        cart = session.get('cart')
        draft = session.get('checkout_draft')
        session.clear()
        if cart:
            session['cart'] = cart
        if draft:
            session['checkout_draft'] = draft
        session['user_id'] = user.id
        session.permanent = True

        flash(f'Welcome back, {user.first_name or user.email}!', 'success')
        return redirect(next_url or _landing_for(user))

    return render_template('auth/login.html', email='')


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout() -> Response:
    """Clear the session and go back to the home page."""
    session.clear()
    flash('You have been signed out.', 'info')
    return redirect(url_for('main.home'))


@auth_bp.route('/orders')
def my_orders() -> Union[str, Response]:
    """Order history for the signed-in customer."""
    if not g.user:
        return redirect(url_for('auth.login', next=request.url))
    orders = sorted(g.user.orders, key=lambda o: (o.created_at, o.id), reverse=True)
    return render_template('auth/orders.html', orders=orders)
