"""
Authentication utilities.

JWT issuance and verification, credential validation, and the Flask-Login
request loader that turns a bearer token (or the auth_token cookie) into
``current_user``.
"""

import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from flask import current_app, g, jsonify, request
from flask_login import LoginManager

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "auth_token"
AUTH_COOKIE_MAX_AGE = 31536000  # one year

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

login_manager = LoginManager()


def generate_token(user) -> str:
    """
    Create a signed JWT for ``user``.

    Claims: sub (user id as string), email, tier, iat, exp.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "tier": user.tier,
        "iat": now,
        "exp": now + timedelta(seconds=current_app.config["JWT_EXPIRES_IN"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=current_app.config["JWT_ALGORITHM"])


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT.

    Returns:
        The claims, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("[AUTH] Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"[AUTH] Rejected invalid token: {e}")
        return None


def validate_password(password: str) -> Optional[str]:
    """Return an error message if the password is too weak, None if valid."""
    if len(password) < 8:
        return 'Password must be at least 8 characters long'
    if len(password) > 128:
        return 'Password must be less than 128 characters'
    if not re.search(r"[a-zA-Z]", password):
        return 'Password must contain at least one letter'
    if not re.search(r"[0-9]", password):
        return 'Password must contain at least one number'
    return None


def validate_email(email: str) -> Optional[str]:
    """Return an error message if the email is malformed, None if valid."""
    if not EMAIL_RE.match(email):
        return 'Invalid email format'
    if len(email) > 255:
        return 'Email must be less than 255 characters'
    return None


def _token_from_request(req) -> Optional[str]:
    header = req.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return req.cookies.get(AUTH_COOKIE_NAME)


@login_manager.request_loader
def load_user_from_request(req):
    """Resolve the user from a bearer token, the auth cookie, or local user mode."""
    from services import user_service

    token = _token_from_request(req)
    if token:
        claims = verify_token(token)
        if claims is not None:
            try:
                user = user_service.find_user_by_id(int(claims["sub"]))
            except (TypeError, ValueError):
                user = None
            if user is not None:
                return user

    if current_app.config.get("LOCAL_USER_MODE"):
        user = user_service.get_or_create_local_user(current_app.config["LOCAL_USER_EMAIL"])
        g.issue_local_token = True
        return user

    return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': 'Unauthorized - Please log in'}), 401


def _set_local_auth_cookie(response):
    """In local user mode, hand the browser a token for its API calls."""
    if g.get("issue_local_token"):
        from flask_login import current_user

        if current_user.is_authenticated:
            response.set_cookie(
                AUTH_COOKIE_NAME,
                generate_token(current_user),
                max_age=AUTH_COOKIE_MAX_AGE,
                httponly=True,
                samesite="Lax",
            )
    return response


def init_auth(app) -> None:
    """Attach Flask-Login and the local-mode cookie hook to ``app``."""
    login_manager.init_app(app)
    app.after_request(_set_local_auth_cookie)
