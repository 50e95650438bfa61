"""
Bearer token authentication for Flask routes.

Tokens are issued by the auth service; here we only verify them with the
shared secret and expose the subject claim as g.user_id.
"""

import logging
from functools import wraps
from typing import Any

from flask import current_app, g, jsonify, request
from jose import jwt
from jose.exceptions import JWTError

from .config import Config

logger = logging.getLogger(__name__)


def verify_token(token: str) -> dict[str, Any] | None:
    """
    Verify a signed JWT.

    Args:
        token: The JWT token string

    Returns:
        Decoded token payload if valid, None otherwise
    """
    secret = current_app.config.get("AUTH_JWT_SECRET") or Config.AUTH_JWT_SECRET
    if not secret:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting token")
        return None

    algorithm = current_app.config.get("AUTH_JWT_ALGORITHM") or Config.AUTH_JWT_ALGORITHM
    issuer = current_app.config.get("AUTH_JWT_ISSUER") or Config.AUTH_JWT_ISSUER

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={
                'verify_aud': False,
                'verify_iss': issuer is not None,
            },
            issuer=issuer,
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if not payload.get('sub'):
        logger.warning("JWT has no subject claim")
        return None

    return payload


def get_auth_token() -> str | None:
    """
    Extract bearer token from Authorization header.

    Returns:
        Token string if present, None otherwise
    """
    auth_header = request.headers.get('Authorization', '')

    if not auth_header.startswith('Bearer '):
        return None

    return auth_header[7:]  # Remove 'Bearer ' prefix


def require_auth(f):
    """
    Decorator to require authentication for a Flask route.

    Usage:
        @bp.get('/protected')
        @require_auth
        def protected_route():
            user_id = g.user_id
            return {'message': 'Success'}
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # TESTING seam: allow deterministic auth without issuing tokens.
        # This is only enabled when Flask TESTING is true.
        if current_app.config.get("TESTING") is True:
            test_user_id = request.headers.get("X-Test-User-Id")
            if test_user_id:
                g.user = {"sub": test_user_id}
                g.user_id = test_user_id
                return f(*args, **kwargs)

        token = get_auth_token()

        if not token:
            return jsonify({'error': 'Missing authentication token'}), 401

        payload = verify_token(token)

        if not payload:
            return jsonify({'error': 'Invalid authentication token'}), 401

        g.user = payload
        g.user_id = str(payload['sub'])

        return f(*args, **kwargs)

    return decorated_function
