from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from models.role import Role
from services.guard import AccessGuard


def _guard() -> AccessGuard:
    return current_app.extensions["access_guard"]


def jwt_required():
    """Authenticate the bearer token and attach g.current_identity / g.current_token."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity, token = _guard().authenticate(request.headers.get("Authorization"))
            g.current_identity = identity
            g.current_token = token
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*roles: Role):
    """
    Role gate over an explicit allow-list. Must sit below @jwt_required();
    a missing identity is rejected as unauthenticated, a role outside the
    list as forbidden.
    """
    allowed = frozenset(roles)
    if not allowed:
        raise ValueError("roles_required needs at least one role")

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            AccessGuard.authorize(getattr(g, "current_identity", None), allowed)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
