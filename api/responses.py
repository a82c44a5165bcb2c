"""
Success envelope and refresh-token cookie helpers shared by the blueprints.
"""
from flask import current_app, jsonify


def success_response(message: str, status: int = 200, data=None, **extra):
    payload = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return jsonify(payload), status


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "samesite": "Strict",
        "secure": current_app.config.get("REFRESH_COOKIE_SECURE", True),
        "path": "/",
    }


def set_refresh_cookie(response, token: str):
    """HttpOnly, SameSite=Strict, lifetime matching the refresh token."""
    max_age = int(current_app.config["JWT_REFRESH_EXPIRES"].total_seconds())
    response.set_cookie(
        current_app.config["REFRESH_COOKIE_NAME"],
        value=token,
        max_age=max_age,
        **_cookie_options(),
    )
    return response


def clear_refresh_cookie(response):
    response.delete_cookie(current_app.config["REFRESH_COOKIE_NAME"], **_cookie_options())
    return response
