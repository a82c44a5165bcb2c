"""
Authentication blueprint:
- POST /auth/register
- POST /auth/verify-otp
- POST /auth/resend-otp
- POST /auth/login
- POST /auth/forgot-password
- POST /auth/reset-password
- POST /auth/refresh
- POST /auth/logout
- POST /auth/logout-all
- GET  /auth/profile

Request bodies are validated with marshmallow before the session engine is
called; the engine raises typed errors that api.errors renders.
The refresh token travels in an HttpOnly cookie; /refresh and /logout also
accept it as `refresh_token` in the JSON body for non-browser clients.
"""
from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models.schemas.user import (
    EmailSchema,
    LoginSchema,
    RegisterSchema,
    ResetPasswordSchema,
    VerifyOtpSchema,
)
from services.sessions import SessionEngine
from utils.decorators import jwt_required

from .responses import clear_refresh_cookie, set_refresh_cookie, success_response

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
verify_otp_schema = VerifyOtpSchema()
email_schema = EmailSchema()
reset_password_schema = ResetPasswordSchema()

FORGOT_PASSWORD_MESSAGE = "If an account exists, an OTP has been sent."


def _engine() -> SessionEngine:
    return current_app.extensions["session_engine"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _incoming_refresh_token() -> str | None:
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    return token or _payload().get("refresh_token")


def _token_body(access_token: str) -> dict:
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": int(current_app.config["JWT_ACCESS_EXPIRES"].total_seconds()),
    }


@bp.post("/register")
def register():
    """
    Register a new user (EMPLOYEE, unverified) and mail a verification OTP.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            confirm_password: { type: string }
            first_name: { type: string }
            last_name: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = register_schema.load(_payload())
    user = _engine().register(
        email=data["email"],
        password=data["password"],
        confirm_password=data["confirm_password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
    )
    return success_response(
        "User registered successfully. Please check your email for OTP and verify your account",
        201,
        data=user,
    )


@bp.post("/verify-otp")
def verify_otp():
    """
    Verify the emailed OTP; completes registration or login and issues tokens.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            otp: { type: string }
    responses:
      200:
        description: OK (access token in body, refresh token in cookie)
      400:
        description: OTP expired or invalid
      401:
        description: Invalid credentials
    """
    data = verify_otp_schema.load(_payload())
    result = _engine().verify_otp(data["email"], data["otp"])
    body, status = success_response(
        "Login successful",
        data={"user": result["user"], **_token_body(result["access_token"])},
    )
    return set_refresh_cookie(body, result["refresh_token"]), status


@bp.post("/resend-otp")
def resend_otp():
    """
    Issue a fresh OTP; any previous code stops working.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200:
        description: OTP sent
      401:
        description: Invalid credentials
    """
    data = email_schema.load(_payload())
    _engine().resend_otp(data["email"])
    return success_response("New verification OTP sent to your email.")


@bp.post("/login")
def login():
    """
    Check the password and mail a login OTP; tokens come from /verify-otp.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OTP sent
      401:
        description: Invalid credentials
    """
    data = login_schema.load(_payload())
    _engine().login(data["email"], data["password"])
    return success_response("OTP sent to your email. Please verify to complete login")


@bp.post("/forgot-password")
def forgot_password():
    """
    Start a password reset. The response never reveals whether the email exists.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200:
        description: Uniform acknowledgement
    """
    data = email_schema.load(_payload())
    _engine().forgot_password(data["email"])
    return success_response(FORGOT_PASSWORD_MESSAGE)


@bp.post("/reset-password")
def reset_password():
    """
    Set a new password with the emailed OTP; every refresh session is revoked.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            otp: { type: string }
            password: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: OTP expired or invalid
      404:
        description: User not found
    """
    data = reset_password_schema.load(_payload())
    _engine().reset_password(data["email"], data["otp"], data["password"])
    return success_response("Password reset successfully. You can now login.")


@bp.post("/refresh")
def refresh():
    """
    Rotate the refresh token and return a new access token.
    A refresh token works once; presenting it again is rejected as reuse.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            refresh_token: { type: string }
    responses:
      200:
        description: New access token (new refresh token in cookie)
      401:
        description: Invalid, expired or reused refresh token
    """
    result = _engine().refresh(_incoming_refresh_token())
    body, status = success_response("Access token refreshed", data=_token_body(result["access_token"]))
    return set_refresh_cookie(body, result["refresh_token"]), status


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Revoke the current access token and this device's refresh token.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    identity = g.current_identity
    _engine().logout(g.current_token, identity.id, identity.exp, _incoming_refresh_token())
    body, status = success_response("Logout successful. Token has been invalidated")
    return clear_refresh_cookie(body), status


@bp.post("/logout-all")
@jwt_required()
def logout_all():
    """
    Revoke the current access token and every refresh token of the user.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out everywhere
      401:
        description: Unauthorized
    """
    identity = g.current_identity
    _engine().logout_all(g.current_token, identity.id, identity.exp)
    body, status = success_response("Logged out from all devices successfully.")
    return clear_refresh_cookie(body), status


@bp.get("/profile")
@jwt_required()
def profile():
    """
    Current user's profile.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User not found
    """
    user = _engine().get_profile(g.current_identity.id)
    return success_response("User is logged in. Profile details retrieved.", data=user)
