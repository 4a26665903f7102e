# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, session_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration. Always creates a STAFF user; admins are created with
    `flask users create --role ADMIN`.
    """
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    email = data.get("email")
    password = data.get("password")

    if not all([name, email, password]):
        return jsonify({"error": "name, email and password required"}), 400

    user = auth_service.create_user(name=name, email=email, password=password)
    return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201


@auth_bp.post("/login")
def login_route():
    """Authenticate and return a bearer token for the Authorization header."""
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.authenticate(email, password)
    if user is None:
        current_app.logger.info("Failed login for %s from %s", email, request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1].strip()
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()})
