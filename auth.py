"""Sign-up / sign-in APIs and the request identity helper.

Routes:
- POST /api/signup
- POST /api/signin
- POST /api/signout

Identity for the credit APIs is the signed-in email stored in the flask
session; requests without a session may name the user explicitly.
"""

import bcrypt
from flask import Blueprint, current_app, jsonify, request, session as flask_session
from sqlalchemy.exc import IntegrityError

from errors import json_object
from extensions import db, limiter
from models_users import User


auth_api = Blueprint("auth_api", __name__)


def _norm_email(email) -> str:
    return (email or "").strip().lower() if isinstance(email, str) else ""


def _hash_password(password: str) -> str:
    rounds = int(current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def current_user(payload: dict | None = None) -> str:
    """Signed-in user, else the `user` named in the body or query string."""
    signed_in = flask_session.get("user")
    if signed_in:
        return signed_in
    payload = payload or {}
    return _norm_email(payload.get("user") or request.args.get("user"))


@auth_api.post("/api/signup")
@limiter.limit("10 per minute")
def signup():
    data = json_object()
    email = _norm_email(data.get("email"))
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"success": False, "error": "invalid_request", "message": "Email and password required"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"success": False, "error": "user_exists", "message": "User already exists"}), 409

    db.session.add(User(email=email, password_hash=_hash_password(password)))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "user_exists", "message": "User already exists"}), 409

    current_app.logger.info("Signup email=%s", email)
    return jsonify({"success": True, "message": "Signup successful", "user": {"email": email}})


@auth_api.post("/api/signin")
@limiter.limit("10 per minute")
def signin():
    data = json_object()
    email = _norm_email(data.get("email"))
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"success": False, "error": "invalid_request", "message": "Email and password required"}), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({"success": False, "error": "not_found", "message": "User not found"}), 404
    if not _check_password(password, user.password_hash):
        return jsonify({"success": False, "error": "invalid_credentials", "message": "Invalid credentials"}), 401

    flask_session["user"] = email
    return jsonify({"success": True, "message": "Signin successful", "user": {"email": email}})


@auth_api.post("/api/signout")
def signout():
    flask_session.pop("user", None)
    return jsonify({"success": True, "message": "Signed out"})
