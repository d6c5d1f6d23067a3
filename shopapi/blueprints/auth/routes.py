from flask import Response, g, jsonify

from . import bp
from shopapi.blueprints import json_body
from shopapi.database import db
from shopapi.services import auth
from shopapi.utils.auth import token_required


@bp.route("/register", methods=["POST"])
def register() -> tuple[Response, int]:
    data = json_body("username", "email", "password")
    with db.transaction() as tx:
        result = auth.register(
            tx,
            username=data["username"],
            email=data["email"],
            password=data["password"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
        )
        payload = result.data()
    return jsonify(success=True, message="Registration successful", data=payload), 201


@bp.route("/login", methods=["POST"])
def login() -> Response:
    data = json_body("username_or_email", "password")
    with db.transaction() as tx:
        payload = auth.login(tx, data["username_or_email"], data["password"]).data()
    return jsonify(success=True, message="Login successful", data=payload)


@bp.route("/refresh-token", methods=["POST"])
def refresh_token() -> Response:
    data = json_body("refresh_token")
    with db.transaction() as tx:
        payload = auth.refresh(tx, data["refresh_token"]).data()
    return jsonify(success=True, message="Token refreshed", data=payload)


@bp.route("/logout", methods=["POST"])
def logout() -> Response:
    data = json_body("refresh_token")
    with db.transaction() as tx:
        auth.logout(tx, data["refresh_token"])
    return jsonify(success=True, message="Logout successful", data=True)


@bp.route("/me")
@token_required
def me() -> Response:
    with db.transaction() as tx:
        payload = auth.get_user(tx, g.user_id).data()
    return jsonify(success=True, data=payload)


@bp.route("/validate-token")
@token_required
def validate_token() -> Response:
    return jsonify(
        success=True,
        message="Token is valid",
        data={"user_id": g.user_id, "username": g.claims.get("name"), "role": g.claims.get("role")},
    )
