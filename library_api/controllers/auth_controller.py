from flask import Blueprint, jsonify
from flask_jwt_extended import current_user, jwt_required

from library_api.services.auth_service import AuthService
from library_api.utils.payload import json_body
from library_api.utils.serializers import user_to_dict

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/register", endpoint="auth_register")
def register():
    data = json_body()
    # role is never taken from the request
    user = AuthService.register(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
    )
    return jsonify({"success": True, "data": {"user": user_to_dict(user)}}), 201


@auth_bp.post("/login", endpoint="auth_login")
def login():
    data = json_body()
    token, user = AuthService.login(data.get("email"), data.get("password"))
    return jsonify({
        "success": True,
        "data": {"accessToken": token, "user": user_to_dict(user)},
    })


@auth_bp.get("/me", endpoint="auth_me")
@jwt_required()
def me():
    return jsonify({"success": True, "data": {"user": user_to_dict(current_user)}})
