from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from library_api.models.enums import UserRole
from library_api.services.user_service import UserService
from library_api.utils.decorators import role_required
from library_api.utils.payload import json_body
from library_api.utils.serializers import user_to_dict

user_bp = Blueprint("users", __name__)


@user_bp.get("/")
@jwt_required()
@role_required(UserRole.ADMIN)
def list_users():
    users = UserService.list_users()
    return jsonify({"success": True, "data": {"users": [user_to_dict(u) for u in users]}})


@user_bp.get("/<int:user_id>")
@jwt_required()
@role_required(UserRole.ADMIN)
def get_user(user_id: int):
    return jsonify({"success": True, "data": {"user": user_to_dict(UserService.get_user(user_id))}})


@user_bp.patch("/<int:user_id>")
@jwt_required()
@role_required(UserRole.ADMIN)
def update_user(user_id: int):
    data = json_body()
    user = UserService.update_user(user_id, data)
    return jsonify({"success": True, "data": {"user": user_to_dict(user)}})


@user_bp.delete("/<int:user_id>")
@jwt_required()
@role_required(UserRole.ADMIN)
def delete_user(user_id: int):
    UserService.delete_user(user_id)
    return "", 204
