from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from library_api.models.enums import UserRole
from library_api.services.book_service import BookService
from library_api.utils.decorators import role_required
from library_api.utils.payload import json_body
from library_api.utils.serializers import book_to_dict

book_bp = Blueprint("books", __name__)


@book_bp.get("/")
def list_books():
    # ?title=&author=&isbn= substring filters
    books = BookService.list_books(request.args)
    return jsonify({"success": True, "data": {"books": [book_to_dict(b) for b in books]}})


@book_bp.get("/<int:book_id>")
def get_book(book_id: int):
    b = BookService.get_book(book_id)
    return jsonify({"success": True, "data": {"book": book_to_dict(b)}})


@book_bp.post("/")
@jwt_required()
@role_required(UserRole.ADMIN)
def create_book():
    data = json_body()
    b = BookService.create_book(data)
    return jsonify({"success": True, "data": {"book": book_to_dict(b)}}), 201


@book_bp.put("/<int:book_id>")
@jwt_required()
@role_required(UserRole.ADMIN)
def update_book(book_id: int):
    data = json_body()
    b = BookService.update_book(book_id, data)
    return jsonify({"success": True, "data": {"book": book_to_dict(b)}})


@book_bp.delete("/<int:book_id>")
@jwt_required()
@role_required(UserRole.ADMIN)
def delete_book(book_id: int):
    BookService.delete_book(book_id)
    return "", 204
