from flask import Blueprint, Response, current_app, request, jsonify
from flask_jwt_extended import jwt_required

from library_api.models.enums import UserRole
from library_api.services.borrow_query import BorrowFilters, BorrowQueryService
from library_api.services.borrow_service import BorrowService
from library_api.services.report_export import (
    CSV_MIMETYPE,
    XLSX_MIMETYPE,
    check_format,
    export_filename,
    to_csv,
    to_xlsx,
)
from library_api.services.report_service import ReportService
from library_api.utils.auth import current_principal
from library_api.utils.decorators import role_required
from library_api.utils.payload import json_body
from library_api.utils.serializers import borrow_to_dict

borrow_bp = Blueprint("borrows", __name__)


@borrow_bp.get("/")
@jwt_required()
def list_borrows():
    # admin gets all borrows, members get their own
    filters = BorrowFilters.from_args(request.args)
    borrows = BorrowQueryService.list_borrows(current_principal(), filters)
    return jsonify({"success": True, "data": {"borrows": borrows}})


@borrow_bp.post("/")
@jwt_required()
def create_borrow():
    data = json_body()
    b = BorrowService.create_borrow(current_principal(), data)
    return jsonify({"success": True, "data": {"borrow": borrow_to_dict(b, with_relations=False)}}), 201


@borrow_bp.get("/<int:borrow_id>")
@jwt_required()
def get_borrow(borrow_id: int):
    b = BorrowQueryService.get_borrow(current_principal(), borrow_id)
    return jsonify({"success": True, "data": {"borrow": borrow_to_dict(b)}})


@borrow_bp.patch("/<int:borrow_id>")
@jwt_required()
def update_borrow(borrow_id: int):
    # members: {"bookId"} while PENDING; admins: {"status"}
    data = json_body()
    b = BorrowService.update_borrow(current_principal(), borrow_id, data)
    return jsonify({"success": True, "data": {"borrow": borrow_to_dict(b)}})


@borrow_bp.delete("/<int:borrow_id>")
@jwt_required()
def delete_borrow(borrow_id: int):
    BorrowService.delete_borrow(current_principal(), borrow_id)
    return "", 204


@borrow_bp.get("/reports")
@jwt_required()
@role_required(UserRole.ADMIN)
def borrow_reports():
    fmt = check_format(request.args.get("format"))
    analytics = ReportService.generate(request.args)

    if fmt == "json":
        return jsonify({"success": True, "data": analytics})

    if fmt == "csv":
        body, mimetype = to_csv(analytics), CSV_MIMETYPE
    else:
        body, mimetype = to_xlsx(analytics), XLSX_MIMETYPE

    current_app.logger.info(f"[report] exported as {fmt}")
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={export_filename(analytics, fmt)}"},
    )
