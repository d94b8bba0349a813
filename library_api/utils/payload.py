from flask import request

from library_api.errors import ValidationError


def json_body() -> dict:
    """Request JSON as a dict; a missing body reads as empty, any other shape is refused."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
