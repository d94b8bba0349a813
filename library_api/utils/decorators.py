from functools import wraps
from flask_jwt_extended import verify_jwt_in_request

from library_api.errors import ForbiddenError
from library_api.models.enums import UserRole
from library_api.utils.auth import current_principal


def role_required(*roles):
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if current_principal().role not in allowed:
                raise ForbiddenError("You do not have permission to perform this action")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
