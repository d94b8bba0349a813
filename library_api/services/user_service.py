from werkzeug.security import generate_password_hash

from library_api.errors import ConflictError, NotFoundError, ValidationError
from library_api.models.enums import UserRole
from library_api.repositories.base import transaction
from library_api.repositories.borrow_repo import BorrowRepo
from library_api.repositories.user_repo import UserRepo
from library_api.services.auth_service import validate_email, validate_password


class UserService:
    @staticmethod
    def list_users():
        return UserRepo.list_all()

    @staticmethod
    def get_user(user_id: int):
        user = UserRepo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def update_user(user_id: int, data: dict):
        def _work(session):
            user = UserService.get_user(user_id)
            if data.get("name"):
                user.name = str(data["name"]).replace("<", "").replace(">", "").strip()
            if data.get("email"):
                # a duplicate surfaces from the unique index as a Conflict
                user.email = validate_email(data["email"])
            if data.get("password"):
                user.password_hash = generate_password_hash(validate_password(data["password"]))
            if data.get("role"):
                role = str(data["role"]).strip().upper()
                if role not in (UserRole.MEMBER.value, UserRole.ADMIN.value):
                    raise ValidationError("Invalid role provided")
                user.role = role
            session.flush()

        transaction(_work)
        return UserRepo.get_by_id(user_id)

    @staticmethod
    def delete_user(user_id: int):
        def _work(session):
            user = UserService.get_user(user_id)
            if BorrowRepo.count_for_user(user_id) > 0:
                raise ConflictError("User has borrow records and cannot be deleted")
            UserRepo.delete(user)

        transaction(_work)
