import re

from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token

from library_api.errors import ConflictError, UnauthorizedError, ValidationError
from library_api.models.enums import UserRole
from library_api.models.user import User
from library_api.repositories.base import transaction
from library_api.repositories.user_repo import UserRepo

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# at least 8 characters with a letter and a digit
PASSWORD_RE = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d@$!%*#?&]{8,}$")


def validate_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def validate_password(password: str) -> str:
    if not PASSWORD_RE.match(password or ""):
        raise ValidationError("Password must be at least 8 characters and contain letters and numbers")
    return password


class AuthService:
    @staticmethod
    def register(name: str, email: str, password: str, role: str = UserRole.MEMBER.value):
        name = (name or "").replace("<", "").replace(">", "").strip()
        if not name:
            raise ValidationError("name/email/password are required")
        email = validate_email(email)
        password = validate_password(password)

        def _work(session):
            if UserRepo.get_by_email(email):
                raise ConflictError("Duplicate email. Please use another value!")
            return UserRepo.create(User(
                name=name,
                email=email,
                password_hash=generate_password_hash(password),
                role=role,
            )).id

        user_id = transaction(_work)
        current_app.logger.info(f"[auth] user #{user_id} registered as {role}")
        return UserRepo.get_by_id(user_id)

    @staticmethod
    def login(email: str, password: str):
        user = UserRepo.get_by_email((email or "").strip().lower())
        if not user or not check_password_hash(user.password_hash, password or ""):
            raise UnauthorizedError("Incorrect email or password")

        token = create_access_token(
            identity=str(user.id),
            additional_claims={"role": user.role, "name": user.name}
        )
        return token, user
