from dataclasses import dataclass

from flask_jwt_extended import current_user

from library_api.models.enums import UserRole


@dataclass(frozen=True)
class Principal:
    """Authenticated caller handed to the services: who, and with which role."""
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def current_principal() -> Principal:
    # jwt_required() must already have run; current_user is reloaded from the store per request
    return Principal(id=current_user.id, role=current_user.role)
