from sqlalchemy import update

from library_api.models.user import User
from library_api.extensions import db


class UserRepo:
    @staticmethod
    def list_all():
        return User.query.order_by(User.id.desc()).all()

    @staticmethod
    def get_by_email(email: str):
        return User.query.filter_by(email=email).first()

    @staticmethod
    def get_by_id(user_id: int):
        return db.session.get(User, user_id)

    @staticmethod
    def claim(user_id: int) -> bool:
        """
        Write-lock the user row until the transaction ends; False if the user is gone.

        A no-op UPDATE rather than SELECT ... FOR UPDATE so SQLite, which has no
        row locks, serializes on its database write lock the same way.
        """
        result = db.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(updated_at=User.updated_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def create(user: User):
        db.session.add(user)
        db.session.flush()
        return user

    @staticmethod
    def delete(user: User):
        db.session.delete(user)
        db.session.flush()
