from sqlalchemy import delete, select, update
from sqlalchemy.orm import joinedload

from library_api.extensions import db
from library_api.models.borrow import Borrow
from library_api.models.enums import BorrowStatus

ACTIVE_STATUSES = (BorrowStatus.PENDING.value, BorrowStatus.APPROVED.value)


class BorrowRepo:
    @staticmethod
    def get(borrow_id: int):
        return db.session.get(Borrow, borrow_id)

    @staticmethod
    def get_with_relations(borrow_id: int):
        return (
            Borrow.query
            .options(joinedload(Borrow.user), joinedload(Borrow.book))
            .filter(Borrow.id == borrow_id)
            .first()
        )

    @staticmethod
    def get_for_update(borrow_id: int):
        stmt = (
            select(Borrow)
            .where(Borrow.id == borrow_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def find(clauses=(), order_by=None):
        q = (
            Borrow.query
            .options(joinedload(Borrow.user), joinedload(Borrow.book))
            .filter(*clauses)
        )
        if order_by is not None:
            q = q.order_by(order_by)
        else:
            q = q.order_by(Borrow.id.desc())
        return q.all()

    @staticmethod
    def find_active(user_id: int, book_id: int):
        return Borrow.query.filter(
            Borrow.user_id == user_id,
            Borrow.book_id == book_id,
            Borrow.status.in_(ACTIVE_STATUSES),
        ).first()

    @staticmethod
    def count_for_book(book_id: int) -> int:
        return Borrow.query.filter(Borrow.book_id == book_id).count()

    @staticmethod
    def count_for_user(user_id: int) -> int:
        return Borrow.query.filter(Borrow.user_id == user_id).count()

    @staticmethod
    def create(borrow: Borrow):
        db.session.add(borrow)
        db.session.flush()
        return borrow

    @staticmethod
    def move_status(borrow_id: int, expected: str, **values) -> bool:
        """
        Compare-and-set on status. False when another request moved the
        borrow first.
        """
        result = db.session.execute(
            update(Borrow)
            .where(Borrow.id == borrow_id, Borrow.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def delete_if_status(borrow_id: int, expected: str) -> bool:
        result = db.session.execute(
            delete(Borrow)
            .where(Borrow.id == borrow_id, Borrow.status == expected)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
