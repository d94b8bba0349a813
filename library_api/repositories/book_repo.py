from sqlalchemy import select, update

from library_api.extensions import db
from library_api.models.book import Book


class BookRepo:
    @staticmethod
    def find(clauses=()):
        return Book.query.filter(*clauses).order_by(Book.id.desc()).all()

    @staticmethod
    def get(book_id: int):
        return db.session.get(Book, book_id)

    @staticmethod
    def get_for_update(book_id: int):
        # UPDLOCK equivalent; backends without row locks (SQLite) ignore FOR UPDATE
        stmt = (
            select(Book)
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def create(book: Book):
        db.session.add(book)
        db.session.flush()
        return book

    @staticmethod
    def delete(book: Book):
        db.session.delete(book)
        db.session.flush()

    @staticmethod
    def take_copy(book_id: int) -> bool:
        """Decrement availability by one; False when no copy is left."""
        result = db.session.execute(
            update(Book)
            .where(Book.id == book_id, Book.available_quantity > 0)
            .values(available_quantity=Book.available_quantity - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def put_back_copy(book_id: int) -> bool:
        """Increment availability by one; False when every copy is already on the shelf."""
        result = db.session.execute(
            update(Book)
            .where(Book.id == book_id, Book.available_quantity < Book.total_quantity)
            .values(available_quantity=Book.available_quantity + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def resize(book_id: int, new_total: int) -> bool:
        """
        Set total_quantity while keeping the lent-out count:
        available += new_total - total. False if fewer copies than are lent out.
        """
        delta = new_total - Book.total_quantity
        result = db.session.execute(
            update(Book)
            .where(Book.id == book_id, Book.available_quantity + delta >= 0)
            .values(total_quantity=new_total, available_quantity=Book.available_quantity + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
