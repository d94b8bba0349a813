from flask import current_app

from library_api.errors import ConflictError, NotFoundError, ValidationError
from library_api.models.book import Book
from library_api.repositories.base import transaction
from library_api.repositories.book_repo import BookRepo
from library_api.repositories.borrow_repo import BorrowRepo

REQUIRED_FIELDS = ("isbn", "title", "author", "shelfLocation", "totalQuantity")
TEXT_FIELDS = {"isbn": "isbn", "title": "title", "author": "author", "shelfLocation": "shelf_location"}


def _quantity(value) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValidationError("totalQuantity must be an integer") from None
    if qty < 0:
        raise ValidationError("totalQuantity cannot be negative")
    return qty


def _active(value, default=None) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    flag = str(value).strip().lower()
    if flag in ("true", "1"):
        return True
    if flag in ("false", "0"):
        return False
    raise ValidationError("isActive must be true or false")


def _clean(value) -> str:
    # angle brackets are dropped from free text
    return str(value).replace("<", "").replace(">", "").strip()


def build_book_predicate(args):
    clauses = []
    for key, column in (("title", Book.title), ("author", Book.author), ("isbn", Book.isbn)):
        term = (args.get(key) or "").strip()
        if term:
            clauses.append(column.ilike(f"%{term}%"))
    return clauses


class BookService:
    @staticmethod
    def list_books(args):
        return BookRepo.find(build_book_predicate(args))

    @staticmethod
    def get_book(book_id: int):
        book = BookRepo.get(book_id)
        if not book:
            raise NotFoundError("Book not found")
        return book

    @staticmethod
    def create_book(data: dict):
        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"All fields are required: {', '.join(REQUIRED_FIELDS)}")

        total = _quantity(data["totalQuantity"])

        def _work(session):
            return BookRepo.create(Book(
                isbn=_clean(data["isbn"]),
                title=_clean(data["title"]),
                author=_clean(data["author"]),
                shelf_location=_clean(data["shelfLocation"]),
                total_quantity=total,
                available_quantity=total,
                is_active=_active(data.get("isActive"), default=True),
            )).id

        book_id = transaction(_work)
        current_app.logger.info(f"[book] #{book_id} created with {total} copies")
        return BookRepo.get(book_id)

    @staticmethod
    def update_book(book_id: int, data: dict):
        def _work(session):
            book = BookRepo.get_for_update(book_id)
            if not book:
                raise NotFoundError("Book not found")

            for key, attr in TEXT_FIELDS.items():
                if data.get(key) not in (None, ""):
                    setattr(book, attr, _clean(data[key]))
            if data.get("isActive") is not None:
                book.is_active = _active(data["isActive"])
            session.flush()

            if data.get("totalQuantity") not in (None, ""):
                new_total = _quantity(data["totalQuantity"])
                # copies currently lent out stay lent out
                if not BookRepo.resize(book_id, new_total):
                    raise ConflictError(
                        f"totalQuantity cannot be lower than the {book.lent_out} copies currently lent out"
                    )

        transaction(_work)
        return BookRepo.get(book_id)

    @staticmethod
    def delete_book(book_id: int):
        def _work(session):
            book = BookRepo.get_for_update(book_id)
            if not book:
                raise NotFoundError("Book not found")
            if BorrowRepo.count_for_book(book_id) > 0:
                raise ConflictError("Book has borrow records; deactivate it instead of deleting")
            BookRepo.delete(book)

        transaction(_work)
        current_app.logger.info(f"[book] #{book_id} deleted")
