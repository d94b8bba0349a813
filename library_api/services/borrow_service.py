from flask import current_app

from library_api.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from library_api.models.borrow import Borrow
from library_api.models.enums import BorrowStatus
from library_api.repositories.base import transaction
from library_api.repositories.book_repo import BookRepo
from library_api.repositories.borrow_repo import BorrowRepo
from library_api.repositories.user_repo import UserRepo
from library_api.services.borrow_rules import CHANGE_BOOK, check_delete, resolve_update
from library_api.utils.dates import parse_datetime, utcnow


def _parse_id(value, field: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    # bool is an int subclass; floats would be truncated silently
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{field} must be an integer") from None


def _lendable_book(book_id: int):
    book = BookRepo.get(book_id)
    if not book:
        raise NotFoundError("Book not found")
    if not book.is_active:
        raise ConflictError("Book is not active")
    return book


def _approve(borrow, now):
    # lock the book row, then decrement only if a copy is still on the shelf
    BookRepo.get_for_update(borrow.book_id)
    if not BookRepo.take_copy(borrow.book_id):
        raise ConflictError("Book is no longer available")
    return {"approved_at": now}


def _reject(borrow, now):
    return {}


def _return(borrow, now):
    BookRepo.get_for_update(borrow.book_id)
    if not BookRepo.put_back_copy(borrow.book_id):
        raise ConflictError("Book inventory already shows every copy on the shelf")
    return {"returned_at": now}


# target status -> side effect run in the same transaction as the status write
STATUS_EFFECTS = {
    BorrowStatus.APPROVED: _approve,
    BorrowStatus.REJECTED: _reject,
    BorrowStatus.RETURNED: _return,
}


class BorrowService:
    @staticmethod
    def create_borrow(principal, data: dict):
        """
        Borrow request by the caller. Inventory is untouched here: copies are
        reserved on approval so several requests can compete for one copy.
        """
        if data.get("bookId") in (None, "") or data.get("dueAt") in (None, ""):
            raise ValidationError("Book ID and due date are required")
        book_id = _parse_id(data.get("bookId"), "Book ID")
        due_at = parse_datetime(data.get("dueAt"), "due date")

        def _work(session):
            # serializes concurrent requests of one user so the active check below holds
            if not UserRepo.claim(principal.id):
                raise UnauthorizedError("The user belonging to this token does no longer exist.")
            _lendable_book(book_id)

            if BorrowRepo.find_active(principal.id, book_id):
                raise ConflictError("You already have this book borrowed or pending")

            return BorrowRepo.create(Borrow(
                user_id=principal.id,
                book_id=book_id,
                due_at=due_at,
                status=BorrowStatus.PENDING.value,
                borrowed_at=utcnow(),
            )).id

        borrow_id = transaction(_work)
        current_app.logger.info(f"[borrow] #{borrow_id} requested by user {principal.id} for book {book_id}")
        return BorrowRepo.get(borrow_id)

    @staticmethod
    def update_borrow(principal, borrow_id: int, data: dict):
        now = utcnow()

        def _work(session):
            borrow = BorrowRepo.get_for_update(borrow_id)
            if not borrow:
                raise NotFoundError("Borrow not found")

            action, value = resolve_update(principal, borrow.user_id, borrow.status, data)

            if action == CHANGE_BOOK:
                new_book_id = _parse_id(value, "Book ID")
                _lendable_book(new_book_id)
                if not BorrowRepo.move_status(borrow_id, BorrowStatus.PENDING.value, book_id=new_book_id):
                    raise ConflictError("Borrow is no longer pending")
                return borrow.status, borrow.status

            current = borrow.status
            values = STATUS_EFFECTS[value](borrow, now)
            if not BorrowRepo.move_status(borrow_id, current, status=value.value, **values):
                raise ConflictError("Borrow was changed by another request, reload and retry")
            return current, value.value

        try:
            before, after = transaction(_work)
        except ConflictError as e:
            current_app.logger.warning(f"[borrow] #{borrow_id} update refused for user {principal.id}: {e.message}")
            raise

        if before != after:
            current_app.logger.info(f"[borrow] #{borrow_id} {before} -> {after} by user {principal.id}")
        return BorrowRepo.get_with_relations(borrow_id)

    @staticmethod
    def delete_borrow(principal, borrow_id: int):
        def _work(session):
            borrow = BorrowRepo.get_for_update(borrow_id)
            if not borrow:
                raise NotFoundError("Borrow not found")

            check_delete(principal, borrow.user_id, borrow.status)

            status = borrow.status
            # deleting a live loan hands its copy back
            if status == BorrowStatus.APPROVED.value:
                _return(borrow, None)

            if not BorrowRepo.delete_if_status(borrow_id, status):
                raise ConflictError("Borrow was changed by another request, reload and retry")
            return status

        status = transaction(_work)
        current_app.logger.info(f"[borrow] #{borrow_id} ({status}) deleted by user {principal.id}")
