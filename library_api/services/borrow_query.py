from dataclasses import dataclass, replace

from sqlalchemy import and_, true

from library_api.errors import ForbiddenError, NotFoundError, ValidationError
from library_api.models.borrow import Borrow
from library_api.models.enums import BorrowStatus
from library_api.repositories.borrow_repo import BorrowRepo
from library_api.utils.dates import days_overdue, utcnow
from library_api.utils.serializers import borrow_to_dict

_TRUTHY = ("1", "true", "yes", "on")


def _optional_int(args, key: str):
    raw = args.get(key)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer") from None


def _optional_status(args, key: str = "status"):
    raw = args.get(key)
    if raw in (None, ""):
        return None
    status = BorrowStatus.parse(raw)
    if status is None:
        raise ValidationError("Invalid status provided")
    return status


def _flag(args, key: str) -> bool:
    raw = args.get(key)
    if isinstance(raw, bool):
        return raw
    return str(raw or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class BorrowFilters:
    user_id: int | None = None
    book_id: int | None = None
    status: BorrowStatus | None = None
    overdue: bool = False
    sort_by_overdue: bool = False

    @classmethod
    def from_args(cls, args):
        return cls(
            user_id=_optional_int(args, "userId"),
            book_id=_optional_int(args, "bookId"),
            status=_optional_status(args),
            overdue=_flag(args, "overdue"),
            sort_by_overdue=_flag(args, "sortByOverdue"),
        )


def overdue_clauses(now):
    return [
        Borrow.status == BorrowStatus.APPROVED.value,
        Borrow.due_at < now,
        Borrow.returned_at.is_(None),
    ]


def build_borrow_predicate(filters: BorrowFilters, now):
    """AND of one clause per filter that is set; matches everything when none is."""
    clauses = []
    if filters.user_id is not None:
        clauses.append(Borrow.user_id == filters.user_id)
    if filters.book_id is not None:
        clauses.append(Borrow.book_id == filters.book_id)
    if filters.status is not None:
        clauses.append(Borrow.status == filters.status.value)
    if filters.overdue:
        clauses.extend(overdue_clauses(now))

    if not clauses:
        return true()
    return and_(*clauses)


def scope_to_principal(principal, filters: BorrowFilters) -> BorrowFilters:
    # members always see only their own history, whatever userId they sent
    if principal.is_admin:
        return filters
    return replace(filters, user_id=principal.id)


class BorrowQueryService:
    @staticmethod
    def list_borrows(principal, filters: BorrowFilters, now=None):
        now = now or utcnow()
        filters = scope_to_principal(principal, filters)

        rows = BorrowRepo.find([build_borrow_predicate(filters, now)])
        borrows = [borrow_to_dict(b) for b in rows]

        if filters.sort_by_overdue:
            for item, b in zip(borrows, rows):
                item["overdueDays"] = days_overdue(b.due_at, now)
            # most overdue first
            borrows.sort(key=lambda item: item["overdueDays"], reverse=True)

        return borrows

    @staticmethod
    def get_borrow(principal, borrow_id: int):
        borrow = BorrowRepo.get_with_relations(borrow_id)
        if not borrow:
            raise NotFoundError("Borrow not found")
        if not principal.is_admin and borrow.user_id != principal.id:
            raise ForbiddenError("You can only access your own borrows")
        return borrow
