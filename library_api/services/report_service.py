from flask import current_app
from sqlalchemy import and_

from library_api.errors import ValidationError
from library_api.models.borrow import Borrow
from library_api.models.enums import BorrowStatus
from library_api.repositories.borrow_repo import BorrowRepo
from library_api.services.borrow_query import BorrowFilters, build_borrow_predicate
from library_api.utils.dates import days_overdue, isoformat, parse_datetime, utcnow
from library_api.utils.serializers import book_summary, user_summary

DEFAULT_TOP_N = 10


def _top_by(borrows, key_of, label, entity_of, limit):
    """
    Count borrows per key and keep the `limit` largest counts. sorted() is
    stable, so ties keep the order in which keys were first seen.
    """
    groups = {}
    for b in borrows:
        key = key_of(b)
        if key not in groups:
            groups[key] = {label: entity_of(b), "count": 0}
        groups[key]["count"] += 1
    ranked = sorted(groups.values(), key=lambda g: g["count"], reverse=True)
    return ranked[:limit]


def _detail(borrow, now) -> dict:
    return {
        "id": borrow.id,
        "borrowedAt": isoformat(borrow.borrowed_at),
        "dueAt": isoformat(borrow.due_at),
        "returnedAt": isoformat(borrow.returned_at),
        "approvedAt": isoformat(borrow.approved_at),
        "status": borrow.status,
        "overdueDays": days_overdue(borrow.due_at, now) if borrow.is_overdue(now) else None,
        "user": user_summary(borrow.user),
        "book": book_summary(borrow.book, with_shelf=True),
    }


def build_analytics(borrows, start, end, now, top_n: int = DEFAULT_TOP_N) -> dict:
    """
    Every report format is rendered from this one structure. Values are
    plain JSON types (ISO strings for timestamps).
    """
    status_breakdown = {s.value: 0 for s in BorrowStatus}
    for b in borrows:
        status_breakdown[b.status] = status_breakdown.get(b.status, 0) + 1

    overdue = sum(1 for b in borrows if b.is_overdue(now))

    return {
        "period": {
            "startDate": start.date().isoformat(),
            "endDate": end.date().isoformat(),
        },
        "summary": {
            "totalBorrows": len(borrows),
            "statusBreakdown": status_breakdown,
            "overdueBorrows": overdue,
            "returnedBorrows": status_breakdown[BorrowStatus.RETURNED.value],
            "pendingBorrows": status_breakdown[BorrowStatus.PENDING.value],
            "approvedBorrows": status_breakdown[BorrowStatus.APPROVED.value],
            "rejectedBorrows": status_breakdown[BorrowStatus.REJECTED.value],
        },
        "topBorrowedBooks": _top_by(
            borrows, lambda b: b.book_id, "book", lambda b: book_summary(b.book, with_shelf=True), top_n
        ),
        "mostActiveBorrowers": _top_by(
            borrows, lambda b: b.user_id, "user", lambda b: user_summary(b.user), top_n
        ),
        "detailedBorrows": [_detail(b, now) for b in borrows],
    }


class ReportService:
    @staticmethod
    def generate(args, now=None) -> dict:
        """
        Analytics for borrows created between startDate and endDate
        (both inclusive), optionally narrowed by userId, bookId and status.
        """
        if not args.get("startDate") or not args.get("endDate"):
            raise ValidationError("Start date and end date are required")

        start = parse_datetime(args.get("startDate"), "start date")
        end = parse_datetime(args.get("endDate"), "end date")
        if start >= end:
            raise ValidationError("Start date must be before end date")

        filters = BorrowFilters.from_args(args)
        # the report has its own overdue figures; list-only flags do not apply
        filters = BorrowFilters(user_id=filters.user_id, book_id=filters.book_id, status=filters.status)

        now = now or utcnow()
        borrows = BorrowRepo.find(
            [
                and_(Borrow.borrowed_at >= start, Borrow.borrowed_at <= end),
                build_borrow_predicate(filters, now),
            ],
            order_by=Borrow.borrowed_at.desc(),
        )

        top_n = current_app.config.get("REPORT_TOP_N", DEFAULT_TOP_N)
        analytics = build_analytics(borrows, start, end, now, top_n=top_n)
        current_app.logger.info(
            f"[report] {analytics['period']['startDate']}..{analytics['period']['endDate']} "
            f"total={analytics['summary']['totalBorrows']} overdue={analytics['summary']['overdueBorrows']}"
        )
        return analytics
