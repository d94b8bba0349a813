from datetime import timedelta

import pytest

from library_api.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from library_api.extensions import db
from library_api.models.book import Book
from library_api.models.borrow import Borrow
from library_api.services.borrow_service import BorrowService
from library_api.utils.auth import Principal
from library_api.utils.dates import utcnow


def _due(days=14):
    return (utcnow() + timedelta(days=days)).isoformat()


def _book(book_id):
    db.session.expire_all()
    return db.session.get(Book, book_id)


def _borrow(borrow_id):
    db.session.expire_all()
    return db.session.get(Borrow, borrow_id)


def _assert_inventory_in_range():
    db.session.expire_all()
    for book in Book.query.all():
        assert 0 <= book.available_quantity <= book.total_quantity


class TestCreate:
    def test_creates_pending_without_touching_inventory(self, member, make_book, as_principal):
        book = make_book(total=2)
        b = BorrowService.create_borrow(as_principal(member), {"bookId": book.id, "dueAt": _due()})

        assert b.status == "PENDING"
        assert b.user_id == member.id
        assert b.approved_at is None and b.returned_at is None
        assert _book(book.id).available_quantity == 2

    def test_accepts_string_ids_and_zulu_dates(self, member, make_book, as_principal):
        book = make_book()
        b = BorrowService.create_borrow(
            as_principal(member), {"bookId": str(book.id), "dueAt": "2030-01-15T10:00:00Z"}
        )
        assert b.due_at.year == 2030 and b.due_at.hour == 10

    @pytest.mark.parametrize("payload", [
        {},
        {"bookId": 1},
        {"dueAt": "2030-01-01"},
    ])
    def test_missing_fields(self, member, as_principal, payload):
        with pytest.raises(ValidationError):
            BorrowService.create_borrow(as_principal(member), payload)

    def test_unparseable_due_date(self, member, make_book, as_principal):
        book = make_book()
        with pytest.raises(ValidationError):
            BorrowService.create_borrow(as_principal(member), {"bookId": book.id, "dueAt": "next tuesday"})

    def test_unknown_book(self, member, as_principal):
        with pytest.raises(NotFoundError):
            BorrowService.create_borrow(as_principal(member), {"bookId": 999, "dueAt": _due()})

    def test_inactive_book(self, member, make_book, as_principal):
        book = make_book(active=False)
        with pytest.raises(ConflictError):
            BorrowService.create_borrow(as_principal(member), {"bookId": book.id, "dueAt": _due()})

    @pytest.mark.parametrize("book_id", [True, 1.5, [1], {"id": 1}, "one"])
    def test_book_id_must_be_a_whole_number(self, member, make_book, as_principal, book_id):
        make_book()
        with pytest.raises(ValidationError):
            BorrowService.create_borrow(as_principal(member), {"bookId": book_id, "dueAt": _due()})
        assert Borrow.query.count() == 0

    def test_unknown_user_cannot_request(self, make_book):
        book = make_book()
        ghost = Principal(id=4242, role="MEMBER")
        with pytest.raises(UnauthorizedError):
            BorrowService.create_borrow(ghost, {"bookId": book.id, "dueAt": _due()})
        assert Borrow.query.count() == 0

    def test_second_active_borrow_for_same_book_conflicts(self, member, make_book, as_principal):
        book = make_book(total=3)
        BorrowService.create_borrow(as_principal(member), {"bookId": book.id, "dueAt": _due()})

        with pytest.raises(ConflictError):
            BorrowService.create_borrow(as_principal(member), {"bookId": book.id, "dueAt": _due()})
        assert Borrow.query.count() == 1

    def test_new_request_allowed_after_previous_one_ended(self, member, make_book, make_borrow, as_principal):
        book = make_book()
        make_borrow(member, book, status="RETURNED", returned_at=utcnow())
        make_borrow(member, book, status="REJECTED")

        b = BorrowService.create_borrow(as_principal(member), {"bookId": book.id, "dueAt": _due()})
        assert b.status == "PENDING"


class TestStatusTransitions:
    def test_approve_sets_timestamp_and_takes_a_copy(self, admin, member, make_book, make_borrow, as_principal):
        book = make_book(total=2)
        borrow = make_borrow(member, book)

        b = BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": "APPROVED"})

        assert b.status == "APPROVED"
        assert b.approved_at is not None
        assert _book(book.id).available_quantity == 1

    def test_approve_with_no_copies_left_changes_nothing(self, admin, member, make_book, make_borrow, as_principal):
        book = make_book(total=1, available=0)
        borrow = make_borrow(member, book)

        with pytest.raises(ConflictError):
            BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": "APPROVED"})

        assert _book(book.id).available_quantity == 0
        after = _borrow(borrow.id)
        assert after.status == "PENDING"
        assert after.approved_at is None

    def test_reject_leaves_inventory_alone(self, admin, member, make_book, make_borrow, as_principal):
        book = make_book(total=1)
        borrow = make_borrow(member, book)

        b = BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": "REJECTED"})

        assert b.status == "REJECTED"
        assert _book(book.id).available_quantity == 1

    def test_approve_then_return_restores_availability(self, admin, member, make_book, make_borrow, as_principal):
        book = make_book(total=3, available=2)
        borrow = make_borrow(member, book)

        BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": "APPROVED"})
        assert _book(book.id).available_quantity == 1

        b = BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": "RETURNED"})
        assert b.returned_at is not None
        assert _book(book.id).available_quantity == 2

    @pytest.mark.parametrize("terminal", ["REJECTED", "RETURNED"])
    def test_terminal_borrows_stay_put(self, admin, member, make_book, make_borrow, as_principal, terminal):
        book = make_book(total=2, available=2)
        borrow = make_borrow(member, book, status=terminal)

        for target in ("PENDING", "APPROVED", "REJECTED", "RETURNED"):
            with pytest.raises(InvalidTransitionError):
                BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": target})

        assert _borrow(borrow.id).status == terminal
        assert _book(book.id).available_quantity == 2

    def test_pending_cannot_jump_to_returned(self, admin, member, make_book, make_borrow, as_principal):
        book = make_book(total=1)
        borrow = make_borrow(member, book)

        with pytest.raises(InvalidTransitionError) as exc:
            BorrowService.update_borrow(as_principal(admin), borrow.id, {"status": "RETURNED"})
        assert exc.value.message == "Cannot change status from PENDING to RETURNED"
        assert _book(book.id).available_quantity == 1

    def test_member_cannot_approve(self, member, make_book, make_borrow, as_principal):
        book = make_book()
        borrow = make_borrow(member, book)
        with pytest.raises(ForbiddenError):
            BorrowService.update_borrow(as_principal(member), borrow.id, {"status": "APPROVED"})

    def test_unknown_borrow(self, admin, as_principal):
        with pytest.raises(NotFoundError):
            BorrowService.update_borrow(as_principal(admin), 12345, {"status": "APPROVED"})

    def test_inventory_stays_in_range_through_a_lifecycle(
        self, admin, member, other_member, make_book, make_borrow, as_principal
    ):
        book = make_book(total=2)
        first = make_borrow(member, book)
        second = make_borrow(other_member, book)
        boss = as_principal(admin)

        BorrowService.update_borrow(boss, first.id, {"status": "APPROVED"})
        _assert_inventory_in_range()
        BorrowService.update_borrow(boss, second.id, {"status": "APPROVED"})
        _assert_inventory_in_range()
        BorrowService.update_borrow(boss, first.id, {"status": "RETURNED"})
        BorrowService.delete_borrow(boss, second.id)
        _assert_inventory_in_range()
        assert _book(book.id).available_quantity == 2


class TestChangeBook:
    def test_owner_moves_pending_borrow_to_other_book(self, member, make_book, make_borrow, as_principal):
        old, new = make_book(), make_book()
        borrow = make_borrow(member, old)

        b = BorrowService.update_borrow(as_principal(member), borrow.id, {"bookId": new.id})

        assert b.book_id == new.id
        assert b.status == "PENDING"

    def test_new_book_is_revalidated(self, member, make_book, make_borrow, as_principal):
        borrow = make_borrow(member, make_book())
        inactive = make_book(active=False)

        with pytest.raises(NotFoundError):
            BorrowService.update_borrow(as_principal(member), borrow.id, {"bookId": 999})
        with pytest.raises(ConflictError):
            BorrowService.update_borrow(as_principal(member), borrow.id, {"bookId": inactive.id})

    def test_other_member_is_forbidden(self, member, other_member, make_book, make_borrow, as_principal):
        borrow = make_borrow(member, make_book())
        with pytest.raises(ForbiddenError):
            BorrowService.update_borrow(as_principal(other_member), borrow.id, {"bookId": make_book().id})

    def test_not_after_approval(self, member, make_book, make_borrow, as_principal):
        book = make_book(total=1, available=0)
        borrow = make_borrow(member, book, status="APPROVED", approved_at=utcnow())
        with pytest.raises(ConflictError):
            BorrowService.update_borrow(as_principal(member), borrow.id, {"bookId": make_book().id})


class TestDelete:
    def test_admin_deleting_approved_borrow_returns_the_copy(
        self, admin, member, make_book, make_borrow, as_principal
    ):
        book = make_book(total=1, available=0)
        borrow = make_borrow(member, book, status="APPROVED", approved_at=utcnow())
        borrow_id, book_id = borrow.id, book.id

        BorrowService.delete_borrow(as_principal(admin), borrow_id)

        assert _borrow(borrow_id) is None
        assert _book(book_id).available_quantity == 1

    def test_admin_deleting_pending_borrow_keeps_inventory(self, admin, member, make_book, make_borrow, as_principal):
        book = make_book(total=1)
        borrow = make_borrow(member, book)
        borrow_id, book_id = borrow.id, book.id

        BorrowService.delete_borrow(as_principal(admin), borrow_id)

        assert _borrow(borrow_id) is None
        assert _book(book_id).available_quantity == 1

    def test_owner_deletes_own_pending(self, member, make_book, make_borrow, as_principal):
        borrow = make_borrow(member, make_book())
        borrow_id = borrow.id
        BorrowService.delete_borrow(as_principal(member), borrow_id)
        assert _borrow(borrow_id) is None

    def test_owner_cannot_delete_after_decision(self, member, make_book, make_borrow, as_principal):
        book = make_book(total=1, available=0)
        borrow = make_borrow(member, book, status="APPROVED", approved_at=utcnow())

        with pytest.raises(ConflictError):
            BorrowService.delete_borrow(as_principal(member), borrow.id)
        assert _borrow(borrow.id) is not None
        assert _book(book.id).available_quantity == 0

    def test_other_member_cannot_delete(self, member, other_member, make_book, make_borrow, as_principal):
        borrow = make_borrow(member, make_book())
        with pytest.raises(ForbiddenError):
            BorrowService.delete_borrow(as_principal(other_member), borrow.id)

    def test_missing_borrow(self, admin, as_principal):
        with pytest.raises(NotFoundError):
            BorrowService.delete_borrow(as_principal(admin), 4242)


def test_single_copy_scenario(admin, make_user, make_book, as_principal):
    """Two members compete for the only copy; the second gets it once the first returns it."""
    alice, bob = make_user(name="Alice"), make_user(name="Bob")
    boss = as_principal(admin)
    book = make_book(total=1)

    a = BorrowService.create_borrow(as_principal(alice), {"bookId": book.id, "dueAt": _due()})
    BorrowService.update_borrow(boss, a.id, {"status": "APPROVED"})
    assert _book(book.id).available_quantity == 0

    b = BorrowService.create_borrow(as_principal(bob), {"bookId": book.id, "dueAt": _due()})
    assert b.status == "PENDING"

    with pytest.raises(ConflictError):
        BorrowService.update_borrow(boss, b.id, {"status": "APPROVED"})
    assert _borrow(b.id).status == "PENDING"

    BorrowService.update_borrow(boss, a.id, {"status": "RETURNED"})
    assert _book(book.id).available_quantity == 1

    approved = BorrowService.update_borrow(boss, b.id, {"status": "APPROVED"})
    assert approved.status == "APPROVED"
    assert _book(book.id).available_quantity == 0
