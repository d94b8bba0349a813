"""
Who may change what on a borrow, as plain tables.

Kept free of Flask and the database so the guards can be exercised on
their own: every function takes the principal, the borrow's current
owner/status and the requested change, and either returns the action to
perform or raises.
"""
from library_api.errors import ConflictError, ForbiddenError, InvalidTransitionError, ValidationError
from library_api.models.enums import BorrowStatus, UserRole

CHANGE_BOOK = "change_book"
CHANGE_STATUS = "change_status"

ALLOWED_TRANSITIONS = {
    BorrowStatus.PENDING: (BorrowStatus.APPROVED, BorrowStatus.REJECTED),
    BorrowStatus.APPROVED: (BorrowStatus.RETURNED,),
    BorrowStatus.REJECTED: (),
    BorrowStatus.RETURNED: (),
}

# (role, requested field) -> (action, reason the field is off limits)
UPDATE_RULES = {
    (UserRole.MEMBER.value, "bookId"): (CHANGE_BOOK, None),
    (UserRole.MEMBER.value, "status"): (None, "Only admins can change the status of a borrow"),
    (UserRole.ADMIN.value, "status"): (CHANGE_STATUS, None),
    (UserRole.ADMIN.value, "bookId"): (None, "Admins can only change the status of a borrow"),
}

UPDATABLE_FIELDS = ("bookId", "status")


def check_transition(current, requested) -> BorrowStatus:
    current = BorrowStatus(current)
    target = BorrowStatus.parse(requested)
    if target is None:
        raise ValidationError("Invalid status provided")
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)
    return target


def resolve_update(principal, owner_id: int, current_status, changes: dict):
    """
    Returns (action, value) for a PATCH on a borrow.

    Members may only move their own PENDING borrow to another book; admins
    may only move the status along ALLOWED_TRANSITIONS.
    """
    role = UserRole.ADMIN.value if principal.is_admin else UserRole.MEMBER.value

    if role == UserRole.MEMBER.value:
        if owner_id != principal.id:
            raise ForbiddenError("You can only update your own borrows")
        if BorrowStatus(current_status) != BorrowStatus.PENDING:
            raise ConflictError("You can only update bookId while borrow is still PENDING")

    requested = [f for f in UPDATABLE_FIELDS if changes.get(f) not in (None, "")]
    for field in requested:
        action, denied = UPDATE_RULES[(role, field)]
        if action is None:
            raise ForbiddenError(denied)

    if role == UserRole.MEMBER.value:
        if "bookId" not in requested:
            raise ValidationError("Book ID is required to update")
        return CHANGE_BOOK, changes["bookId"]

    if "status" not in requested:
        raise ValidationError("Status is required for admin updates")
    return CHANGE_STATUS, check_transition(current_status, changes["status"])


def check_delete(principal, owner_id: int, current_status) -> None:
    if principal.is_admin:
        return
    if owner_id != principal.id:
        raise ForbiddenError("You can only delete your own borrows")
    if BorrowStatus(current_status) != BorrowStatus.PENDING:
        raise ConflictError("You can only delete borrows that are still pending")
