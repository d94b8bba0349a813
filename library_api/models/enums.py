import enum


class UserRole(str, enum.Enum):
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"


class BorrowStatus(str, enum.Enum):
    """
    PENDING -> APPROVED -> RETURNED
    PENDING -> REJECTED
    REJECTED and RETURNED are terminal.
    """
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RETURNED = "RETURNED"

    @classmethod
    def parse(cls, value):
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None
