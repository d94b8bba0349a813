from datetime import datetime
from library_api.extensions import db
from library_api.models.enums import BorrowStatus


class Borrow(db.Model):
    __tablename__ = "borrows"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=BorrowStatus.PENDING.value, index=True)

    borrowed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    due_at = db.Column(db.DateTime, nullable=False)
    approved_at = db.Column(db.DateTime, nullable=True)
    returned_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("borrows", lazy="dynamic"))
    book = db.relationship("Book", backref=db.backref("borrows", lazy="dynamic"))

    def is_overdue(self, now: datetime) -> bool:
        return (
            self.status == BorrowStatus.APPROVED.value
            and self.returned_at is None
            and self.due_at < now
        )
