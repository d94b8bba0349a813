from datetime import datetime
from library_api.extensions import db


class Book(db.Model):
    __tablename__ = "books"
    __table_args__ = (
        db.CheckConstraint("total_quantity >= 0", name="ck_books_total_non_negative"),
        db.CheckConstraint(
            "available_quantity >= 0 AND available_quantity <= total_quantity",
            name="ck_books_available_in_range",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    isbn = db.Column(db.String(32), unique=True, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)
    shelf_location = db.Column(db.String(64), nullable=False)

    total_quantity = db.Column(db.Integer, nullable=False, default=1)
    # copies not lent out by an APPROVED borrow; only the borrow lifecycle and
    # total_quantity edits move it
    available_quantity = db.Column(db.Integer, nullable=False, default=1)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def lent_out(self) -> int:
        return self.total_quantity - self.available_quantity
