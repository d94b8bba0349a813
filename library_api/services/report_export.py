"""
Renderers for the analytics dict built by ``report_service.build_analytics``.

None of them compute anything: they only lay the same structure out as
CSV rows or as a four-sheet workbook.
"""
import csv
import io

from openpyxl import Workbook

from library_api.errors import ValidationError

CSV_FIELDS = [
    "id",
    "borrowedAt",
    "dueAt",
    "returnedAt",
    "approvedAt",
    "status",
    "overdueDays",
    "user.name",
    "user.email",
    "book.title",
    "book.author",
    "book.isbn",
    "book.shelfLocation",
]

DETAIL_HEADERS = [
    "Borrow ID",
    "Borrowed At",
    "Due At",
    "Returned At",
    "Approved At",
    "Status",
    "Overdue Days",
    "User Name",
    "User Email",
    "Book Title",
    "Book Author",
    "Book ISBN",
    "Shelf Location",
]

FORMATS = ("json", "csv", "xlsx")

CSV_MIMETYPE = "text/csv"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _pluck(item: dict, dotted: str):
    value = item
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def detail_rows(analytics: dict) -> list[list]:
    """detailedBorrows flattened in CSV_FIELDS order."""
    return [[_pluck(item, f) for f in CSV_FIELDS] for item in analytics["detailedBorrows"]]


def to_csv(analytics: dict) -> str:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(CSV_FIELDS)
    for row in detail_rows(analytics):
        writer.writerow(["" if v is None else v for v in row])
    return out.getvalue()


def to_xlsx(analytics: dict) -> bytes:
    summary = analytics["summary"]
    period = analytics["period"]

    wb = Workbook()
    ws = wb.active
    ws.title = "Summary"
    for row in (
        ["Borrowing Report Summary"],
        ["Period", f"{period['startDate']} to {period['endDate']}"],
        [],
        ["Total Borrows", summary["totalBorrows"]],
        ["Pending Borrows", summary["pendingBorrows"]],
        ["Approved Borrows", summary["approvedBorrows"]],
        ["Returned Borrows", summary["returnedBorrows"]],
        ["Rejected Borrows", summary["rejectedBorrows"]],
        ["Overdue Borrows", summary["overdueBorrows"]],
    ):
        ws.append(row)

    ws = wb.create_sheet("Detailed Borrows")
    ws.append(DETAIL_HEADERS)
    for row in detail_rows(analytics):
        ws.append(["" if v is None else v for v in row])

    ws = wb.create_sheet("Top Borrowed Books")
    ws.append(["Book Title", "Author", "ISBN", "Borrow Count"])
    for item in analytics["topBorrowedBooks"]:
        book = item["book"] or {}
        ws.append([book.get("title"), book.get("author"), book.get("isbn"), item["count"]])

    ws = wb.create_sheet("Active Borrowers")
    ws.append(["User Name", "Email", "Borrow Count"])
    for item in analytics["mostActiveBorrowers"]:
        user = item["user"] or {}
        ws.append([user.get("name"), user.get("email"), item["count"]])

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_filename(analytics: dict, fmt: str) -> str:
    period = analytics["period"]
    return f"borrow-report-{period['startDate']}-to-{period['endDate']}.{fmt}"


def check_format(fmt) -> str:
    fmt = (fmt or "json").strip().lower()
    if fmt not in FORMATS:
        raise ValidationError(f"Unsupported report format: {fmt}")
    return fmt
