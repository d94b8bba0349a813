from library_api.utils.dates import isoformat


def user_summary(user) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def user_to_dict(user) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


def book_summary(book, with_shelf: bool = False) -> dict | None:
    if book is None:
        return None
    data = {"id": book.id, "title": book.title, "author": book.author, "isbn": book.isbn}
    if with_shelf:
        data["shelfLocation"] = book.shelf_location
    return data


def book_to_dict(book) -> dict:
    return {
        "id": book.id,
        "isbn": book.isbn,
        "title": book.title,
        "author": book.author,
        "shelfLocation": book.shelf_location,
        "totalQuantity": book.total_quantity,
        "availableQuantity": book.available_quantity,
        "isActive": bool(book.is_active),
        "createdAt": isoformat(book.created_at),
        "updatedAt": isoformat(book.updated_at),
    }


def borrow_to_dict(borrow, with_relations: bool = True) -> dict:
    data = {
        "id": borrow.id,
        "userId": borrow.user_id,
        "bookId": borrow.book_id,
        "status": borrow.status,
        "borrowedAt": isoformat(borrow.borrowed_at),
        "dueAt": isoformat(borrow.due_at),
        "approvedAt": isoformat(borrow.approved_at),
        "returnedAt": isoformat(borrow.returned_at),
    }
    if with_relations:
        data["user"] = user_summary(borrow.user)
        data["book"] = book_summary(borrow.book)
    return data
