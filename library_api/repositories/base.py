from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from library_api.errors import AppError
from library_api.extensions import db
from library_api.utils.db_errors import translate_store_error


def transaction(fn):
    """
    Run ``fn(session)`` as one unit of work.

    Commits once at the end. Any exception rolls back every write made by
    ``fn`` so callers never observe half of a status change plus inventory
    adjustment. Store exceptions leave as typed ``AppError``s.
    """
    session = db.session
    try:
        result = fn(session)
        session.commit()
        return result
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        err = translate_store_error(e)
        if err.status_code >= 500:
            current_app.logger.error(f"[store] transaction aborted: {e}")
        raise err from e
    except Exception:
        session.rollback()
        raise
