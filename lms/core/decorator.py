from functools import wraps

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lms.core.exceptions import AppException, Conflict


class DBException(AppException):
    error_type = "database_error"
    default_message = "Database error occurred"


def db_exception(func):
    """Roll back and translate store errors raised by a service method.

    The wrapped method must live on an object exposing ``self.db``.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError:
            # usually a duplicate entry
            self.db.rollback()
            raise Conflict("Duplicate entry: already exists")
        except AppException:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise DBException("Database error occurred", 500)

    return wrapper
