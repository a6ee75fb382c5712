from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreUnavailable


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise any SQLAlchemy failure as StoreUnavailable."""
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"{operation} failed: {e.__class__.__name__}", details=[str(e)]) from e
