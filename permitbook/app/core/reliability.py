"""
Reliability utilities.

Every core operation is a single bounded call against the shared store:
it either completes within the configured timeout or fails with a
StorageError. Nothing is retried here; retries belong to the caller.
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.config import settings
from permitbook.app.core.exceptions import AppException, StorageError

logger = logging.getLogger(__name__)


def _session_from(args, kwargs) -> Optional[AsyncSession]:
    db = kwargs.get("db")
    if db is None and args and isinstance(args[0], AsyncSession):
        db = args[0]
    return db


def storage_call(timeout: Optional[float] = None):
    """
    Decorator for service operations that touch the database.

    - bounds the call with asyncio.wait_for
    - rolls the session back and raises StorageError on timeout or any
      SQLAlchemyError the operation did not translate itself
    - lets domain errors (AppException) through untouched
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            limit = timeout if timeout is not None else settings.storage_timeout_seconds
            db = _session_from(args, kwargs)
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=limit)
            except AppException:
                raise
            except asyncio.TimeoutError:
                logger.error("%s timed out after %ss", func.__name__, limit)
                if db is not None:
                    await db.rollback()
                raise StorageError(f"{func.__name__} timed out", cause=f"no response within {limit}s")
            except SQLAlchemyError as e:
                logger.error("%s failed: %s", func.__name__, e)
                if db is not None:
                    await db.rollback()
                raise StorageError("The data store rejected the operation", cause=str(e))
        return wrapper
    return decorator
