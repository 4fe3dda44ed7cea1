"""Translation of storage failures into the booking error taxonomy"""

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.errors import ConflictError, BackendUnavailableError

logger = structlog.get_logger()


async def commit_or_raise(
    db: AsyncSession,
    operation: str,
    conflict_code: Optional[str] = None,
    conflict_message: Optional[str] = None,
    **context,
) -> None:
    """Commit the session; never retried here, the caller decides"""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Write conflict", operation=operation, error=str(e.orig), **context)
        raise ConflictError(conflict_message, code=conflict_code, detail=str(e.orig))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Write failed", operation=operation, error=str(e), **context)
        raise BackendUnavailableError(detail=str(e))
