"""
Database decorators for transaction handling.

Maintenance operations (reconcile, monthly rollover) are written as plain
repository calls and wrapped with @with_auto_commit, which owns the
commit/rollback of the session they run in.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _resolve_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    """
    Find the session for a wrapped call.

    Looks at the 'session' keyword, then a positional AsyncSession, then a
    'session' attribute on the first argument (service methods).
    """
    session = kwargs.get('session')
    if session is not None:
        return session

    for arg in args[:2]:
        if isinstance(arg, AsyncSession):
            return arg

    if args:
        candidate = getattr(args[0], 'session', None)
        if candidate is not None:
            return candidate

    return None


async def _rollback(session: AsyncSession, func_name: str, error: Exception) -> None:
    try:
        await session.rollback()
    except Exception as rollback_error:
        logger.opt(exception=rollback_error).error(
            f"Rollback failed in {func_name}: {rollback_error}"
        )
        return
    logger.info(f"Rolled back {func_name} after {type(error).__name__}")


def with_auto_commit(func: Callable[..., T]) -> Callable[..., T]:
    """
    Commit the session when func returns, roll back when it raises.

    Usage:
        @with_auto_commit
        async def _rollover(self) -> int:
            return await self.referral_repo.rollover_monthly_earnings()

    The original exception is re-raised after the rollback so the caller
    decides what a failure means.
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _resolve_session(args, kwargs)
        if session is None:
            logger.warning(
                f"{func.__name__} uses @with_auto_commit without a session; "
                f"running it uncommitted"
            )
            return await func(*args, **kwargs)

        try:
            result = await func(*args, **kwargs)
            await session.commit()
        except Exception as e:
            await _rollback(session, func.__name__, e)
            raise

        logger.debug(f"Committed {func.__name__}")
        return result

    return wrapper
