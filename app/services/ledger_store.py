"""Ledger store.

Thin wrapper over the async session factory. Every write goes through
:meth:`LedgerStore.run_in_transaction` so it commits or rolls back as a unit,
and unique violations are translated into domain errors here and nowhere else.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import CursorResult, RowMapping
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from app.core.exceptions import DuplicateReferenceError, UniqueConstraintError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Column (or constraint fragment) → user-facing message
UNIQUE_FIELD_MESSAGES = {
    "email": "An account with this email already exists",
    "phone": "An account with this phone number already exists",
}


def _is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == "23505":
        return True
    message = str(orig).lower()
    return "unique" in message or "duplicate key" in message


def translate_integrity_error(error: IntegrityError) -> Exception:
    """Map a driver IntegrityError onto the domain error taxonomy.

    Non-unique violations (foreign keys, not-null) are returned unchanged.
    """
    if not _is_unique_violation(error):
        return error

    message = str(error.orig).lower()
    if "payment_reference" in message:
        return DuplicateReferenceError()
    for field, detail in UNIQUE_FIELD_MESSAGES.items():
        if f"profiles.{field}" in message or f"uq_profiles_{field}" in message:
            return UniqueConstraintError(field=field, detail=detail)
    return UniqueConstraintError()


class LedgerStore:
    """Durable relational storage used by every service."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def run_query(
        self,
        statement: Executable | str,
        params: dict[str, Any] | None = None,
    ) -> list[RowMapping]:
        """Execute a single statement in its own transaction.

        Args:
            statement: SQLAlchemy executable or raw SQL string
            params: Bind parameters

        Returns:
            list: Result rows as mappings (empty for statements without rows)
        """
        if isinstance(statement, str):
            statement = text(statement)

        async with self._session_factory() as session:
            try:
                async with session.begin():
                    result = await session.execute(statement, params or {})
                    # UPDATE/DELETE without RETURNING come back as rowless cursor results
                    if isinstance(result, CursorResult) and not result.returns_rows:
                        return []
                    return list(result.mappings().all())
            except IntegrityError as e:
                translated = self._translate(e)
                if translated is e:
                    raise
                raise translated from e

    async def run_in_transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``fn(session)`` inside one transaction.

        The transaction commits when ``fn`` returns and rolls back on any
        exception, which is re-raised.
        """
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    return await fn(session)
            except IntegrityError as e:
                translated = self._translate(e)
                if translated is e:
                    raise
                raise translated from e

    @staticmethod
    def _translate(error: IntegrityError) -> Exception:
        translated = translate_integrity_error(error)
        if translated is not error:
            logger.info(f"Unique violation translated to {type(translated).__name__}")
        return translated


def dialect_insert(session: AsyncSession, model: Any):
    """Dialect-specific INSERT supporting ``ON CONFLICT``, or None if unsupported."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    return None
