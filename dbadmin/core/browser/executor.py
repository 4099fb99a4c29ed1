import logging
from typing import Any, Dict, List, Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dbadmin.core.browser.errors import StorageError
from dbadmin.core.browser.statements import Statement

logger = logging.getLogger(__name__)


class StatementExecutor(Protocol):
    """Runs parameterized statements built by dbadmin.core.browser.statements."""

    async def fetch_all(self, statement: Statement) -> List[Dict[str, Any]]:
        """Run the statement and return its result rows."""
        ...

    async def execute(self, statement: Statement) -> int:
        """Run the statement and return the number of affected rows."""
        ...


class SessionExecutor:
    """StatementExecutor bound to one SQLAlchemy async session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_all(self, statement: Statement) -> List[Dict[str, Any]]:
        try:
            result = await self.session.execute(text(statement.sql), statement.params)
            rows = [dict(row) for row in result.mappings().all()]
            if statement.mutates:
                await self.session.commit()
            return rows
        except SQLAlchemyError as error:
            await self._fail(statement, error)

    async def execute(self, statement: Statement) -> int:
        try:
            result = await self.session.execute(text(statement.sql), statement.params)
            affected = result.rowcount
            if statement.mutates:
                await self.session.commit()
            return affected
        except SQLAlchemyError as error:
            await self._fail(statement, error)

    async def _fail(self, statement: Statement, error: SQLAlchemyError):
        await self.session.rollback()
        # Driver text is the most useful thing we can show for constraint errors
        message = str(getattr(error, "orig", None) or error)
        logger.error(f"Statement failed ({statement.sql}): {message}")
        raise StorageError(message) from error
