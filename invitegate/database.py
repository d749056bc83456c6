"""Database connection, parameterized query primitives and migration management."""

from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import AsyncIterator, Iterator, Optional

import asyncpg
import structlog

from invitegate.config import get_settings
from invitegate.exceptions import (
    ConflictError,
    PersistenceError,
    PersistenceUnavailableError,
)

logger = structlog.get_logger(__name__)

# Shipped as package data alongside this module
MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Process-wide handle, injected into the services by the API dependencies
_database: Optional["Database"] = None


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Translate driver errors into the service error taxonomy."""
    try:
        yield
    except asyncpg.UniqueViolationError as e:
        logger.info(
            "database_unique_violation",
            operation=operation,
            constraint=getattr(e, "constraint_name", None),
        )
        raise ConflictError("Record already exists.") from e
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error("database_operation_failed", operation=operation, error=str(e))
        raise PersistenceError() from e


def _affected_rows(status: str) -> int:
    """Parse the row count from a command status tag such as 'DELETE 1'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class Database:
    """Parameterized access to the identity store.

    Either pool-backed (each call acquires a connection) or bound to a single
    connection inside a transaction. Values are always passed as positional
    parameters ($1, $2, ...), never interpolated into statements.
    """

    def __init__(
        self,
        pool: Optional[asyncpg.Pool] = None,
        connection: Optional[asyncpg.Connection] = None,
    ):
        if pool is None and connection is None:
            raise ValueError("Database requires a pool or a connection")
        self._pool = pool
        self._connection = connection

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:
        if self._connection is not None:
            yield self._connection
        else:
            async with self._pool.acquire() as conn:
                yield conn

    async def execute(self, statement: str, *params) -> None:
        """Run a mutation and discard its status."""
        with _storage_errors("execute"):
            async with self._acquire() as conn:
                await conn.execute(statement, *params)

    async def execute_count(self, statement: str, *params) -> int:
        """Run a mutation and return the number of affected rows.

        Used for conditional writes where the row count is the success signal.
        """
        with _storage_errors("execute_count"):
            async with self._acquire() as conn:
                status = await conn.execute(statement, *params)
        return _affected_rows(status)

    async def get_one(self, query: str, *params) -> Optional[asyncpg.Record]:
        """Return the first matching record, or None."""
        with _storage_errors("get_one"):
            async with self._acquire() as conn:
                return await conn.fetchrow(query, *params)

    async def get_many(self, query: str, *params) -> list[asyncpg.Record]:
        """Return all matching records (possibly empty)."""
        with _storage_errors("get_many"):
            async with self._acquire() as conn:
                rows = await conn.fetch(query, *params)
        return list(rows)

    async def close(self) -> None:
        """Close the underlying pool (no-op for connection-bound handles)."""
        if self._pool is not None:
            await self._pool.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Database"]:
        """Yield a Database bound to one connection inside a transaction.

        Commits on normal exit and rolls back if the block raises.
        """
        with _storage_errors("transaction"):
            async with self._acquire() as conn:
                async with conn.transaction():
                    yield Database(connection=conn)


def get_database() -> Database:
    """Get the process-wide database handle.

    Returns:
        Database bound to the connection pool

    Raises:
        RuntimeError: If the database is not initialized
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _database


async def init_database() -> Database:
    """Open the connection pool, apply migrations and seed the admin identity.

    Returns:
        Database bound to the connection pool

    Raises:
        PersistenceUnavailableError: If the store cannot be opened or provisioned
    """
    global _database

    if _database is not None:
        return _database

    settings = get_settings()

    try:
        pool = await asyncpg.create_pool(
            settings.postgres_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            command_timeout=settings.command_timeout,
        )
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error("database_pool_creation_failed", error=str(e))
        raise PersistenceUnavailableError() from e

    logger.info(
        "database_pool_created",
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    database = Database(pool=pool)
    try:
        await run_migrations(database)
        await seed_admin(database)
    except PersistenceError as e:
        await pool.close()
        raise PersistenceUnavailableError() from e

    _database = database
    return _database


async def close_database() -> None:
    """Close the database connection pool."""
    global _database

    if _database is not None:
        await _database.close()
        _database = None
        logger.info("database_pool_closed")


async def run_migrations(database: Database) -> None:
    """Run all SQL migrations in order.

    Migrations are idempotent (IF NOT EXISTS) and can be re-run safely.
    """
    if not MIGRATIONS_DIR.is_dir():
        logger.error("migrations_directory_not_found", path=str(MIGRATIONS_DIR))
        raise PersistenceUnavailableError("Schema migrations are missing.")

    migration_files = sorted(MIGRATIONS_DIR.glob("*.sql"))

    for migration_file in migration_files:
        await database.execute(migration_file.read_text())
        logger.info("migration_applied", file=migration_file.name)


async def seed_admin(database: Database) -> None:
    """Create the reserved administrator identity on first run.

    The placeholder hash is not a valid bcrypt hash, so the account cannot be
    signed into until the operator replaces it.
    """
    settings = get_settings()

    created = await database.execute_count(
        """
        INSERT INTO users (username, password_hash, is_admin)
        VALUES ($1, $2, TRUE)
        ON CONFLICT (username) DO NOTHING
        """,
        settings.admin_username,
        settings.admin_placeholder_hash,
    )
    if created:
        logger.info("admin_identity_seeded", username=settings.admin_username)

    row = await database.get_one(
        "SELECT password_hash FROM users WHERE username = $1",
        settings.admin_username,
    )
    if row is not None and row["password_hash"] == settings.admin_placeholder_hash:
        logger.warning(
            "admin_placeholder_credential_active",
            username=settings.admin_username,
            note="Replace the admin password hash before production use",
        )


async def health_check() -> bool:
    """Check database connectivity.

    Returns:
        True if database is healthy, False otherwise
    """
    try:
        row = await get_database().get_one("SELECT 1 AS ok")
        return row is not None and row["ok"] == 1
    except (RuntimeError, PersistenceError) as e:
        logger.error("database_health_check_failed", error=str(e))
        return False
