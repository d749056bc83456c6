"""Unit tests for the persistence layer with a mocked asyncpg pool."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest

import invitegate.database as database_module
from invitegate.database import Database, _affected_rows, get_database, seed_admin
from invitegate.exceptions import (
    ConflictError,
    PersistenceError,
    PersistenceUnavailableError,
)


class TestAffectedRows:
    @pytest.mark.parametrize(
        "status, expected",
        [
            ("DELETE 1", 1),
            ("DELETE 0", 0),
            ("UPDATE 3", 3),
            ("INSERT 0 1", 1),
            ("", 0),
            (None, 0),
        ],
    )
    def test_parses_status_tag(self, status, expected):
        assert _affected_rows(status) == expected


class TestQueryPrimitives:
    async def test_execute_passes_params_positionally(self, db, mock_conn):
        await db.execute("DELETE FROM invites WHERE code = $1", "ab12cd")

        mock_conn.execute.assert_awaited_once_with(
            "DELETE FROM invites WHERE code = $1", "ab12cd"
        )

    async def test_execute_returns_nothing(self, db):
        assert await db.execute("SELECT 1") is None

    async def test_execute_count_returns_row_count(self, db, mock_conn):
        mock_conn.execute.return_value = "DELETE 2"

        assert await db.execute_count("DELETE FROM logs") == 2

    async def test_get_one_returns_none_when_missing(self, db, mock_conn):
        mock_conn.fetchrow.return_value = None

        assert await db.get_one("SELECT 1 FROM users WHERE username = $1", "ghost") is None

    async def test_get_many_returns_list(self, db, mock_conn):
        mock_conn.fetch.return_value = [{"message": "a"}, {"message": "b"}]

        rows = await db.get_many("SELECT message FROM logs ORDER BY id")

        assert rows == [{"message": "a"}, {"message": "b"}]

    async def test_get_many_empty(self, db):
        assert await db.get_many("SELECT message FROM logs") == []

    def test_requires_pool_or_connection(self):
        with pytest.raises(ValueError):
            Database()


class TestErrorTranslation:
    async def test_unique_violation_becomes_conflict(self, db, mock_conn):
        mock_conn.execute.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(ConflictError):
            await db.execute("INSERT INTO users (username) VALUES ($1)", "alice")

    async def test_postgres_error_becomes_persistence_error(self, db, mock_conn):
        mock_conn.fetchrow.side_effect = asyncpg.PostgresError("disk full")

        with pytest.raises(PersistenceError) as exc_info:
            await db.get_one("SELECT 1")

        # Storage detail stays out of the boundary message
        assert "disk full" not in exc_info.value.message

    async def test_os_error_becomes_persistence_error(self, db, mock_conn):
        mock_conn.fetch.side_effect = ConnectionResetError("reset by peer")

        with pytest.raises(PersistenceError):
            await db.get_many("SELECT 1")


class TestTransaction:
    async def test_commits_on_success(self, db, mock_conn):
        async with db.transaction() as tx:
            await tx.execute("DELETE FROM invites WHERE code = $1", "ab12cd")

        assert mock_conn.transactions_started == 1
        assert mock_conn.commits == 1
        assert mock_conn.rollbacks == 0

    async def test_rolls_back_on_error(self, db, mock_conn):
        with pytest.raises(ConflictError):
            async with db.transaction() as tx:
                await tx.execute("DELETE FROM invites WHERE code = $1", "ab12cd")
                raise ConflictError("Username already exists.")

        assert mock_conn.rollbacks == 1
        assert mock_conn.commits == 0

    async def test_bound_database_reuses_connection(self, db, mock_conn):
        async with db.transaction() as tx:
            assert isinstance(tx, Database)
            await tx.get_one("SELECT 1")

        mock_conn.fetchrow.assert_awaited_once()


class TestLifecycle:
    def test_get_database_before_init_raises(self):
        with patch.object(database_module, "_database", None):
            with pytest.raises(RuntimeError, match="not initialized"):
                get_database()

    async def test_init_database_unreachable_is_fatal(self):
        with (
            patch.object(database_module, "_database", None),
            patch(
                "invitegate.database.asyncpg.create_pool",
                new_callable=AsyncMock,
                side_effect=OSError("connection refused"),
            ),
        ):
            with pytest.raises(PersistenceUnavailableError):
                await database_module.init_database()

    async def test_init_database_migration_failure_is_fatal(self):
        pool = MagicMock()
        pool.close = AsyncMock()

        with (
            patch.object(database_module, "_database", None),
            patch(
                "invitegate.database.asyncpg.create_pool",
                new_callable=AsyncMock,
                return_value=pool,
            ),
            patch(
                "invitegate.database.run_migrations",
                new_callable=AsyncMock,
                side_effect=PersistenceError(),
            ),
        ):
            with pytest.raises(PersistenceUnavailableError):
                await database_module.init_database()

        pool.close.assert_awaited_once()

    async def test_init_database_applies_migrations_and_seeds(self):
        pool = MagicMock()

        with (
            patch.object(database_module, "_database", None),
            patch(
                "invitegate.database.asyncpg.create_pool",
                new_callable=AsyncMock,
                return_value=pool,
            ),
            patch("invitegate.database.run_migrations", new_callable=AsyncMock) as mock_migrate,
            patch("invitegate.database.seed_admin", new_callable=AsyncMock) as mock_seed,
        ):
            result = await database_module.init_database()
            assert database_module._database is result

        mock_migrate.assert_awaited_once_with(result)
        mock_seed.assert_awaited_once_with(result)

    async def test_run_migrations_applies_schema_files(self, db, mock_conn):
        await database_module.run_migrations(db)

        statements = [call.args[0] for call in mock_conn.execute.call_args_list]
        assert any("CREATE TABLE IF NOT EXISTS users" in s for s in statements)
        assert any("ON DELETE CASCADE" in s for s in statements)

    def test_migrations_live_inside_the_package(self):
        package_dir = Path(database_module.__file__).parent

        assert database_module.MIGRATIONS_DIR.parent == package_dir
        assert list(database_module.MIGRATIONS_DIR.glob("*.sql"))

    async def test_run_migrations_executes_every_schema_file(self, db, mock_conn):
        expected = sorted(database_module.MIGRATIONS_DIR.glob("*.sql"))

        await database_module.run_migrations(db)

        applied = [call.args[0] for call in mock_conn.execute.call_args_list]
        assert applied == [f.read_text() for f in expected]

    async def test_missing_migrations_directory_is_fatal(self, db, mock_conn, tmp_path):
        with patch.object(database_module, "MIGRATIONS_DIR", tmp_path / "absent"):
            with pytest.raises(PersistenceUnavailableError, match="Schema migrations are missing."):
                await database_module.run_migrations(db)

        mock_conn.execute.assert_not_awaited()


class TestSeedAdmin:
    async def test_inserts_reserved_admin_idempotently(self, db, mock_conn):
        mock_conn.fetchrow.return_value = {"password_hash": "$2b$12$rotated"}

        await seed_admin(db)

        sql, username, password_hash = mock_conn.execute.call_args.args
        assert "ON CONFLICT (username) DO NOTHING" in sql
        assert username == "admin"
        assert password_hash == "DEFAULT PASSWORD HASH"

    async def test_warns_while_placeholder_active(self, db, mock_conn):
        mock_conn.fetchrow.return_value = {"password_hash": "DEFAULT PASSWORD HASH"}

        with patch.object(database_module, "logger") as mock_logger:
            await seed_admin(db)

        warned = [c.args[0] for c in mock_logger.warning.call_args_list]
        assert "admin_placeholder_credential_active" in warned
