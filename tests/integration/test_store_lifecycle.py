"""
Integration tests for the connection lifecycle: schema setup, transactions,
failure reporting, reset and demo seeding.
"""

import sqlite3

import pytest

from ptyxes.config import Settings
from ptyxes.data.database import MEMORY_DB, DatabaseInterface
from ptyxes.data.errors import ClosedStoreError, StoreUnavailableError
from ptyxes.data.schema import TABLES, table_names
from ptyxes.seed import DEMO_PASSWORD, seed_database

FAST_HASH = "pbkdf2:sha256:1000"


class TestSchema:
    """Test database initialization."""

    def test_database_creates_tables(self, db):
        with sqlite3.connect(db.db_path) as conn:
            names = table_names(conn)

        assert sorted(names) == sorted(name for name, _ in TABLES)

    def test_database_creates_indexes(self, db):
        with sqlite3.connect(db.db_path) as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='index' AND name='idx_meal_posts_created'"
            ).fetchone()

        assert row is not None

    def test_reopen_keeps_data(self, db, db_path, alice):
        """Test that schema setup on an existing file is a no-op."""
        db.close()

        with DatabaseInterface(db_path, password_method=FAST_HASH) as reopened:
            assert reopened.get_user_by_username("alice").id == alice.id

    def test_creates_missing_parent_directory(self, temp_db_dir):
        path = f"{temp_db_dir}/nested/dir/ptyxes.db"

        with DatabaseInterface(path) as database:
            assert database.is_database_empty()

    def test_in_memory_database(self):
        with DatabaseInterface(MEMORY_DB, password_method=FAST_HASH) as database:
            assert database.create_user("alice", "secret") is not None

    def test_from_settings(self, db_path):
        settings = Settings(db_path=db_path, echo_sql=True, password_method=FAST_HASH)

        with DatabaseInterface.from_settings(settings) as database:
            assert database.echo_sql
            assert database.password_method == FAST_HASH
            assert database.search_posts() == []


class TestTransactions:
    """Test atomicity and the return to autocommit."""

    def test_commit(self, db, alice):
        with db.transaction():
            db.update_user_reputation(alice.id, 2)
            db.update_user_reputation(alice.id, 3)

        assert db.get_user_by_id(alice.id).reputation == 5
        assert not db.in_transaction

    def test_rollback_on_exception(self, db, alice):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.update_user_reputation(alice.id, 5)
                raise RuntimeError("boom")

        assert db.get_user_by_id(alice.id).reputation == 0
        assert not db.in_transaction

    def test_nested_block_joins_outer(self, db, alice):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.update_user_reputation(alice.id, 1)
                with db.transaction():
                    db.update_user_reputation(alice.id, 1)
                raise RuntimeError("boom")

        assert db.get_user_by_id(alice.id).reputation == 0

    def test_store_failure_is_reported(self, db, alice):
        """Test that a non-constraint sqlite error surfaces as StoreUnavailableError."""
        with pytest.raises(StoreUnavailableError):
            with db.transaction() as conn:
                conn.execute("UPDATE users SET reputation = 7 WHERE id = ?", (alice.id,))
                conn.execute("SELECT * FROM no_such_table")

        assert db.get_user_by_id(alice.id).reputation == 0
        assert not db.in_transaction

    def test_constraint_error_propagates_unchanged(self, db, alice):
        with pytest.raises(sqlite3.IntegrityError):
            with db.transaction() as conn:
                conn.execute(
                    "INSERT INTO users (userName, password, role, reputation, uuid, creationDate) "
                    "VALUES ('alice', 'x', 0, 0, 'u-1', 'now')"
                )

        assert not db.in_transaction


class TestFailures:
    """Test errors the caller cannot fix by changing input."""

    def test_unopenable_path(self, temp_db_dir):
        # A directory cannot be opened as a database file
        with pytest.raises(StoreUnavailableError):
            DatabaseInterface(temp_db_dir)

    def test_use_after_close(self, db):
        db.close()

        assert db.closed
        with pytest.raises(ClosedStoreError):
            db.get_user_by_id(1)
        with pytest.raises(StoreUnavailableError):
            db.search_posts()

    def test_close_is_idempotent(self, db):
        db.close()
        db.close()

        assert db.closed


class TestMaintenance:
    """Test reset and emptiness checks."""

    def test_reset_hard(self, db, pancakes):
        assert not db.is_database_empty()

        assert db.reset_hard(db.db_path)

        assert db.is_database_empty()
        assert db.get_total_post_count() == 0
        assert db.get_ingredient_catalog() == []
        assert db.create_user("alice", "again") is not None

    def test_reset_refuses_other_path(self, db, alice, temp_db_dir):
        assert not db.reset_hard(f"{temp_db_dir}/other.db")
        assert not db.is_database_empty()


class TestSeed:
    """Test demo data seeding."""

    def test_seed_database(self, db):
        counts = seed_database(db)

        assert counts == {"users": 3, "posts": 4, "upvotes": 4, "comments": 3}
        assert db.get_total_post_count() == 4
        assert db.authenticate("alice", DEMO_PASSWORD) is not None
        assert db.get_user_by_username("admin").is_admin()

    def test_seeded_reputation(self, db):
        seed_database(db)

        assert db.get_user_by_username("alice").reputation == 3
        assert db.get_user_by_username("bob").reputation == 1
        assert db.get_user_by_username("admin").reputation == 0

    def test_seeded_feed(self, db):
        seed_database(db)

        assert [p.title for p in db.search_posts()] == [
            "Tomato Salad", "Beef Wellington", "Chickpea Curry", "Pancakes",
        ]
        assert db.count_matching(dietary_filter="Vegetarian") == 3
        assert db.count_matching(time_filter="Long") == 1
        assert len([n for _, n, _ in db.get_ingredient_catalog() if n == "Egg"]) == 1

    def test_seed_twice_fails(self, db):
        seed_database(db)

        with pytest.raises(ValueError):
            seed_database(db)
