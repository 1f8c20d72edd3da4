"""
Pytest configuration and shared fixtures.

Fixtures are reusable test setup that can be injected into tests.
"""

import pytest
import tempfile
import shutil
from datetime import datetime, timedelta
from pathlib import Path

from ptyxes.data.database import DatabaseInterface
from ptyxes.data.models import MealIngredient, MealPost, Role

# Cheap hash so user fixtures stay fast
FAST_HASH = "pbkdf2:sha256:1000"


@pytest.fixture
def temp_db_dir():
    """
    Create a temporary database directory for testing.

    This fixture is automatically cleaned up after each test.
    """
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def db_path(temp_db_dir):
    return str(Path(temp_db_dir) / "ptyxes_test.db")


@pytest.fixture
def db(db_path):
    """
    Create a fresh DatabaseInterface for each test.

    Usage in tests:
        def test_something(db):
            db.create_user("alice", "secret")
    """
    database = DatabaseInterface(db_path=db_path, password_method=FAST_HASH)
    yield database
    database.close()


@pytest.fixture
def alice(db):
    return db.create_user("alice", "alice-pw", "alice@example.com")


@pytest.fixture
def bob(db):
    return db.create_user("bob", "bob-pw", "bob@example.com")


@pytest.fixture
def admin(db):
    return db.create_user("admin", "admin-pw", "admin@example.com", Role.ADMIN)


@pytest.fixture
def make_post(db):
    """
    Factory fixture that saves a post for an author.

    Usage in tests:
        def test_something(make_post, alice):
            post = make_post(alice, "Soup", prep=10, cook=20)
    """
    def _make(
        author,
        title="Untitled",
        prep=10,
        cook=10,
        difficulty="Easy",
        dietary="None",
        description="",
        ingredients=None,
        created=None,
    ):
        post = MealPost(
            title=title,
            user_id=author.id,
            description=description,
            preparation_time=prep,
            cooking_time=cook,
            difficulty=difficulty,
            dietary_type=dietary,
            ingredients=ingredients or [],
            creation_date=created,
        )
        return db.create_post(post)

    return _make


@pytest.fixture
def base_time():
    """Fixed reference time, older than anything created during a test."""
    return datetime(2025, 3, 1, 12, 0, 0)


@pytest.fixture
def pancakes(make_post, alice, base_time):
    """Vegetarian post by alice with two ingredients."""
    return make_post(
        alice,
        "Pancakes",
        prep=10,
        cook=15,
        dietary="Vegetarian",
        description="Fluffy weekend breakfast",
        ingredients=[
            MealIngredient("Flour", 2, "cup", "Baking"),
            MealIngredient("Milk", 1.5, "cup", "Dairy"),
        ],
        created=base_time,
    )


@pytest.fixture
def wellington(make_post, bob, base_time):
    """Long, hard post by bob."""
    return make_post(
        bob,
        "Beef Wellington",
        prep=45,
        cook=60,
        difficulty="Hard",
        description="Showpiece roast in pastry",
        ingredients=[
            MealIngredient("Beef fillet", 1, "kg", "Meat"),
            MealIngredient("Flour", 0.5, "cup", "Baking"),
        ],
        created=base_time + timedelta(hours=1),
    )
