"""
Integration tests for meal post operations and the ingredient catalog.
"""

import sqlite3
from datetime import datetime, timedelta

from ptyxes.data.models import MealIngredient, MealPost


def _count(db_path, sql, params=()):
    with sqlite3.connect(db_path) as conn:
        return conn.execute(sql, params).fetchone()[0]


class TestCreatePost:
    """Test saving new posts."""

    def test_create_post_with_ingredients(self, db, pancakes, base_time):
        assert pancakes.id is not None
        assert pancakes.upvotes == 0
        assert pancakes.creation_date == base_time
        assert pancakes.last_modified == base_time

        loaded = db.get_post_by_id(pancakes.id)

        assert loaded.title == "Pancakes"
        assert loaded.dietary_type == "Vegetarian"
        assert [i.name for i in loaded.ingredients] == ["Flour", "Milk"]
        assert loaded.ingredients[1].quantity == 1.5
        assert loaded.ingredients[1].unit == "cup"
        assert loaded.ingredients[1].category == "Dairy"

    def test_creation_date_defaults_to_now(self, db, alice, make_post):
        post = make_post(alice, "Toast")

        assert post.creation_date is not None
        assert datetime.now() - post.creation_date < timedelta(minutes=1)

    def test_unknown_author_rejected(self, db):
        post = MealPost(title="Orphan", user_id=999)

        assert db.create_post(post) is None
        assert db.get_total_post_count() == 0

    def test_invalid_ingredient_rolls_back_everything(self, db, alice):
        """Test that a failing ingredient leaves no post, links or catalog entries."""
        post = MealPost(
            title="Broken",
            user_id=alice.id,
            ingredients=[MealIngredient("Rice", 1, "cup"), MealIngredient(None, 1)],
        )

        assert db.create_post(post) is None
        assert db.get_total_post_count() == 0
        assert db.get_ingredient_catalog() == []
        assert _count(db.db_path, "SELECT COUNT(*) FROM meal_ingredients") == 0
        assert not db.in_transaction

    def test_failed_create_leaves_ingredient_ids_unset(self, db, alice):
        """Test that rolled-back catalog rows are not reported back to the caller."""
        rice = MealIngredient("Rice", 1, "cup")
        post = MealPost(title="Broken", user_id=alice.id, ingredients=[rice, MealIngredient(None, 1)])

        assert db.create_post(post) is None
        assert rice.id is None
        assert post.id is None

    def test_created_ingredients_carry_catalog_ids(self, db, pancakes):
        catalog = {name: ingredient_id for ingredient_id, name, _ in db.get_ingredient_catalog()}

        assert [i.id for i in pancakes.ingredients] == [catalog["Flour"], catalog["Milk"]]


class TestIngredientCatalog:
    """Test ingredient de-duplication."""

    def test_shared_ingredient_stored_once(self, db, pancakes, wellington):
        names = [name for _, name, _ in db.get_ingredient_catalog()]

        assert names.count("Flour") == 1
        assert sorted(names) == ["Beef fillet", "Flour", "Milk"]

        flour_ids = {
            i.id for post in (pancakes, wellington) for i in db.get_ingredients_for_post(post.id)
            if i.name == "Flour"
        }
        assert len(flour_ids) == 1

    def test_resolve_is_get_or_create(self, db):
        first = db.resolve_ingredient("Salt", "Spices")
        second = db.resolve_ingredient("Salt", "Other")

        assert first == second
        assert db.get_ingredient_catalog() == [(first, "Salt", "Spices")]

    def test_names_are_case_sensitive(self, db):
        assert db.resolve_ingredient("Salt") != db.resolve_ingredient("salt")


class TestUpdatePost:
    """Test post edits."""

    def test_update_replaces_ingredients(self, db, pancakes):
        pancakes.title = "Buttermilk Pancakes"
        pancakes.ingredients = [MealIngredient("Buttermilk", 2, "cup", "Dairy")]

        assert db.update_post(pancakes)

        loaded = db.get_post_by_id(pancakes.id)
        assert loaded.title == "Buttermilk Pancakes"
        assert [i.name for i in loaded.ingredients] == ["Buttermilk"]
        assert loaded.last_modified > loaded.creation_date
        assert loaded.upvotes == 0

    def test_update_keeps_upvotes(self, db, pancakes, bob):
        db.upvote(bob.id, pancakes.id)
        pancakes.upvotes = 0

        assert db.update_post(pancakes)
        assert db.get_post_by_id(pancakes.id).upvotes == 1

    def test_update_unknown_post(self, db, alice):
        assert not db.update_post(MealPost(title="Ghost", user_id=alice.id, id=999))
        assert not db.update_post(MealPost(title="Unsaved", user_id=alice.id))

    def test_failed_update_leaves_post_untouched(self, db, pancakes):
        pancakes.title = "Changed"
        sugar = MealIngredient("Sugar", 1, "tbsp")
        pancakes.ingredients = [sugar, MealIngredient(None, 1)]

        assert not db.update_post(pancakes)
        assert sugar.id is None
        assert "Sugar" not in [name for _, name, _ in db.get_ingredient_catalog()]

        loaded = db.get_post_by_id(pancakes.id)
        assert loaded.title == "Pancakes"
        assert [i.name for i in loaded.ingredients] == ["Flour", "Milk"]


class TestDeletePost:
    """Test post deletion and its cascade."""

    def test_delete_post_cascade(self, db, pancakes, wellington, alice, bob):
        assert db.upvote(bob.id, pancakes.id)
        assert db.add_comment(bob.id, pancakes.id, "Yum")
        assert db.upvote(alice.id, wellington.id)

        assert db.delete_post(pancakes.id)

        assert db.get_post_by_id(pancakes.id) is None
        for table in ["upvotes", "comments", "meal_ingredients"]:
            assert _count(db.db_path, f"SELECT COUNT(*) FROM {table} WHERE mealId = ?", (pancakes.id,)) == 0

        # Other posts are untouched
        assert len(db.get_post_by_id(wellington.id).ingredients) == 2
        assert db.get_upvote_count(wellington.id) == 1

        # Earned reputation is kept
        assert db.get_user_by_id(alice.id).reputation == 1

    def test_delete_twice(self, db, pancakes):
        assert db.delete_post(pancakes.id)
        assert not db.delete_post(pancakes.id)


class TestListing:
    """Test paged listings and counts."""

    def test_get_all_posts_newest_first(self, db, alice, make_post, base_time):
        for n in range(5):
            make_post(alice, f"Post {n}", created=base_time + timedelta(days=n))

        first_page = db.get_all_posts(page=0, page_size=2)
        last_page = db.get_all_posts(page=2, page_size=2)

        assert [p.title for p in first_page] == ["Post 4", "Post 3"]
        assert [p.title for p in last_page] == ["Post 0"]
        assert db.get_total_post_count() == 5

    def test_posts_by_user(self, db, alice, bob, pancakes, wellington):
        posts = db.get_posts_by_user(bob.id)

        assert [p.id for p in posts] == [wellington.id]
        assert db.get_post_count_by_user(alice.id) == 1
        assert db.get_post_count_by_user(999) == 0

    def test_get_missing_post(self, db):
        assert db.get_post_by_id(999) is None
