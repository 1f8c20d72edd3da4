"""
Demo data for a fresh database.

Creates an admin, two regular users and a handful of posts covering every
difficulty, time bucket and dietary type, plus a few upvotes and comments.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict

from ptyxes.data.database import DatabaseInterface
from ptyxes.data.models import Difficulty, MealIngredient, MealPost, Role

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_POSTS = [
    {
        "author": "alice",
        "title": "Pancakes",
        "description": "Fluffy weekend pancakes",
        "instructions": "Whisk, rest for 5 minutes, fry in butter.",
        "preparation_time": 10,
        "cooking_time": 15,
        "servings": 4,
        "difficulty": Difficulty.EASY,
        "dietary_type": "Vegetarian",
        "ingredients": [
            MealIngredient("Flour", 2, "cup", "Baking"),
            MealIngredient("Milk", 1.5, "cup", "Dairy"),
            MealIngredient("Egg", 2, None, "Dairy"),
        ],
    },
    {
        "author": "alice",
        "title": "Chickpea Curry",
        "description": "Creamy coconut curry",
        "instructions": "Fry the spices, add chickpeas and coconut milk, simmer.",
        "preparation_time": 15,
        "cooking_time": 30,
        "servings": 4,
        "difficulty": Difficulty.MEDIUM,
        "dietary_type": "Vegan",
        "ingredients": [
            MealIngredient("Chickpeas", 400, "g", "Legumes"),
            MealIngredient("Coconut milk", 1, "can", "Pantry"),
            MealIngredient("Curry powder", 2, "tbsp", "Spices"),
        ],
    },
    {
        "author": "bob",
        "title": "Beef Wellington",
        "description": "Showpiece roast wrapped in pastry",
        "instructions": "Sear, wrap in duxelles and pastry, bake.",
        "preparation_time": 45,
        "cooking_time": 60,
        "servings": 6,
        "difficulty": Difficulty.HARD,
        "dietary_type": "None",
        "ingredients": [
            MealIngredient("Beef fillet", 1, "kg", "Meat"),
            MealIngredient("Puff pastry", 500, "g", "Baking"),
            MealIngredient("Egg", 1, None, "Dairy"),
        ],
    },
    {
        "author": "bob",
        "title": "Tomato Salad",
        "description": "Summer tomatoes with basil",
        "instructions": "Slice, season, dress.",
        "preparation_time": 10,
        "cooking_time": 0,
        "servings": 2,
        "difficulty": Difficulty.EASY,
        "dietary_type": "Vegan",
        "ingredients": [
            MealIngredient("Tomato", 4, None, "Produce"),
            MealIngredient("Salt", 0, None, "Spices"),
        ],
    },
]


def seed_database(db: DatabaseInterface) -> Dict[str, int]:
    """
    Populate an empty database with demo content.

    Args:
        db: Open DatabaseInterface

    Returns:
        Counts of created users, posts, upvotes and comments
    """
    users = {
        "admin": db.create_user("admin", DEMO_PASSWORD, "admin@example.com", Role.ADMIN),
        "alice": db.create_user("alice", DEMO_PASSWORD, "alice@example.com"),
        "bob": db.create_user("bob", DEMO_PASSWORD, "bob@example.com"),
    }
    missing = [name for name, user in users.items() if user is None]
    if missing:
        raise ValueError(f"Demo users already exist: {', '.join(missing)}")

    # Spread creation dates so the default ordering is deterministic
    start = datetime.now() - timedelta(days=len(DEMO_POSTS))
    posts = []
    for offset, data in enumerate(DEMO_POSTS):
        fields = {k: v for k, v in data.items() if k not in ("author", "ingredients")}
        post = MealPost(
            user_id=users[data["author"]].id,
            ingredients=[MealIngredient(i.name, i.quantity, i.unit, i.category) for i in data["ingredients"]],
            creation_date=start + timedelta(days=offset),
            **fields,
        )
        posts.append(db.create_post(post))

    upvotes = 0
    for voter, post in [("bob", posts[0]), ("admin", posts[0]), ("alice", posts[2]), ("admin", posts[1])]:
        if db.upvote(users[voter].id, post.id):
            upvotes += 1

    comments = 0
    for author, post, text in [
        ("bob", posts[0], "Made these on Sunday, great recipe!"),
        ("alice", posts[2], "How long do you rest it before slicing?"),
        ("bob", posts[2], "About ten minutes."),
    ]:
        if db.add_comment(users[author].id, post.id, text):
            comments += 1

    counts = {"users": len(users), "posts": len(posts), "upvotes": upvotes, "comments": comments}
    logger.info(f"Seeded database: {counts}")
    return counts
