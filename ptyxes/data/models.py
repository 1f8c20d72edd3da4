"""
Data models for the Ptyxes recipe-sharing store.

These models define the core entities used throughout the system:
- User: Registered account with role and reputation
- MealPost: A shared recipe with its ingredient list
- MealIngredient: Quantity record linking a post to a catalog ingredient
- Comment: A user's comment on a post
- Upvote: One user's upvote of one post
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict


# Total-time boundaries (preparation + cooking, minutes) shared with the feed filter
QUICK_MAX_EXCLUSIVE = 30
MEDIUM_MAX_INCLUSIVE = 60


class Role(int, Enum):
    """Account roles. Stored as the integer value."""
    REGULAR = 0
    ADMIN = 1


class Difficulty(str, Enum):
    """Recipe difficulty levels."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


def _format_date(value: Optional[datetime], pattern: str) -> str:
    if value is None:
        return "N/A"
    # %-d is platform specific, strip the leading zero by hand
    return value.strftime(pattern).replace(" 0", " ")


@dataclass
class User:
    """A registered account."""

    username: str
    email: Optional[str] = None
    role: Role = Role.REGULAR
    reputation: int = 0
    uuid: Optional[str] = None
    creation_date: Optional[datetime] = None
    id: Optional[int] = None
    password_hash: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        """Accept raw integers for role (as stored in the database)."""
        if not isinstance(self.role, Role):
            self.role = Role(self.role)

    def is_admin(self) -> bool:
        """Check if the user may moderate other users' content."""
        return self.role is Role.ADMIN

    def formatted_creation_date(self) -> str:
        """Creation date as e.g. "March 5, 2025", or "N/A"."""
        return _format_date(self.creation_date, "%B %d, %Y")

    def membership_days(self, now: Optional[datetime] = None) -> int:
        """Number of whole days since the account was created."""
        if self.creation_date is None:
            return 0
        now = now or datetime.now()
        return (now - self.creation_date).days

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization. Never includes the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": int(self.role),
            "reputation": self.reputation,
            "uuid": self.uuid,
            "creation_date": self.creation_date.isoformat() if self.creation_date else None,
        }

    def __str__(self) -> str:
        return (
            f"User(id={self.id}, username='{self.username}', role={self.role.name.lower()}, "
            f"reputation={self.reputation}, joined={self.formatted_creation_date()})"
        )


@dataclass
class MealIngredient:
    """An ingredient as used by one post: catalog name/category plus quantity and unit."""

    name: str
    quantity: float = 0.0
    unit: Optional[str] = None
    category: Optional[str] = None
    id: Optional[int] = None  # Catalog ingredient id, set when read back

    _FRACTIONS = {0.25: "¼", 0.5: "½", 0.75: "¾", 0.33: "⅓", 0.333: "⅓", 0.67: "⅔", 0.666: "⅔"}
    _UNCOUNTED_UNITS = ("pinch", "oz", "lb")

    def _quantity_str(self) -> str:
        q = self.quantity
        for value, glyph in self._FRACTIONS.items():
            if abs(q - value) < 1e-6:
                return glyph
        if q == int(q):
            return str(int(q))
        return f"{q:.2f}".rstrip("0").rstrip(".")

    def formatted_amount(self) -> str:
        """Quantity and unit for display (e.g. "2 cups", "½ tsp", "to taste")."""
        if self.quantity == 0:
            return "to taste"

        if not self.unit:
            return self._quantity_str()

        unit = self.unit
        if (
            self.quantity > 1
            and unit.lower() not in self._UNCOUNTED_UNITS
            and not unit.endswith("s")
        ):
            unit = unit + "s"
        return f"{self._quantity_str()} {unit}"

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "unit": self.unit,
        }

    def __str__(self) -> str:
        return f"{self.formatted_amount()} {self.name}"


@dataclass
class MealPost:
    """A shared recipe."""

    title: str
    user_id: int
    description: str = ""
    instructions: str = ""
    preparation_time: int = 0  # Minutes
    cooking_time: int = 0  # Minutes
    servings: int = 1
    difficulty: str = Difficulty.EASY.value
    dietary_type: str = "None"
    image_url: Optional[str] = None
    upvotes: int = 0
    creation_date: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    ingredients: List[MealIngredient] = field(default_factory=list)
    id: Optional[int] = None

    # Only populated by feed queries that join the author
    author_reputation: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.difficulty, Difficulty):
            self.difficulty = self.difficulty.value

    def total_time(self) -> int:
        """Preparation plus cooking time in minutes."""
        return (self.preparation_time or 0) + (self.cooking_time or 0)

    def time_category(self) -> str:
        """Bucket used by the feed's time filter: "Quick", "Medium" or "Long"."""
        total = self.total_time()
        if total < QUICK_MAX_EXCLUSIVE:
            return "Quick"
        if total <= MEDIUM_MAX_INCLUSIVE:
            return "Medium"
        return "Long"

    def add_ingredient(self, ingredient: MealIngredient) -> None:
        self.ingredients.append(ingredient)

    def formatted_creation_date(self) -> str:
        return _format_date(self.creation_date, "%B %d, %Y")

    def formatted_last_modified(self) -> str:
        if self.last_modified is None:
            return "N/A"
        return _format_date(self.last_modified, "%B %d, %Y at %I:%M %p")

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "user_id": self.user_id,
            "description": self.description,
            "instructions": self.instructions,
            "preparation_time": self.preparation_time,
            "cooking_time": self.cooking_time,
            "servings": self.servings,
            "difficulty": self.difficulty,
            "dietary_type": self.dietary_type,
            "image_url": self.image_url,
            "upvotes": self.upvotes,
            "creation_date": self.creation_date.isoformat() if self.creation_date else None,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
        }

    def __str__(self) -> str:
        return (
            f"MealPost(id={self.id}, title='{self.title}', user_id={self.user_id}, "
            f"difficulty={self.difficulty}, upvotes={self.upvotes}, "
            f"ingredients={len(self.ingredients)}, created={self.formatted_creation_date()})"
        )


@dataclass(eq=False)
class Comment:
    """A comment on a post. Two comments are equal when their ids are."""

    user_id: int
    meal_id: int
    content: str
    creation_date: Optional[datetime] = None
    username: Optional[str] = None  # Display only, joined from users
    id: Optional[int] = None

    def time_ago(self, now: Optional[datetime] = None) -> str:
        """Relative creation time, e.g. "5 minutes ago"."""
        if self.creation_date is None:
            return "unknown time"

        now = now or datetime.now()
        minutes = int((now - self.creation_date).total_seconds() // 60)

        if minutes < 1:
            return "just now"
        if minutes < 60:
            return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
        if minutes < 24 * 60:
            hours = minutes // 60
            return f"{hours} hour{'' if hours == 1 else 's'} ago"
        if minutes < 30 * 24 * 60:
            days = minutes // (24 * 60)
            return f"{days} day{'' if days == 1 else 's'} ago"
        return _format_date(self.creation_date, "%b %d, %Y")

    def content_preview(self, max_length: int = 30) -> str:
        if not self.content:
            return ""
        if len(self.content) <= max_length:
            return self.content
        return self.content[:max_length] + "..."

    def __eq__(self, other) -> bool:
        if not isinstance(other, Comment):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass
class Upvote:
    """A single user's upvote of a post."""

    user_id: int
    meal_id: int
    upvote_date: Optional[datetime] = None
    id: Optional[int] = None
