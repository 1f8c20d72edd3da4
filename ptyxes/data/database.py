"""
Database interface for the Ptyxes recipe-sharing store.

Owns one SQLite connection to a local database file:
- users: accounts, roles and reputation
- meal_posts / meal_ingredients / ingredients: recipes and their ingredient lists
- upvotes / comments: feedback on posts

Reads run in autocommit mode. Every multi-statement write runs inside
transaction(), which commits on success and rolls back on any error.
"""

import logging
import math
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from ptyxes.config import DEFAULT_DB_PATH, DEFAULT_PASSWORD_METHOD, Settings
from .errors import ClosedStoreError, StoreUnavailableError
from .filters import DEFAULT_PAGE_SIZE, PostFilters, SortMode
from .models import Comment, MealIngredient, MealPost, Role, Upvote, User
from .query_builder import (
    ORDERINGS,
    PostQuery,
    Predicate,
    apply_filters,
    build_author_query,
    build_feed_query,
    build_plain_search_query,
)
from .schema import drop_schema, ensure_schema

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _now() -> str:
    return datetime.now().isoformat(timespec="microseconds")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="microseconds") if value else None


def _py_lower(value: Optional[str]) -> Optional[str]:
    """Unicode lowercasing for SQL (registered as py_lower)."""
    return value.lower() if value is not None else None


class DatabaseInterface:
    """Interface for interacting with the Ptyxes SQLite database."""

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        echo_sql: bool = False,
        password_method: str = DEFAULT_PASSWORD_METHOD,
    ):
        """
        Open (creating if needed) the database and ensure the schema exists.

        Args:
            db_path: Path of the SQLite file, or ":memory:"
            echo_sql: Log rendered feed queries at DEBUG level
            password_method: werkzeug hash method for stored passwords

        Raises:
            StoreUnavailableError: If the file cannot be opened or initialized
        """
        self.db_path = str(db_path)
        self.echo_sql = echo_sql
        self.password_method = password_method

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseInterface":
        """Create an interface from loaded Settings."""
        return cls(
            db_path=settings.db_path,
            echo_sql=settings.echo_sql,
            password_method=settings.password_method,
        )

    # ==================== Connection Lifecycle ====================

    def _connect(self):
        """Open the connection in autocommit mode and initialize the schema."""
        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Connecting to database {self.db_path}")
        try:
            conn = sqlite3.connect(self.db_path, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.create_function("py_lower", 1, _py_lower, deterministic=True)
            conn.execute("PRAGMA foreign_keys = ON")
            ensure_schema(conn)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open database {self.db_path}: {e}") from e

        self._conn = conn
        logger.info("Database initialized")

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise ClosedStoreError(f"Database {self.db_path} is closed")
        return self._conn

    def close(self):
        """Close the connection. Further calls raise ClosedStoreError."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info(f"Closed database {self.db_path}")

    @property
    def closed(self) -> bool:
        return self._conn is None

    @property
    def in_transaction(self) -> bool:
        """False whenever the connection is in autocommit mode."""
        return self._conn is not None and self._conn.in_transaction

    def __enter__(self) -> "DatabaseInterface":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """
        Execute one statement.

        IntegrityError propagates unchanged so callers can map it to a
        False / None outcome. Every other sqlite error means the store
        itself failed.
        """
        conn = self._require_conn()
        if self.echo_sql:
            logger.debug(f"SQL: {sql} params={list(params)}")
        try:
            return conn.execute(sql, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Query failed: {e}") from e

    @contextmanager
    def transaction(self):
        """
        Run a block of statements atomically.

        Commits when the block finishes, rolls back and re-raises when it
        raises. Nested use joins the outer transaction. On exit the
        connection is always back in autocommit mode, even if COMMIT itself
        failed.

        Usage:
            with db.transaction():
                db._execute(...)
                db._execute(...)
        """
        conn = self._require_conn()
        if conn.in_transaction:
            yield conn
            return

        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot start transaction: {e}") from e

        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailableError(f"Transaction failed: {e}") from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            if conn.in_transaction:
                conn.rollback()

    # ==================== Row Mappers ====================

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User object."""
        return User(
            id=row["id"],
            username=row["userName"],
            password_hash=row["password"],
            email=row["email"],
            role=Role(row["role"] or 0),
            reputation=row["reputation"] or 0,
            uuid=row["uuid"],
            creation_date=_parse_timestamp(row["creationDate"]),
        )

    def _row_to_post(self, row: sqlite3.Row) -> MealPost:
        """Convert database row to MealPost object (ingredients not loaded)."""
        keys = row.keys()
        return MealPost(
            id=row["id"],
            title=row["title"],
            user_id=row["userId"],
            description=row["description"] or "",
            instructions=row["instructions"] or "",
            preparation_time=row["preparationTime"] or 0,
            cooking_time=row["cookingTime"] or 0,
            servings=row["servings"],
            difficulty=row["difficulty"],
            dietary_type=row["dietaryType"],
            image_url=row["imageUrl"],
            upvotes=row["upvotes"] or 0,
            creation_date=_parse_timestamp(row["creationDate"]),
            last_modified=_parse_timestamp(row["lastModified"]),
            author_reputation=row["authorReputation"] if "authorReputation" in keys else None,
        )

    def _row_to_ingredient(self, row: sqlite3.Row) -> MealIngredient:
        return MealIngredient(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            quantity=row["quantity"] if row["quantity"] is not None else 0.0,
            unit=row["unit"],
        )

    def _row_to_comment(self, row: sqlite3.Row) -> Comment:
        return Comment(
            id=row["id"],
            user_id=row["userId"],
            meal_id=row["mealId"],
            content=row["content"],
            creation_date=_parse_timestamp(row["creationDate"]),
            username=row["userName"] if "userName" in row.keys() else None,
        )

    def _row_to_upvote(self, row: sqlite3.Row) -> Upvote:
        return Upvote(
            id=row["id"],
            user_id=row["userId"],
            meal_id=row["mealId"],
            upvote_date=_parse_timestamp(row["upvoteDate"]),
        )

    # ==================== User Operations ====================

    def create_user(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        role: Role = Role.REGULAR,
    ) -> Optional[User]:
        """
        Register a new account.

        The password is stored as a salted werkzeug hash.

        Args:
            username: Unique username
            password: Plain password as typed by the user
            email: Contact email
            role: Role.REGULAR or Role.ADMIN

        Returns:
            Created User, or None if the username is taken or empty
        """
        if not username or not password:
            logger.warning("Username and password are required")
            return None

        password_hash = generate_password_hash(password, method=self.password_method)
        try:
            cursor = self._execute(
                """
                INSERT INTO users (userName, password, email, role, reputation, uuid, creationDate)
                VALUES (?, ?, ?, ?, 0, ?, ?)
                """,
                (username, password_hash, email, int(Role(role)), str(uuid.uuid4()), _now()),
            )
        except sqlite3.IntegrityError:
            logger.warning(f"Username already exists: {username}")
            return None

        user_id = cursor.lastrowid
        logger.info(f"Created user: {username} (ID: {user_id})")
        return self.get_user_by_id(user_id)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Check a username/password pair.

        Returns:
            The User on success, None otherwise (unknown user or wrong password)
        """
        row = self._execute("SELECT * FROM users WHERE userName = ?", (username,)).fetchone()
        if row and row["password"] and check_password_hash(row["password"], password or ""):
            return self._row_to_user(row)

        logger.warning(f"Failed login for {username}")
        return None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        row = self._execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        row = self._execute("SELECT * FROM users WHERE userName = ?", (username,)).fetchone()
        return self._row_to_user(row) if row else None

    def update_user(
        self,
        user_id: int,
        password: Optional[str] = None,
        email: Optional[str] = None,
    ) -> bool:
        """
        Update password and/or email. Empty values are left unchanged.

        Returns:
            True if a user row was updated
        """
        assignments: List[Predicate] = []
        if password:
            assignments.append(
                Predicate("password = ?", (generate_password_hash(password, method=self.password_method),))
            )
        if email:
            assignments.append(Predicate("email = ?", (email,)))

        if not assignments:
            return False

        params: List[Any] = [value for a in assignments for value in a.params]
        params.append(user_id)
        sql = f"UPDATE users SET {', '.join(a.clause for a in assignments)} WHERE id = ?"

        cursor = self._execute(sql, params)
        updated = cursor.rowcount > 0
        if updated:
            logger.info(f"Updated user {user_id}")
        return updated

    def update_user_reputation(self, user_id: int, delta: int) -> bool:
        """Add delta (may be negative) to a user's reputation."""
        cursor = self._execute(
            "UPDATE users SET reputation = reputation + ? WHERE id = ?",
            (delta, user_id),
        )
        return cursor.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """
        Delete a user and everything they authored.

        Order: the user's upvotes (retracted from the posts' counters and
        their authors' reputation), the user's comments, the ingredient
        links, upvotes and comments of the user's posts, the posts, then
        the user row. All or nothing.

        Returns:
            True if the user existed and was deleted
        """
        with self.transaction():
            # Retract this user's votes so counters on surviving posts stay exact
            self._execute(
                """
                UPDATE users SET reputation = reputation - (
                    SELECT COUNT(*) FROM upvotes up
                    JOIN meal_posts p ON up.mealId = p.id
                    WHERE up.userId = ? AND p.userId = users.id
                )
                WHERE id IN (
                    SELECT p.userId FROM upvotes up
                    JOIN meal_posts p ON up.mealId = p.id
                    WHERE up.userId = ?
                )
                """,
                (user_id, user_id),
            )
            self._execute(
                "UPDATE meal_posts SET upvotes = upvotes - 1 "
                "WHERE id IN (SELECT mealId FROM upvotes WHERE userId = ?)",
                (user_id,),
            )
            self._execute("DELETE FROM upvotes WHERE userId = ?", (user_id,))
            self._execute("DELETE FROM comments WHERE userId = ?", (user_id,))

            meal_ids = [
                row["id"]
                for row in self._execute("SELECT id FROM meal_posts WHERE userId = ?", (user_id,)).fetchall()
            ]
            for meal_id in meal_ids:
                self._delete_post_children(meal_id)

            self._execute("DELETE FROM meal_posts WHERE userId = ?", (user_id,))
            cursor = self._execute("DELETE FROM users WHERE id = ?", (user_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted user {user_id} with {len(meal_ids)} posts")
        return deleted

    # ==================== Ingredient Catalog ====================

    def resolve_ingredient(self, name: str, category: Optional[str] = None) -> int:
        """
        Get the catalog id for an ingredient name, creating the entry if absent.

        Matching is exact and case-sensitive. An existing entry keeps its
        category; the category argument only applies to new entries.

        Args:
            name: Ingredient name (natural key)
            category: Category for a newly created entry

        Returns:
            Catalog ingredient id
        """
        with self.transaction():
            self._execute(
                "INSERT INTO ingredients (name, category) VALUES (?, ?) ON CONFLICT(name) DO NOTHING",
                (name, category),
            )
            row = self._execute("SELECT id FROM ingredients WHERE name = ?", (name,)).fetchone()
        return row["id"]

    def get_ingredient_catalog(self) -> List[Tuple[int, str, Optional[str]]]:
        """All catalog entries as (id, name, category), ordered by id."""
        rows = self._execute("SELECT id, name, category FROM ingredients ORDER BY id").fetchall()
        return [(row["id"], row["name"], row["category"]) for row in rows]

    def _insert_ingredient_links(self, meal_id: int, ingredients: Iterable[MealIngredient]) -> List[int]:
        """
        Link ingredients to a post. Must run inside a transaction.

        Returns:
            Catalog ids in ingredient order; callers assign them after commit
        """
        ingredient_ids = []
        for ingredient in ingredients:
            ingredient_id = self.resolve_ingredient(ingredient.name, ingredient.category)
            self._execute(
                "INSERT INTO meal_ingredients (mealId, ingredientId, quantity, unit) VALUES (?, ?, ?, ?)",
                (meal_id, ingredient_id, ingredient.quantity, ingredient.unit),
            )
            ingredient_ids.append(ingredient_id)
        return ingredient_ids

    @staticmethod
    def _assign_ingredient_ids(ingredients: List[MealIngredient], ingredient_ids: List[int]):
        for ingredient, ingredient_id in zip(ingredients, ingredient_ids):
            ingredient.id = ingredient_id

    def get_ingredients_for_post(self, meal_id: int) -> List[MealIngredient]:
        """Ingredient list of a post, in the order it was saved."""
        rows = self._execute(
            """
            SELECT mi.quantity, mi.unit, i.id, i.name, i.category
            FROM meal_ingredients mi
            JOIN ingredients i ON mi.ingredientId = i.id
            WHERE mi.mealId = ?
            ORDER BY mi.id
            """,
            (meal_id,),
        ).fetchall()
        return [self._row_to_ingredient(row) for row in rows]

    # ==================== Meal Post Operations ====================

    def create_post(self, post: MealPost) -> Optional[MealPost]:
        """
        Save a new post together with its ingredient list.

        Unknown ingredient names are added to the catalog. If any step
        fails nothing is saved.

        Args:
            post: MealPost to save (id is ignored). If creation_date is set
                it is kept, otherwise the current time is used.

        Returns:
            The same MealPost with id, upvotes and timestamps set, or None
            if the author does not exist or an ingredient is invalid
        """
        created = _to_text(post.creation_date) or _now()
        try:
            with self.transaction():
                cursor = self._execute(
                    """
                    INSERT INTO meal_posts
                    (title, userId, description, instructions, preparationTime,
                     cookingTime, servings, difficulty, dietaryType, imageUrl,
                     upvotes, creationDate, lastModified)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                    """,
                    (
                        post.title,
                        post.user_id,
                        post.description,
                        post.instructions,
                        post.preparation_time,
                        post.cooking_time,
                        post.servings,
                        post.difficulty,
                        post.dietary_type,
                        post.image_url,
                        created,
                        created,
                    ),
                )
                post_id = cursor.lastrowid
                ingredient_ids = self._insert_ingredient_links(post_id, post.ingredients)
        except sqlite3.IntegrityError as e:
            logger.warning(f"Could not create post '{post.title}': {e}")
            return None

        self._assign_ingredient_ids(post.ingredients, ingredient_ids)
        post.id = post_id
        post.upvotes = 0
        post.creation_date = _parse_timestamp(created)
        post.last_modified = post.creation_date
        logger.info(f"Created post {post_id} '{post.title}' with {len(post.ingredients)} ingredients")
        return post

    def update_post(self, post: MealPost) -> bool:
        """
        Save edits to an existing post.

        The ingredient list is replaced as a whole. Upvotes, author and
        creation date are never changed here.

        Returns:
            True if the post exists and was updated
        """
        if post.id is None:
            return False

        modified = _now()
        try:
            with self.transaction():
                cursor = self._execute(
                    """
                    UPDATE meal_posts SET
                        title = ?, description = ?, instructions = ?,
                        preparationTime = ?, cookingTime = ?, servings = ?,
                        difficulty = ?, dietaryType = ?, imageUrl = ?,
                        lastModified = ?
                    WHERE id = ?
                    """,
                    (
                        post.title,
                        post.description,
                        post.instructions,
                        post.preparation_time,
                        post.cooking_time,
                        post.servings,
                        post.difficulty,
                        post.dietary_type,
                        post.image_url,
                        modified,
                        post.id,
                    ),
                )
                if cursor.rowcount == 0:
                    logger.warning(f"Post {post.id} not found for update")
                    return False

                self._execute("DELETE FROM meal_ingredients WHERE mealId = ?", (post.id,))
                ingredient_ids = self._insert_ingredient_links(post.id, post.ingredients)
        except sqlite3.IntegrityError as e:
            logger.warning(f"Could not update post {post.id}: {e}")
            return False

        self._assign_ingredient_ids(post.ingredients, ingredient_ids)
        post.last_modified = _parse_timestamp(modified)
        logger.info(f"Updated post {post.id}")
        return True

    def _delete_post_children(self, meal_id: int):
        """Remove upvotes, comments and ingredient links of a post."""
        self._execute("DELETE FROM upvotes WHERE mealId = ?", (meal_id,))
        self._execute("DELETE FROM comments WHERE mealId = ?", (meal_id,))
        self._execute("DELETE FROM meal_ingredients WHERE mealId = ?", (meal_id,))

    def delete_post(self, meal_id: int) -> bool:
        """
        Delete a post with its upvotes, comments and ingredient links.

        Reputation the author earned from the post is kept.

        Returns:
            True if the post existed and was deleted
        """
        with self.transaction():
            self._delete_post_children(meal_id)
            cursor = self._execute("DELETE FROM meal_posts WHERE id = ?", (meal_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted post {meal_id}")
        return deleted

    def get_post_by_id(self, meal_id: int) -> Optional[MealPost]:
        """
        Get a post by ID with its ingredient list loaded.

        Returns:
            MealPost or None if not found
        """
        query = PostQuery(predicates=[Predicate("p.id = ?", (meal_id,))])
        sql, params = query.to_sql()
        row = self._execute(sql, params).fetchone()
        if row is None:
            return None

        post = self._row_to_post(row)
        post.ingredients = self.get_ingredients_for_post(meal_id)
        return post

    def _fetch_posts(self, query: PostQuery, include_ingredients: bool = False) -> List[MealPost]:
        sql, params = query.to_sql()
        rows = self._execute(sql, params).fetchall()

        posts = [self._row_to_post(row) for row in rows]
        if include_ingredients:
            for post in posts:
                post.ingredients = self.get_ingredients_for_post(post.id)
        return posts

    def _count(self, query: PostQuery) -> int:
        sql, params = query.count_sql()
        return self._execute(sql, params).fetchone()[0]

    def get_all_posts(self, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> List[MealPost]:
        """One page of all posts, newest first."""
        query = PostQuery().order(*ORDERINGS[SortMode.DATE]).window(page, page_size)
        return self._fetch_posts(query)

    def get_posts_by_user(
        self, user_id: int, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> List[MealPost]:
        """One page of a user's posts, newest first."""
        return self._fetch_posts(build_author_query(user_id, page, page_size))

    def get_total_post_count(self) -> int:
        return self._count(PostQuery())

    def get_post_count_by_user(self, user_id: int) -> int:
        return self._count(PostQuery(predicates=[Predicate("p.userId = ?", (user_id,))]))

    # ==================== Feed Search ====================

    def search(self, filters: PostFilters, include_ingredients: bool = False) -> List[MealPost]:
        """
        Run a feed search.

        Args:
            filters: Validated filters, sort mode and page window
            include_ingredients: Also load each post's ingredient list

        Returns:
            Posts on the requested page
        """
        query = build_feed_query(filters)
        posts = self._fetch_posts(query, include_ingredients=include_ingredients)
        logger.debug(
            f"[FEED] query={filters.query!r} difficulty={filters.difficulty} "
            f"time={filters.time_filter.value} dietary={filters.dietary_filter} "
            f"sort={filters.sort_mode.value} page={filters.page} rows={len(posts)}"
        )
        return posts

    def search_posts(
        self,
        query: Optional[str] = None,
        difficulty: Optional[str] = None,
        time_filter: Optional[str] = None,
        dietary_filter: Optional[str] = None,
        sort_mode: Optional[str] = None,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        include_ingredients: bool = False,
    ) -> List[MealPost]:
        """
        Filtered, sorted, paginated feed.

        Args:
            query: Case-insensitive text matched against title or description
            difficulty: "Easy" / "Medium" / "Hard", or "All"
            time_filter: "Quick" (<30 min) / "Medium" (30-60) / "Long" (>60), or "All"
            dietary_filter: Exact dietary type ("Vegetarian" also matches "Vegan"), or "All"
            sort_mode: "Date" (default), "Reputation", "Preparation Time",
                "Cooking Time" or "Upvotes"
            page: Zero-based page index
            page_size: Posts per page

        Returns:
            Posts on the requested page (ingredients not loaded unless asked)

        Raises:
            pydantic.ValidationError: If page < 0 or page_size < 1
        """
        filters = PostFilters(
            query=query,
            difficulty=difficulty,
            time_filter=time_filter,
            dietary_filter=dietary_filter,
            sort_mode=sort_mode,
            page=page,
            page_size=page_size,
        )
        return self.search(filters, include_ingredients=include_ingredients)

    def count_matching(
        self,
        query: Optional[str] = None,
        difficulty: Optional[str] = None,
        time_filter: Optional[str] = None,
        dietary_filter: Optional[str] = None,
    ) -> int:
        """Number of posts matching the same filters as search_posts, across all pages."""
        filters = PostFilters(
            query=query,
            difficulty=difficulty,
            time_filter=time_filter,
            dietary_filter=dietary_filter,
        )
        return self._count(apply_filters(PostQuery(), filters))

    def search_posts_plain(
        self, term: str, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> List[MealPost]:
        """
        Case-sensitive search over titles, descriptions and ingredient names.

        Each post appears once, most upvoted first.
        """
        return self._fetch_posts(build_plain_search_query(term, page, page_size))

    @staticmethod
    def page_count(total: int, page_size: int) -> int:
        """Number of pages needed for total rows (at least 1, for an empty first page)."""
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        return max(1, math.ceil(total / page_size))

    # ==================== Upvote Operations ====================

    def _has_upvote(self, user_id: int, meal_id: int) -> bool:
        row = self._execute(
            "SELECT COUNT(*) FROM upvotes WHERE userId = ? AND mealId = ?",
            (user_id, meal_id),
        ).fetchone()
        return row[0] > 0

    def _post_author(self, meal_id: int) -> Optional[int]:
        row = self._execute("SELECT userId FROM meal_posts WHERE id = ?", (meal_id,)).fetchone()
        return row["userId"] if row else None

    def upvote(self, user_id: int, meal_id: int) -> bool:
        """
        Record a user's upvote on a post.

        Inserts the upvote, increments the post's counter and the author's
        reputation, all in one transaction.

        Returns:
            False if the user already upvoted the post or the user/post
            does not exist, True otherwise
        """
        try:
            with self.transaction():
                if self._has_upvote(user_id, meal_id):
                    logger.warning(f"User {user_id} already upvoted post {meal_id}")
                    return False

                author_id = self._post_author(meal_id)
                if author_id is None:
                    return False

                self._execute(
                    "INSERT INTO upvotes (userId, mealId, upvoteDate) VALUES (?, ?, ?)",
                    (user_id, meal_id, _now()),
                )
                self._execute("UPDATE meal_posts SET upvotes = upvotes + 1 WHERE id = ?", (meal_id,))
                self.update_user_reputation(author_id, 1)
        except sqlite3.IntegrityError as e:
            # UNIQUE(userId, mealId) is the authoritative guard against double votes
            logger.warning(f"Upvote rejected for user {user_id} on post {meal_id}: {e}")
            return False

        logger.info(f"User {user_id} upvoted post {meal_id}")
        return True

    def unvote(self, user_id: int, meal_id: int) -> bool:
        """
        Remove a user's upvote from a post.

        Deletes the upvote and decrements the post's counter and the
        author's reputation, all in one transaction.

        Returns:
            False if there was no upvote to remove, True otherwise
        """
        with self.transaction():
            if not self._has_upvote(user_id, meal_id):
                return False

            self._execute(
                "DELETE FROM upvotes WHERE userId = ? AND mealId = ?",
                (user_id, meal_id),
            )
            self._execute("UPDATE meal_posts SET upvotes = upvotes - 1 WHERE id = ?", (meal_id,))
            author_id = self._post_author(meal_id)
            if author_id is not None:
                self.update_user_reputation(author_id, -1)

        logger.info(f"User {user_id} removed upvote from post {meal_id}")
        return True

    def has_upvoted(self, user_id: int, meal_id: int) -> bool:
        return self._has_upvote(user_id, meal_id)

    def get_upvote_count(self, meal_id: int) -> int:
        """Number of upvote rows for a post."""
        row = self._execute("SELECT COUNT(*) FROM upvotes WHERE mealId = ?", (meal_id,)).fetchone()
        return row[0]

    def get_upvotes_for_post(self, meal_id: int) -> List[Upvote]:
        rows = self._execute(
            "SELECT * FROM upvotes WHERE mealId = ? ORDER BY upvoteDate, id",
            (meal_id,),
        ).fetchall()
        return [self._row_to_upvote(row) for row in rows]

    # ==================== Comment Operations ====================

    def add_comment(self, user_id: int, meal_id: int, content: str) -> Optional[Comment]:
        """
        Add a comment to a post.

        Returns:
            The created Comment, or None if the content is empty or the
            user/post does not exist
        """
        if not content or not content.strip():
            return None

        try:
            cursor = self._execute(
                "INSERT INTO comments (userId, mealId, content, creationDate) VALUES (?, ?, ?, ?)",
                (user_id, meal_id, content, _now()),
            )
        except sqlite3.IntegrityError as e:
            logger.warning(f"Comment rejected for user {user_id} on post {meal_id}: {e}")
            return None

        return self.get_comment_by_id(cursor.lastrowid)

    def get_comment_by_id(self, comment_id: int) -> Optional[Comment]:
        row = self._execute(
            """
            SELECT c.*, u.userName FROM comments c
            LEFT JOIN users u ON c.userId = u.id
            WHERE c.id = ?
            """,
            (comment_id,),
        ).fetchone()
        return self._row_to_comment(row) if row else None

    def delete_comment(self, comment_id: int, requesting_user_id: int) -> bool:
        """
        Delete a comment on behalf of a user.

        Allowed for the comment's author and for admins.

        Returns:
            True if deleted; False if the comment does not exist or the
            user may not delete it
        """
        with self.transaction():
            row = self._execute("SELECT userId FROM comments WHERE id = ?", (comment_id,)).fetchone()
            if row is None:
                return False

            if row["userId"] != requesting_user_id:
                requester = self.get_user_by_id(requesting_user_id)
                if requester is None or not requester.is_admin():
                    logger.warning(f"User {requesting_user_id} may not delete comment {comment_id}")
                    return False

            self._execute("DELETE FROM comments WHERE id = ?", (comment_id,))

        logger.info(f"Deleted comment {comment_id}")
        return True

    def get_comments_for_post(self, meal_id: int) -> List[Comment]:
        """Comments on a post with their authors' usernames, newest first."""
        rows = self._execute(
            """
            SELECT c.*, u.userName FROM comments c
            JOIN users u ON c.userId = u.id
            WHERE c.mealId = ?
            ORDER BY c.creationDate DESC, c.id DESC
            """,
            (meal_id,),
        ).fetchall()
        return [self._row_to_comment(row) for row in rows]

    # ==================== Maintenance ====================

    def is_database_empty(self) -> bool:
        """True if no user has registered yet."""
        row = self._execute("SELECT COUNT(*) FROM users").fetchone()
        return row[0] == 0

    def reset_hard(self, db_path: str) -> bool:
        """
        Drop and recreate every table.

        The path must name this interface's own database, as a guard
        against wiping the wrong file.

        Returns:
            True if the database was reset
        """
        if str(db_path) != self.db_path:
            logger.warning(f"Refusing to reset {db_path}: connected to {self.db_path}")
            return False

        logger.warning(f"Resetting database {self.db_path}")
        with self.transaction() as conn:
            drop_schema(conn)
            ensure_schema(conn)
        return True
