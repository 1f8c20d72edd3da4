"""
Predicate-list query builder for meal post reads.

A query is an ordered list of (clause, params) predicates plus an ordering
and an optional page window. Rendering walks the list once, so each clause
always travels with its own bound values and optional filters can be added
or dropped without renumbering placeholders.

Usage:
    query = build_feed_query(PostFilters(query="pasta", time_filter="Quick"))
    sql, params = query.to_sql()
    count_sql, count_params = query.count_sql()
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .filters import ALL, PostFilters, SortMode, TimeFilter, is_active
from .models import QUICK_MAX_EXCLUSIVE, MEDIUM_MAX_INCLUSIVE

POSTS = "meal_posts p"
AUTHOR_JOIN = "LEFT JOIN users u ON p.userId = u.id"
INGREDIENT_JOINS = (
    "LEFT JOIN meal_ingredients mi ON p.id = mi.mealId",
    "LEFT JOIN ingredients i ON mi.ingredientId = i.id",
)

TOTAL_TIME = "(p.preparationTime + p.cookingTime)"

# Final tie-break keeps page windows stable when the sort keys are equal
STABLE = "p.id DESC"

ORDERINGS = {
    SortMode.DATE: ["p.creationDate DESC"],
    SortMode.REPUTATION: ["u.reputation DESC", "p.creationDate DESC"],
    SortMode.PREPARATION_TIME: ["p.preparationTime ASC", "p.creationDate DESC"],
    SortMode.COOKING_TIME: ["p.cookingTime ASC", "p.creationDate DESC"],
    SortMode.UPVOTES: ["p.upvotes DESC", "p.creationDate DESC"],
}

VEGETARIAN = "Vegetarian"
VEGAN = "Vegan"


@dataclass
class Predicate:
    """One WHERE condition and the values bound to its placeholders."""
    clause: str
    params: Tuple[Any, ...] = ()

    def __post_init__(self):
        expected = self.clause.count("?")
        if expected != len(self.params):
            raise ValueError(
                f"Predicate '{self.clause}' has {expected} placeholders "
                f"but {len(self.params)} params"
            )


@dataclass
class PostQuery:
    """A SELECT over meal_posts assembled from predicates."""

    columns: str = "p.*, u.reputation AS authorReputation"
    joins: List[str] = field(default_factory=lambda: [AUTHOR_JOIN])
    predicates: List[Predicate] = field(default_factory=list)
    order_by: List[str] = field(default_factory=list)
    distinct: bool = False
    limit: Optional[int] = None
    offset: int = 0

    def where(self, clause: str, *params) -> "PostQuery":
        self.predicates.append(Predicate(clause, tuple(params)))
        return self

    def order(self, *terms: str) -> "PostQuery":
        self.order_by.extend(terms)
        return self

    def window(self, page: int, page_size: int) -> "PostQuery":
        """Restrict to the zero-based page [page*page_size, page*page_size + page_size)."""
        if page < 0:
            raise ValueError("page must be >= 0")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.limit = page_size
        self.offset = page * page_size
        return self

    def _from_where(self) -> Tuple[str, List[Any]]:
        sql = " ".join([f"FROM {POSTS}", *self.joins])
        params: List[Any] = []
        if self.predicates:
            sql += " WHERE " + " AND ".join(f"({p.clause})" for p in self.predicates)
            for p in self.predicates:
                params.extend(p.params)
        return sql, params

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Render the full SELECT with ordering and window."""
        from_where, params = self._from_where()
        select = "SELECT DISTINCT" if self.distinct else "SELECT"
        sql = f"{select} {self.columns} {from_where}"

        order = list(self.order_by)
        if STABLE not in order:
            order.append(STABLE)
        sql += " ORDER BY " + ", ".join(order)

        if self.limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([self.limit, self.offset])
        return sql, params

    def count_sql(self) -> Tuple[str, List[Any]]:
        """Render a COUNT over the same predicates, ignoring order and window."""
        from_where, params = self._from_where()
        if self.distinct:
            return f"SELECT COUNT(DISTINCT p.id) {from_where}", params
        return f"SELECT COUNT(*) {from_where}", params


# ==================== Predicates ====================

def text_predicate(text: str) -> Predicate:
    """
    Case-insensitive substring match on title or description.

    py_lower is registered by DatabaseInterface; SQLite's own LOWER()
    only folds ASCII letters.
    """
    return Predicate(
        "instr(py_lower(p.title), py_lower(?)) > 0 OR instr(py_lower(p.description), py_lower(?)) > 0",
        (text, text),
    )


def plain_text_predicate(text: str) -> Predicate:
    """Case-sensitive substring match on title, description or an ingredient name."""
    return Predicate(
        "instr(p.title, ?) > 0 OR instr(p.description, ?) > 0 OR instr(i.name, ?) > 0",
        (text, text, text),
    )


def difficulty_predicate(difficulty: str) -> Predicate:
    return Predicate("p.difficulty = ?", (difficulty,))


def time_predicate(time_filter: TimeFilter) -> Optional[Predicate]:
    """Total-time bucket, or None for "All"."""
    if time_filter == TimeFilter.QUICK:
        return Predicate(f"{TOTAL_TIME} < {QUICK_MAX_EXCLUSIVE}")
    if time_filter == TimeFilter.MEDIUM:
        return Predicate(f"{TOTAL_TIME} BETWEEN {QUICK_MAX_EXCLUSIVE} AND {MEDIUM_MAX_INCLUSIVE}")
    if time_filter == TimeFilter.LONG:
        return Predicate(f"{TOTAL_TIME} > {MEDIUM_MAX_INCLUSIVE}")
    return None


def dietary_predicate(dietary: str) -> Predicate:
    """Exact dietary type; vegetarian also admits vegan posts."""
    if dietary == VEGETARIAN:
        return Predicate("p.dietaryType = ? OR p.dietaryType = ?", (VEGETARIAN, VEGAN))
    return Predicate("p.dietaryType = ?", (dietary,))


def author_predicate(user_id: int) -> Predicate:
    return Predicate("p.userId = ?", (user_id,))


# ==================== Builders ====================

def apply_filters(query: PostQuery, filters: PostFilters) -> PostQuery:
    """Append the active filters of a feed search to a query."""
    if filters.query:
        query.predicates.append(text_predicate(filters.query))

    if is_active(filters.difficulty):
        query.predicates.append(difficulty_predicate(filters.difficulty))

    time_pred = time_predicate(filters.time_filter)
    if time_pred is not None:
        query.predicates.append(time_pred)

    if is_active(filters.dietary_filter):
        query.predicates.append(dietary_predicate(filters.dietary_filter))

    return query


def build_feed_query(filters: PostFilters) -> PostQuery:
    """Filtered, sorted, paginated feed query."""
    query = apply_filters(PostQuery(), filters)
    query.order(*ORDERINGS[filters.sort_mode])
    query.window(filters.page, filters.page_size)
    return query


def build_author_query(user_id: int, page: int, page_size: int) -> PostQuery:
    """One author's posts, newest first."""
    query = PostQuery(predicates=[author_predicate(user_id)])
    query.order(*ORDERINGS[SortMode.DATE])
    return query.window(page, page_size)


def build_plain_search_query(term: str, page: int, page_size: int) -> PostQuery:
    """Case-sensitive search across titles, descriptions and ingredient names."""
    query = PostQuery(
        joins=[AUTHOR_JOIN, *INGREDIENT_JOINS],
        distinct=True,
    )
    if term:
        query.predicates.append(plain_text_predicate(term))
    query.order(*ORDERINGS[SortMode.UPVOTES])
    return query.window(page, page_size)


__all__ = [
    "ALL",
    "ORDERINGS",
    "Predicate",
    "PostQuery",
    "apply_filters",
    "build_feed_query",
    "build_author_query",
    "build_plain_search_query",
    "text_predicate",
    "plain_text_predicate",
    "difficulty_predicate",
    "time_predicate",
    "dietary_predicate",
    "author_predicate",
]
