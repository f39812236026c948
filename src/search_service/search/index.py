"""FTS5-backed full-text search index for content items."""

import re
import sqlite3
import threading
from datetime import UTC, datetime

import structlog

from search_service.errors import ConflictError, StoreUnavailableError
from search_service.search.schemas import SearchDocument, SearchHit

logger = structlog.get_logger()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        post_id TEXT NOT NULL UNIQUE,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
        content,
        content='documents',
        content_rowid='id',
        tokenize='porter unicode61'
    )
    """,
    """
    CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents BEGIN
        INSERT INTO documents_fts (rowid, content) VALUES (new.id, new.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS documents_ad AFTER DELETE ON documents BEGIN
        INSERT INTO documents_fts (documents_fts, rowid, content)
        VALUES ('delete', old.id, old.content);
    END
    """,
)

# bm25() is lower-is-better; the score is negated on the way out
_SEARCH_SQL = """
    WITH matches AS (
        SELECT rowid AS doc_id, bm25(documents_fts) AS rank
        FROM documents_fts
        WHERE documents_fts MATCH ?
    )
    SELECT d.id, d.post_id, d.user_id, d.content, d.created_at, m.rank
    FROM matches AS m
    JOIN documents AS d ON d.id = m.doc_id
    ORDER BY m.rank ASC, d.created_at DESC, d.id ASC
    LIMIT ?
"""

_TOKEN = re.compile(r"\w+", re.UNICODE)


def _build_match(raw: str) -> str | None:
    """Turn a free-text query into an FTS5 MATCH expression.

    Every word token is quoted (so FTS5 operators and syntax characters in
    user input are inert) and the tokens are OR-combined, so a document
    matching any term qualifies and BM25 ranks documents matching more
    terms higher.

    Args:
        raw: Raw user query string.

    Returns:
        MATCH expression, or None if the query has no usable tokens.
    """
    tokens = _TOKEN.findall(raw)
    if not tokens:
        return None
    return " OR ".join(f'"{token}"' for token in tokens)


def _to_column(value: datetime) -> str:
    # Always UTC with a zero-padded year and microseconds, so lexical order
    # equals chronological order
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_column(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _row_to_document(row: tuple) -> SearchDocument:
    doc_id, post_id, user_id, content, created_at = row[:5]
    return SearchDocument(
        id=doc_id,
        post_id=post_id,
        user_id=user_id,
        content=content,
        created_at=_from_column(created_at),
    )


class SearchIndex:
    """SQLite FTS5 index of search documents.

    Thread-safe via a lock. The connection uses check_same_thread=False
    since calls arrive from asyncio worker threads.
    """

    def __init__(self, path: str = ":memory:") -> None:
        """Initialize search index (call initialize() before use).

        Args:
            path: SQLite database path, ":memory:" for a private in-memory index.
        """
        self._path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Open the database and create the document and FTS5 tables."""
        try:
            conn = sqlite3.connect(self._path, check_same_thread=False)
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open search index: {e}") from e

        with self._lock:
            self._conn = conn
        logger.info("search_index_initialized", path=self._path)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Search index is not open")
        return self._conn

    def upsert(self, document: SearchDocument) -> SearchDocument:
        """Insert a document for a post that is not yet indexed.

        Args:
            document: Document to insert; any id it carries is ignored.

        Returns:
            The stored document with its assigned id.

        Raises:
            ConflictError: If a live document exists for the same post id.
            StoreUnavailableError: If the database fails.
        """
        with self._lock:
            conn = self._connection()
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO documents (post_id, user_id, content, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        document.post_id,
                        document.user_id,
                        document.content,
                        _to_column(document.created_at),
                    ),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise ConflictError(document.post_id) from e
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreUnavailableError(f"Insert failed: {e}") from e

        stored = document.model_copy(update={"id": cursor.lastrowid})
        logger.info(
            "search_document_indexed", post_id=stored.post_id, document_id=stored.id
        )
        return stored

    def delete_by_post_id(self, post_id: str) -> bool:
        """Remove the live document for a post.

        Args:
            post_id: External content identifier.

        Returns:
            True if a document was removed, False if none existed.

        Raises:
            StoreUnavailableError: If the database fails.
        """
        with self._lock:
            conn = self._connection()
            try:
                cursor = conn.execute(
                    "DELETE FROM documents WHERE post_id = ?", (post_id,)
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreUnavailableError(f"Delete failed: {e}") from e

        removed = cursor.rowcount > 0
        logger.info("search_document_deleted", post_id=post_id, removed=removed)
        return removed

    def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        """Execute a full-text search with BM25 ranking.

        Ties in relevance are broken by creation time (newest first), then
        by id (lowest first).

        Args:
            query: Raw user search query.
            limit: Maximum number of hits to return.

        Returns:
            Ranked hits, best first.

        Raises:
            StoreUnavailableError: If the database fails.
        """
        match = _build_match(query)
        if match is None:
            return []

        with self._lock:
            conn = self._connection()
            try:
                rows = conn.execute(_SEARCH_SQL, (match, limit)).fetchall()
            except sqlite3.Error as e:
                logger.warning("search_query_failed", query=query, error=str(e))
                raise StoreUnavailableError(f"Search failed: {e}") from e

        return [
            SearchHit(document=_row_to_document(row), score=-row[5]) for row in rows
        ]

    def get_by_post_id(self, post_id: str) -> SearchDocument | None:
        """Fetch the live document for a post, if any."""
        with self._lock:
            conn = self._connection()
            try:
                row = conn.execute(
                    "SELECT id, post_id, user_id, content, created_at "
                    "FROM documents WHERE post_id = ?",
                    (post_id,),
                ).fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Lookup failed: {e}") from e
        return _row_to_document(row) if row else None

    def count(self) -> int:
        """Number of live documents."""
        with self._lock:
            conn = self._connection()
            try:
                return conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Count failed: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("search_index_closed")
