"""
cookie_store — domain-scoped, persistent cookie table.

One ``CookieStore`` is meant to be shared by every ``HTTPClient`` of a process:
pass the same instance to each of them. The backing storage is SQLite, so a
store opened on a file survives restarts; ``":memory:"`` (the default) gives an
isolated store, handy in tests.

Storage invariants
==================
* at most one row per ``(domain, name)``, enforced by the primary key;
* every save is a transactional upsert, a batch is all-or-nothing;
* reads and writes are serialized by one lock (single-writer discipline).

Backend failures surface as :class:`~async_http.errors.StorageError`; an empty
result is never an error.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path
from types import TracebackType
from typing import Iterable, Iterator, Optional, Union

from .abstraction.cookies import Cookie
from .abstraction.headers import Header
from .errors import StorageError
from .tools.http_utils import compose_cookie_header

__all__ = ["CookieStore"]

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cookies (
    domain  TEXT NOT NULL,
    name    TEXT NOT NULL,
    value   TEXT NOT NULL,
    path    TEXT NOT NULL DEFAULT '/',
    expires REAL,
    secure    INTEGER NOT NULL DEFAULT 0,
    http_only INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (domain, name)
)
"""

_UPSERT = """
INSERT INTO cookies (domain, name, value, path, expires, secure, http_only)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (domain, name) DO UPDATE SET
    value = excluded.value,
    path = excluded.path,
    expires = excluded.expires,
    secure = excluded.secure,
    http_only = excluded.http_only
"""

_COLUMNS = "domain, name, value, path, expires, secure, http_only"


def _norm_domain(domain: str) -> str:
    return domain.strip().lstrip(".").lower()


class CookieStore:
    """Persistent cookie table keyed by ``(domain, name)``."""

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        self.path: str = str(path)
        """SQLite database file, or ``":memory:"``."""

        self._lock = threading.RLock()
        try:
            self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
                self.path, check_same_thread=False, isolation_level=None
            )
            self._conn.execute(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open cookie store {self.path!r}: {exc}") from exc
        logger.debug("cookie store opened at %s", self.path)

    # ────── internals ──────
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Cookie store is closed")
        return self._conn

    @staticmethod
    def _row_to_cookie(row: tuple) -> Cookie:
        domain, name, value, path, expires, secure, http_only = row
        return Cookie(
            name=name,
            value=value,
            domain=domain,
            path=path,
            expires=expires,
            secure=bool(secure),
            http_only=bool(http_only),
        )

    def _select(self, sql: str, params: tuple) -> list[Cookie]:
        with self._lock:
            try:
                rows = self._connection().execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot read cookies: {exc}") from exc
        return [self._row_to_cookie(r) for r in rows]

    def _write(self, sql: str, params: tuple) -> int:
        with self._lock:
            try:
                cur = self._connection().execute(sql, params)
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot write cookies: {exc}") from exc
        return cur.rowcount

    # ────── reads ──────
    def get_cookies(self, domain: str) -> list[Cookie]:
        """All stored cookies of ``domain``, expired ones included."""
        return self._select(
            f"SELECT {_COLUMNS} FROM cookies WHERE domain = ?",
            (_norm_domain(domain),),
        )

    def get_active_cookies(self, domain: str, now: Optional[float] = None) -> list[Cookie]:
        """Cookies of ``domain`` that are not past their expiry."""
        now = time.time() if now is None else now
        return self._select(
            f"SELECT {_COLUMNS} FROM cookies "
            "WHERE domain = ? AND (expires IS NULL OR expires >= ?)",
            (_norm_domain(domain), now),
        )

    def get_cookie_header(self, domain: str, now: Optional[float] = None) -> Optional[Header]:
        """A single ``Cookie`` header for the active cookies of ``domain``, if any."""
        cookies = self.get_active_cookies(domain, now)
        if not cookies:
            return None
        return Header("Cookie", compose_cookie_header(cookies))

    # ────── writes ──────
    def save_cookies(self, cookies: Iterable[Cookie], domain: str) -> None:
        """
        Upsert every cookie under ``domain``: value, path, expiry and flags of an
        existing ``(domain, name)`` are replaced, new names are inserted.

        The batch runs in one transaction. On failure nothing is saved and
        :class:`StorageError` is raised.
        """
        key = _norm_domain(domain)
        rows = [
            (key, c.name, c.value, c.path or "/", c.expires, int(c.secure), int(c.http_only))
            for c in cookies
        ]
        if not rows:
            return
        with self._lock:
            conn = self._connection()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.executemany(_UPSERT, rows)
                    conn.execute("COMMIT")
                except BaseException:
                    # a failed COMMIT can leave the transaction open
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as exc:
                raise StorageError(
                    f"Cannot save {len(rows)} cookie(s) for {key!r}: {exc}"
                ) from exc
        logger.debug("saved %d cookie(s) for %s", len(rows), key)

    def delete_cookies(self, domain: str, name: Optional[str] = None) -> int:
        """Delete every cookie of ``domain``, or just ``name``. Returns the count."""
        if name is None:
            count = self._write("DELETE FROM cookies WHERE domain = ?", (_norm_domain(domain),))
        else:
            count = self._write(
                "DELETE FROM cookies WHERE domain = ? AND name = ?",
                (_norm_domain(domain), name),
            )
        logger.debug("deleted %d cookie(s) for %s", count, domain)
        return count

    def delete_expired_cookies(self, now: Optional[float] = None) -> int:
        """Delete every cookie whose ``expires`` is set and strictly before now."""
        now = time.time() if now is None else now
        count = self._write(
            "DELETE FROM cookies WHERE expires IS NOT NULL AND expires < ?", (now,)
        )
        if count:
            logger.debug("swept %d expired cookie(s)", count)
        return count

    # ────── dunder helpers ──────
    def __len__(self) -> int:
        with self._lock:
            try:
                (count,) = self._connection().execute("SELECT COUNT(*) FROM cookies").fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot read cookies: {exc}") from exc
        return count

    def __iter__(self) -> Iterator[Cookie]:
        return iter(
            self._select(f"SELECT {_COLUMNS} FROM cookies", ())
        )

    # ────── cleanup ──────
    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "CookieStore":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
