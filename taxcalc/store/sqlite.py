"""SQLite-backed store of bracket tables keyed by income year.

Amounts are stored as decimal text so that rates such as ``0.325`` round-trip
exactly. An unbounded top bracket is written as ``UNBOUNDED_SENTINEL`` and read
back as ``None``.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Sequence

from taxcalc.core.engine import TaxBracket, validate_brackets
from taxcalc.core.years import validate_income_year
from taxcalc.errors import BracketNotFoundError, UnsupportedYearError

D = Decimal
UNBOUNDED_SENTINEL = D("999999999.99")

logger = logging.getLogger("taxcalc.store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tax_brackets (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    income_year   TEXT    NOT NULL,
    bracket_order INTEGER NOT NULL,
    min_income    TEXT    NOT NULL,
    max_income    TEXT    NOT NULL,
    tax_rate      TEXT    NOT NULL,
    description   TEXT    NOT NULL DEFAULT '',
    created_at    TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at    TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (income_year, bracket_order)
);
CREATE INDEX IF NOT EXISTS idx_tax_brackets_year ON tax_brackets (income_year, bracket_order);
"""

_SELECT_COLUMNS = (
    "id, income_year, bracket_order, min_income, max_income, tax_rate, description, created_at, updated_at"
)


def to_stored_upper(upper: D | None) -> str:
    return str(UNBOUNDED_SENTINEL if upper is None else upper)


def from_stored_upper(raw: str | float | int) -> D | None:
    value = D(str(raw))
    return None if value >= UNBOUNDED_SENTINEL else value


@dataclass(frozen=True)
class BracketRecord:
    id: int
    income_year: str
    bracket_order: int
    min_income: D
    max_income: D | None
    tax_rate: D
    description: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "BracketRecord":
        return cls(
            id=row["id"],
            income_year=row["income_year"],
            bracket_order=row["bracket_order"],
            min_income=D(str(row["min_income"])),
            max_income=from_stored_upper(row["max_income"]),
            tax_rate=D(str(row["tax_rate"])),
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_bracket(self) -> TaxBracket:
        return TaxBracket(self.min_income, self.max_income, self.tax_rate, self.description)


def connect(path: str | Path) -> sqlite3.Connection:
    target = str(path)
    if target != ":memory:":
        Path(target).parent.mkdir(parents=True, exist_ok=True)
    # API handlers run on worker threads; BracketStore serialises access itself.
    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


class BracketStore:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._lock = threading.RLock()

    def initialize(self) -> None:
        with self._lock:
            self.conn.executescript(_SCHEMA)

    def ping(self) -> bool:
        try:
            with self._lock:
                self.conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    def get_brackets_for_year(self, year: str) -> list[TaxBracket]:
        return [record.to_bracket() for record in self._require_rows(year)]

    def list_supported_years(self) -> list[str]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT DISTINCT income_year FROM tax_brackets ORDER BY income_year"
            ).fetchall()
        return [row["income_year"] for row in rows]

    def is_year_supported(self, year: str) -> bool:
        with self._lock:
            row = self.conn.execute(
                "SELECT COUNT(*) AS count FROM tax_brackets WHERE income_year = ?", (year,)
            ).fetchone()
        return row["count"] > 0

    def list_rows(self, year: str | None = None) -> list[BracketRecord]:
        query = f"SELECT {_SELECT_COLUMNS} FROM tax_brackets"
        params: tuple[str, ...] = ()
        if year is not None:
            query += " WHERE income_year = ?"
            params = (year,)
        query += " ORDER BY income_year, bracket_order"
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [BracketRecord.from_row(row) for row in rows]

    def get_row(self, bracket_id: int) -> BracketRecord:
        with self._lock:
            row = self.conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM tax_brackets WHERE id = ?", (bracket_id,)
            ).fetchone()
        if row is None:
            raise BracketNotFoundError(bracket_id)
        return BracketRecord.from_row(row)

    def add_tax_year(self, year: str, brackets: Sequence[TaxBracket]) -> int:
        """Replace every bracket stored for ``year`` in a single transaction."""
        year = validate_income_year(year)
        validate_brackets(brackets)
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute("DELETE FROM tax_brackets WHERE income_year = ?", (year,))
                    self.conn.executemany(
                        "INSERT INTO tax_brackets "
                        "(income_year, bracket_order, min_income, max_income, tax_rate, description) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        [
                            (
                                year,
                                order,
                                str(bracket.lower),
                                to_stored_upper(bracket.upper),
                                str(bracket.rate),
                                bracket.description,
                            )
                            for order, bracket in enumerate(brackets, start=1)
                        ],
                    )
            except sqlite3.Error:
                logger.exception("Failed to store tax year %s", year)
                raise
        logger.info("Stored tax year %s with %s brackets", year, len(brackets))
        return len(brackets)

    def update_bracket(self, bracket_id: int, bracket: TaxBracket) -> BracketRecord:
        with self._lock:
            current = self.get_row(bracket_id)
            validate_brackets(
                [
                    bracket if record.id == bracket_id else record.to_bracket()
                    for record in self.list_rows(current.income_year)
                ]
            )
            with self.conn:
                self.conn.execute(
                    "UPDATE tax_brackets SET min_income = ?, max_income = ?, tax_rate = ?, description = ?, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (
                        str(bracket.lower),
                        to_stored_upper(bracket.upper),
                        str(bracket.rate),
                        bracket.description,
                        bracket_id,
                    ),
                )
        logger.info("Updated bracket %s for %s", bracket_id, current.income_year)
        return self.get_row(bracket_id)

    def delete_tax_year(self, year: str) -> bool:
        with self._lock:
            with self.conn:
                cursor = self.conn.execute("DELETE FROM tax_brackets WHERE income_year = ?", (year,))
        removed = cursor.rowcount > 0
        if removed:
            logger.info("Deleted tax year %s (%s brackets)", year, cursor.rowcount)
        return removed

    def _require_rows(self, year: str) -> list[BracketRecord]:
        records = self.list_rows(year)
        if not records:
            raise UnsupportedYearError(year, self.list_supported_years())
        return records


@contextmanager
def open_store(path: str | Path) -> Iterator[BracketStore]:
    conn = connect(path)
    try:
        store = BracketStore(conn)
        store.initialize()
        yield store
    finally:
        conn.close()


__all__ = [
    "UNBOUNDED_SENTINEL",
    "BracketRecord",
    "BracketStore",
    "connect",
    "open_store",
    "to_stored_upper",
    "from_stored_upper",
]
