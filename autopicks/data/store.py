"""ListingStore protocol and SQLite implementation for curated listings."""

from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from autopicks.models import SearchLog, Vehicle

VEHICLE_COLUMNS = Vehicle.field_names()
PUBLIC_COLUMNS = ", ".join(VEHICLE_COLUMNS)
_JSON_COLUMNS = frozenset({"images_url", "score_breakdown", "vin_decode_data"})
_BOOL_COLUMNS = frozenset({
    "is_rental", "is_fleet", "has_lien", "flood_damage",
    "is_rust_belt_state", "flag_rust_concern", "reviewed_by_user",
})

INSERT_VEHICLE_SQL = (
    "INSERT INTO curated_listings ("
    + PUBLIC_COLUMNS
    + ") VALUES ("
    + ", ".join(["?"] * len(VEHICLE_COLUMNS))
    + ")"
)

SEARCH_LOG_COLUMNS = (
    "search_date", "total_listings_fetched", "listings_after_basic_filter",
    "listings_after_vin_validation", "final_curated_count", "api_calls_made",
    "api_cost_usd", "execution_time_seconds", "error_count", "error_details",
    "data_source", "created_at",
)

_SORTABLE = {
    "priority_score": "priority_score DESC, first_seen_at DESC",
    "price": "price ASC",
    "mileage": "mileage ASC",
    "newest": "first_seen_at DESC",
}


@runtime_checkable
class ListingStore(Protocol):
    """What the curation pipeline needs from persistence."""

    def exists(self, vin: str) -> bool: ...
    def insert(self, vehicle: Vehicle) -> Vehicle: ...
    def insert_audit_log(self, log: SearchLog) -> SearchLog: ...


class SqliteListingStore:
    """SQLite-backed store: one row per VIN plus an append-only run log."""

    def __init__(self, db_path: str = ":memory:") -> None:
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA temp_store=MEMORY")
            self._create_schema()

    # ── Schema ─────────────────────────────────────────────────────

    def _create_schema(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS curated_listings (
                id                  TEXT PRIMARY KEY,
                vin                 TEXT NOT NULL UNIQUE COLLATE NOCASE,
                make                TEXT NOT NULL COLLATE NOCASE,
                model               TEXT NOT NULL COLLATE NOCASE,
                year                INTEGER NOT NULL,
                price               REAL NOT NULL,
                mileage             INTEGER NOT NULL,
                current_location    TEXT NOT NULL DEFAULT '',
                source_url          TEXT NOT NULL DEFAULT '',
                source_platform     TEXT NOT NULL DEFAULT '',
                body_type           TEXT,
                dealer_name         TEXT,
                distance_miles      REAL,
                source_listing_id   TEXT,
                images_url          TEXT NOT NULL DEFAULT '[]',
                title_status        TEXT,
                accident_count      INTEGER,
                owner_count         INTEGER,
                is_rental           INTEGER,
                is_fleet            INTEGER,
                has_lien            INTEGER,
                flood_damage        INTEGER,
                state_of_origin     TEXT,
                is_rust_belt_state  INTEGER NOT NULL DEFAULT 0,
                mileage_rating      TEXT,
                model_weight        INTEGER,
                priority_score      INTEGER NOT NULL DEFAULT 0
                                    CHECK (priority_score BETWEEN 0 AND 100),
                quality_tier        TEXT NOT NULL DEFAULT '',
                ai_summary          TEXT NOT NULL DEFAULT '',
                score_breakdown     TEXT NOT NULL DEFAULT '{}',
                flag_rust_concern   INTEGER NOT NULL DEFAULT 0,
                vin_decode_data     TEXT,
                reviewed_by_user    INTEGER NOT NULL DEFAULT 0,
                user_rating         INTEGER CHECK (user_rating BETWEEN 1 AND 5),
                user_notes          TEXT,
                first_seen_at       TEXT NOT NULL,
                last_updated_at     TEXT NOT NULL,
                created_at          TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_curated_priority
                ON curated_listings(priority_score DESC);
            CREATE INDEX IF NOT EXISTS idx_curated_tier
                ON curated_listings(quality_tier);

            CREATE TABLE IF NOT EXISTS search_logs (
                id                              INTEGER PRIMARY KEY AUTOINCREMENT,
                search_date                     TEXT NOT NULL,
                total_listings_fetched          INTEGER NOT NULL DEFAULT 0,
                listings_after_basic_filter     INTEGER NOT NULL DEFAULT 0,
                listings_after_vin_validation   INTEGER NOT NULL DEFAULT 0,
                final_curated_count             INTEGER NOT NULL DEFAULT 0,
                api_calls_made                  INTEGER NOT NULL DEFAULT 0,
                api_cost_usd                    REAL NOT NULL DEFAULT 0,
                execution_time_seconds          REAL NOT NULL DEFAULT 0,
                error_count                     INTEGER NOT NULL DEFAULT 0,
                error_details                   TEXT,
                data_source                     TEXT NOT NULL DEFAULT '',
                created_at                      TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_search_logs_date
                ON search_logs(search_date DESC);
        """)

    # ── Helpers ────────────────────────────────────────────────────

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _vehicle_to_row(vehicle: Vehicle) -> tuple[Any, ...]:
        values: list[Any] = []
        for name in VEHICLE_COLUMNS:
            value = getattr(vehicle, name)
            if name in _JSON_COLUMNS:
                value = json.dumps(value) if value is not None else None
            elif name in _BOOL_COLUMNS and value is not None:
                value = int(bool(value))
            values.append(value)
        return tuple(values)

    @staticmethod
    def _row_to_vehicle(row: sqlite3.Row) -> Vehicle:
        d = dict(row)
        for name in _JSON_COLUMNS:
            raw = d.get(name)
            if raw is None:
                continue
            try:
                d[name] = json.loads(raw)
            except (TypeError, json.JSONDecodeError):
                d[name] = None
        if d.get("images_url") is None:
            d["images_url"] = []
        if d.get("score_breakdown") is None:
            d["score_breakdown"] = {}
        for name in _BOOL_COLUMNS:
            if d.get(name) is not None:
                d[name] = bool(d[name])
        return Vehicle(**{k: d[k] for k in VEHICLE_COLUMNS if k in d})

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> SearchLog:
        d = dict(row)
        raw = d.get("error_details")
        if raw:
            try:
                d["error_details"] = json.loads(raw)
            except (TypeError, json.JSONDecodeError):
                d["error_details"] = {"raw": raw}
        else:
            d["error_details"] = None
        return SearchLog(**d)

    # ── Pipeline contract ──────────────────────────────────────────

    def exists(self, vin: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM curated_listings WHERE vin = ? COLLATE NOCASE",
                (vin.upper(),),
            ).fetchone()
        return row is not None

    def insert(self, vehicle: Vehicle) -> Vehicle:
        """Insert a new curated listing; a VIN already present raises ``sqlite3.IntegrityError``."""
        now = self._now()
        vehicle.vin = vehicle.vin.upper()
        vehicle.id = vehicle.id or uuid.uuid4().hex
        vehicle.first_seen_at = vehicle.first_seen_at or now
        vehicle.last_updated_at = now
        vehicle.created_at = vehicle.created_at or now
        with self._lock:
            with self._conn:
                self._conn.execute(INSERT_VEHICLE_SQL, self._vehicle_to_row(vehicle))
        return vehicle

    def insert_audit_log(self, log: SearchLog) -> SearchLog:
        log.created_at = log.created_at or self._now()
        values = [getattr(log, c) for c in SEARCH_LOG_COLUMNS]
        values[SEARCH_LOG_COLUMNS.index("error_details")] = (
            json.dumps(log.error_details) if log.error_details is not None else None
        )
        with self._lock:
            with self._conn:
                cursor = self._conn.execute(
                    f"INSERT INTO search_logs ({', '.join(SEARCH_LOG_COLUMNS)}) "
                    f"VALUES ({', '.join(['?'] * len(SEARCH_LOG_COLUMNS))})",
                    values,
                )
        log.id = cursor.lastrowid
        return log

    # ── Read / review API ──────────────────────────────────────────

    def get_by_vin(self, vin: str) -> Vehicle | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {PUBLIC_COLUMNS} FROM curated_listings WHERE vin = ? COLLATE NOCASE",
                (vin.strip().upper(),),
            ).fetchone()
        return self._row_to_vehicle(row) if row else None

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM curated_listings").fetchone()
        return row[0]

    def list_vehicles(
        self,
        *,
        quality_tier: str | None = None,
        make: str | None = None,
        reviewed: bool | None = None,
        sort_by: str = "priority_score",
        limit: int = 25,
        offset: int = 0,
    ) -> list[Vehicle]:
        """Curated listings, best first by default."""
        clauses: list[str] = []
        params: list[Any] = []
        if quality_tier:
            clauses.append("quality_tier = ?")
            params.append(quality_tier)
        if make:
            clauses.append("make = ? COLLATE NOCASE")
            params.append(make)
        if reviewed is not None:
            clauses.append("reviewed_by_user = ?")
            params.append(int(reviewed))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = _SORTABLE.get(sort_by, _SORTABLE["priority_score"])
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {PUBLIC_COLUMNS} FROM curated_listings {where} "
                f"ORDER BY {order} LIMIT ? OFFSET ?",
                (*params, max(limit, 0), max(offset, 0)),
            ).fetchall()
        return [self._row_to_vehicle(r) for r in rows]

    def tier_counts(self) -> dict[str, int]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT quality_tier, COUNT(*) AS n FROM curated_listings GROUP BY quality_tier"
            ).fetchall()
        return {row["quality_tier"]: row["n"] for row in rows}

    def list_search_logs(self, *, limit: int = 10) -> list[SearchLog]:
        """Most recent runs first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM search_logs ORDER BY created_at DESC, id DESC LIMIT ?",
                (max(limit, 0),),
            ).fetchall()
        return [self._row_to_log(r) for r in rows]

    def mark_reviewed(
        self,
        vin: str,
        *,
        user_rating: int | None = None,
        user_notes: str | None = None,
    ) -> Vehicle | None:
        """Flag a listing as reviewed; returns ``None`` when the VIN is unknown."""
        if user_rating is not None and not 1 <= user_rating <= 5:
            raise ValueError("user_rating must be between 1 and 5")
        with self._lock:
            with self._conn:
                cursor = self._conn.execute(
                    """UPDATE curated_listings
                       SET reviewed_by_user = 1,
                           user_rating = COALESCE(?, user_rating),
                           user_notes = COALESCE(?, user_notes),
                           last_updated_at = ?
                       WHERE vin = ? COLLATE NOCASE""",
                    (user_rating, user_notes, self._now(), vin.strip().upper()),
                )
        if cursor.rowcount == 0:
            return None
        return self.get_by_vin(vin)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
