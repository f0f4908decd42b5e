"""Place cache - SQLite store of the latest forecast per tracked place."""

import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Callable

from src.tools.shared_libraries.streams import Subscription

from .models import RECORD_COLUMNS, SCHEMA_SQL, PlaceRecord


logger = logging.getLogger(__name__)

PlacesListener = Callable[[list[PlaceRecord]], None]

_SELECT_ALL_SQL = f"""
SELECT {', '.join(RECORD_COLUMNS)}
FROM places_weather
ORDER BY last_synced_at DESC, name ASC
"""

_UPSERT_SQL = f"""
INSERT OR REPLACE INTO places_weather ({', '.join(RECORD_COLUMNS)})
VALUES ({', '.join('?' for _ in RECORD_COLUMNS)})
"""


def get_db_path() -> str:
    """Get the database file path."""
    db_dir = Path(os.getenv('WEATHER_DB_DIR', './data'))
    db_dir.mkdir(parents=True, exist_ok=True)
    return str(db_dir / 'places.db')


class PlaceCache:
    """Durable keyed store of one PlaceRecord per place name.

    Every mutation is followed by a fresh, recency-ordered snapshot pushed to
    each registered listener. Listeners run synchronously in the caller of
    the mutation.
    """

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or get_db_path()
        self._lock = threading.RLock()
        self._listeners: list[PlacesListener] = []
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        finally:
            conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> None:
        with self._lock:
            conn = self._connect()
            try:
                conn.execute(sql, params)
                conn.commit()
            finally:
                conn.close()
            self._notify()

    def upsert(self, record: PlaceRecord) -> None:
        """Insert the record, replacing any record with the same name."""
        self._execute(
            _UPSERT_SQL,
            tuple(getattr(record, column) for column in RECORD_COLUMNS),
        )

    def delete(self, name: str) -> None:
        """Remove the record for `name`; does nothing if there is none."""
        self._execute('DELETE FROM places_weather WHERE name = ?', (name,))

    def delete_all(self) -> None:
        self._execute('DELETE FROM places_weather')

    def all_places(self) -> list[PlaceRecord]:
        """Snapshot of every record, most recently synced first."""
        conn = self._connect()
        try:
            rows = conn.execute(_SELECT_ALL_SQL).fetchall()
        finally:
            conn.close()
        return [PlaceRecord(**dict(row)) for row in rows]

    def observe(self, listener: PlacesListener) -> Callable[[], None]:
        """Register `listener` and call it with the current snapshot.

        Returns:
            A callable that unregisters the listener.
        """
        with self._lock:
            self._listeners.append(listener)
            listener(self.all_places())

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def observe_all(self) -> Subscription[list[PlaceRecord]]:
        """Live subscription to the ordered contents of the cache.

        The current contents are available immediately; a new snapshot
        follows every mutation until the subscription is closed.
        """
        def release(_: Subscription) -> None:
            unsubscribe()

        subscription: Subscription[list[PlaceRecord]] = Subscription(on_close=release)
        unsubscribe = self.observe(subscription.push)
        return subscription

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.all_places()
        logger.debug(f'Publishing {len(snapshot)} places to {len(self._listeners)} listeners')
        for listener in list(self._listeners):
            listener(snapshot)
