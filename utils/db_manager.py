"""
Database manager for the webtoon reader backend.

Every cached entity is stored as one JSON document in a small key/value
table, keyed by ``WebtoonId.key``. The ``webtoons`` table holds the cached
metadata and episode lists, ``user_webtoons`` the user's library and
``user_settings`` preferences such as the platform language.
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from models.meta import Language
from models.user import UserData, UserWebtoon
from models.webtoon import WebtoonId, WebtoonMetadata
from utils.config import Config
from utils.logger import get_logger, log_exception, CacheMissError, DatabaseError, ValidationError

logger = get_logger(__name__)

WEBTOONS_TABLE = 'webtoons'
USER_WEBTOONS_TABLE = 'user_webtoons'
USER_SETTINGS_TABLE = 'user_settings'

TABLES = (WEBTOONS_TABLE, USER_WEBTOONS_TABLE, USER_SETTINGS_TABLE)

LANGUAGE_KEY = 'language'


def _create_table_sql(table: str) -> str:
    return f'''
CREATE TABLE IF NOT EXISTS {table} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
'''


class DatabaseManager:
    """High-level database manager for cached webtoons and the user library."""

    def __init__(self, db_path: Union[str, Path, None] = None):
        """Initialize the database manager."""
        self.db_path = str(db_path or Config.DB_PATH)
        # sqlite connections are per call; this only serializes writers
        self._write_lock = threading.Lock()
        self.init_database()

    def init_database(self) -> None:
        """Initialize the database with required tables."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self.get_connection() as conn:
            c = conn.cursor()
            for table in TABLES:
                c.execute(_create_table_sql(table))
            conn.commit()

    @contextmanager
    def get_connection(self):
        """Get a database connection context manager.

        Raises:
            DatabaseError: if sqlite fails while the connection is in use.
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open database {self.db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Generic key/value access
    # ------------------------------------------------------------------

    def get_value(self, table: str, key: str) -> Optional[Any]:
        """Get the decoded JSON document stored under ``key``, or None."""
        with self.get_connection() as conn:
            c = conn.cursor()
            c.execute(f'SELECT value FROM {table} WHERE key=?', (key,))
            row = c.fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def get_all_values(self, table: str) -> Dict[str, Any]:
        with self.get_connection() as conn:
            c = conn.cursor()
            c.execute(f'SELECT key, value FROM {table}')
            rows = c.fetchall()
        return {key: json.loads(value) for key, value in rows}

    def set_value(self, table: str, key: str, value: Any) -> None:
        """Insert or replace the JSON document stored under ``key``."""
        payload = json.dumps(value, ensure_ascii=False)
        with self._write_lock, self.get_connection() as conn:
            c = conn.cursor()
            c.execute(
                f'''INSERT INTO {table} (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at''',
                (key, payload)
            )
            conn.commit()

    def delete_value(self, table: str, key: str) -> bool:
        """Delete ``key``. Returns whether a row was removed."""
        with self._write_lock, self.get_connection() as conn:
            c = conn.cursor()
            c.execute(f'DELETE FROM {table} WHERE key=?', (key,))
            conn.commit()
            return c.rowcount > 0

    # ------------------------------------------------------------------
    # Cached webtoons
    # ------------------------------------------------------------------

    def get_webtoon(self, webtoon_id: WebtoonId) -> WebtoonMetadata:
        """Load the cached record of ``webtoon_id``.

        Raises:
            CacheMissError: if there is no record, or the stored record
                cannot be read back (e.g. written by an older schema).
        """
        try:
            data = self.get_value(WEBTOONS_TABLE, webtoon_id.key)
        except json.JSONDecodeError as e:
            logger.warning(f"Cached record of {webtoon_id} is not valid JSON: {e}")
            raise CacheMissError(f"Unreadable cache record for {webtoon_id}") from e

        if data is None:
            raise CacheMissError(f"No cache record for {webtoon_id}")
        if not isinstance(data, dict):
            logger.warning(f"Cached record of {webtoon_id} is a JSON {type(data).__name__}, not an object")
            raise CacheMissError(f"Incompatible cache record for {webtoon_id}")

        try:
            return WebtoonMetadata.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Discarding incompatible cache record of {webtoon_id}: {e}")
            raise CacheMissError(f"Incompatible cache record for {webtoon_id}") from e

    def save_webtoon(self, metadata: WebtoonMetadata) -> None:
        self.set_value(WEBTOONS_TABLE, metadata.id.key, metadata.to_dict())
        logger.debug(f"Saved {metadata} under {metadata.id.key}")

    def delete_webtoon(self, webtoon_id: WebtoonId) -> bool:
        return self.delete_value(WEBTOONS_TABLE, webtoon_id.key)

    def get_cached_webtoons(self) -> List[WebtoonMetadata]:
        """Get every readable cached record, skipping incompatible ones."""
        records = []
        for key, data in self.get_all_values(WEBTOONS_TABLE).items():
            if not isinstance(data, dict):
                logger.warning(f"Skipping cache record {key}: not a JSON object")
                continue
            try:
                records.append(WebtoonMetadata.from_dict(data))
            except (KeyError, ValueError, TypeError) as e:
                log_exception(logger, e, f"Skipping cache record {key}")
        return records

    # ------------------------------------------------------------------
    # User library
    # ------------------------------------------------------------------

    def get_user_webtoon(self, webtoon_id: WebtoonId) -> Optional[UserWebtoon]:
        data = self.get_value(USER_WEBTOONS_TABLE, webtoon_id.key)
        if data is None:
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring library entry of {webtoon_id}: not a JSON object")
            return None
        return UserWebtoon.from_dict(data)

    def get_user_data(self) -> UserData:
        webtoons = {}
        for key, data in self.get_all_values(USER_WEBTOONS_TABLE).items():
            if not isinstance(data, dict):
                logger.warning(f"Skipping library entry {key}: not a JSON object")
                continue
            try:
                webtoons[key] = UserWebtoon.from_dict(data)
            except (KeyError, ValueError, TypeError) as e:
                log_exception(logger, e, f"Skipping library entry {key}")
        return UserData(webtoons=webtoons, language=self.get_language())

    def save_user_webtoon(self, user_webtoon: UserWebtoon) -> None:
        self.set_value(USER_WEBTOONS_TABLE, user_webtoon.id.key, user_webtoon.to_dict())

    def delete_user_webtoon(self, webtoon_id: WebtoonId) -> bool:
        return self.delete_value(USER_WEBTOONS_TABLE, webtoon_id.key)

    # ------------------------------------------------------------------
    # User settings
    # ------------------------------------------------------------------

    def get_language(self) -> Language:
        """Get the platform language the user picked, or the default one."""
        code = self.get_value(USER_SETTINGS_TABLE, LANGUAGE_KEY)
        if code is None:
            return Language.default()
        try:
            return Language.parse(code if isinstance(code, str) else '')
        except ValidationError as e:
            logger.warning(f"Ignoring stored language setting: {e}")
            return Language.default()

    def set_language(self, language: Language) -> None:
        self.set_value(USER_SETTINGS_TABLE, LANGUAGE_KEY, language.value)
        logger.info(f"Platform language set to {language.value}")

    def get_stats(self) -> Dict[str, int]:
        """Get row counts per table."""
        stats = {}
        with self.get_connection() as conn:
            c = conn.cursor()
            for table in TABLES:
                c.execute(f'SELECT COUNT(*) FROM {table}')
                stats[table] = c.fetchone()[0]
        return stats
