#!/usr/bin/env python3
"""
Tests for database functionality.
Tests the key/value tables, cached webtoon records and the user library.
"""

import unittest
import tempfile
import os
import sqlite3
from datetime import datetime, timedelta, timezone

# Add project root to path
import sys
from pathlib import Path
project_root = Path(__file__).parent.parent.absolute()
sys.path.insert(0, str(project_root))

from models.episode import EpisodePreview
from models.meta import Genre, Language, Schedule
from models.user import UserWebtoon
from models.webtoon import WebtoonId, WtType, WebtoonMetadata
from utils.db_manager import (DatabaseManager, WEBTOONS_TABLE, USER_WEBTOONS_TABLE, USER_SETTINGS_TABLE,
                              LANGUAGE_KEY)
from utils.logger import CacheMissError, DatabaseError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
ORIGINAL = WebtoonId(95, WtType.ORIGINAL)


def make_record(webtoon_id=ORIGINAL, episode_count=3):
    return WebtoonMetadata(
        id=webtoon_id,
        title="Tower of God",
        thumbnail="/data/thumbnails/wt_95_thumb.jpg",
        creators=["SIU"],
        genres=[Genre.FANTASY],
        schedule=Schedule.daily(),
        episodes=[
            EpisodePreview(
                parent_wt_id=webtoon_id,
                number=n,
                title=f"Episode {n}",
                thumbnail=f"/data/episodes/{webtoon_id.key}/ep_{n}.jpg",
                likes=n,
                posted_at="Jan 1, 2024",
                ep_url=f"https://www.webtoons.com/en/x/y/e/viewer?title_no={webtoon_id.wt_id}&episode_no={n}"
            )
            for n in range(1, episode_count + 1)
        ],
        refresh_eps_at=NOW + timedelta(days=1),
        expired_at=NOW + timedelta(days=10)
    )


class TestDatabaseManager(unittest.TestCase):
    """Test cases for DatabaseManager."""

    def setUp(self):
        """Set up test fixtures with temporary database."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, 'nested', 'store.db')
        self.db_manager = DatabaseManager(self.db_path)

    def tearDown(self):
        """Clean up after tests."""
        self.temp_dir.cleanup()

    def test_init_database(self):
        """Test database initialization."""
        self.assertTrue(os.path.exists(self.db_path))

        with sqlite3.connect(self.db_path) as conn:
            c = conn.cursor()
            c.execute("SELECT name FROM sqlite_master WHERE type='table'")
            tables = [row[0] for row in c.fetchall()]

        self.assertIn(WEBTOONS_TABLE, tables)
        self.assertIn(USER_WEBTOONS_TABLE, tables)

    def test_reopen_keeps_data(self):
        self.db_manager.save_webtoon(make_record())

        reopened = DatabaseManager(self.db_path)

        self.assertEqual(reopened.get_webtoon(ORIGINAL).title, "Tower of God")

    def test_key_value_access(self):
        self.db_manager.set_value(WEBTOONS_TABLE, 'k', {'a': [1, 2]})
        self.db_manager.set_value(WEBTOONS_TABLE, 'k', {'a': [3]})

        self.assertEqual(self.db_manager.get_value(WEBTOONS_TABLE, 'k'), {'a': [3]})
        self.assertEqual(self.db_manager.get_all_values(WEBTOONS_TABLE), {'k': {'a': [3]}})
        self.assertIsNone(self.db_manager.get_value(WEBTOONS_TABLE, 'missing'))

        self.assertTrue(self.db_manager.delete_value(WEBTOONS_TABLE, 'k'))
        self.assertFalse(self.db_manager.delete_value(WEBTOONS_TABLE, 'k'))

    def test_save_and_get_webtoon(self):
        self.db_manager.save_webtoon(make_record())

        record = self.db_manager.get_webtoon(ORIGINAL)

        self.assertEqual(record.id, ORIGINAL)
        self.assertEqual(record.episode_count, 3)
        self.assertEqual(record.episodes[2].thumbnail, "/data/episodes/original_95/ep_3.jpg")
        self.assertEqual(record.schedule, Schedule.daily())
        self.assertEqual(record.expired_at, NOW + timedelta(days=10))

    def test_catalogs_do_not_collide(self):
        canvas = WebtoonId(95, WtType.CANVAS)
        self.db_manager.save_webtoon(make_record(ORIGINAL, 3))
        self.db_manager.save_webtoon(make_record(canvas, 1))

        self.assertEqual(self.db_manager.get_webtoon(ORIGINAL).episode_count, 3)
        self.assertEqual(self.db_manager.get_webtoon(canvas).episode_count, 1)

    def test_missing_record(self):
        with self.assertRaises(CacheMissError):
            self.db_manager.get_webtoon(ORIGINAL)

    def test_incompatible_record(self):
        self.db_manager.set_value(WEBTOONS_TABLE, ORIGINAL.key, {'title': 'no id'})

        with self.assertLogs('webtoon_reader', level='WARNING'):
            with self.assertRaises(CacheMissError):
                self.db_manager.get_webtoon(ORIGINAL)

    def test_corrupt_json(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(f"INSERT INTO {WEBTOONS_TABLE} (key, value) VALUES (?, ?)", (ORIGINAL.key, '{not json'))

        with self.assertRaises(CacheMissError):
            self.db_manager.get_webtoon(ORIGINAL)

    def test_record_that_is_not_an_object(self):
        self.db_manager.set_value(WEBTOONS_TABLE, ORIGINAL.key, [1, 2, 3])

        with self.assertLogs('webtoon_reader', level='WARNING'):
            with self.assertRaises(CacheMissError):
                self.db_manager.get_webtoon(ORIGINAL)

        self.assertEqual(self.db_manager.get_cached_webtoons(), [])

    def test_library_entry_that_is_not_an_object(self):
        self.db_manager.set_value(USER_WEBTOONS_TABLE, ORIGINAL.key, "Tower of God")

        self.assertIsNone(self.db_manager.get_user_webtoon(ORIGINAL))
        self.assertEqual(self.db_manager.get_user_data().webtoons, {})

    def test_cached_webtoons_skip_unreadable_records(self):
        self.db_manager.save_webtoon(make_record())
        self.db_manager.set_value(WEBTOONS_TABLE, 'canvas_1', {'broken': True})

        records = self.db_manager.get_cached_webtoons()

        self.assertEqual([record.id for record in records], [ORIGINAL])

    def test_delete_webtoon(self):
        self.db_manager.save_webtoon(make_record())

        self.assertTrue(self.db_manager.delete_webtoon(ORIGINAL))
        self.assertFalse(self.db_manager.delete_webtoon(ORIGINAL))

    def test_user_library(self):
        entry = UserWebtoon.from_metadata(make_record())
        entry.mark_seen(2)
        self.db_manager.save_user_webtoon(entry)

        stored = self.db_manager.get_user_webtoon(ORIGINAL)
        self.assertEqual(stored.title, "Tower of God")
        self.assertEqual(stored.last_seen, 2)
        self.assertIsNone(self.db_manager.get_user_webtoon(WebtoonId(1, WtType.CANVAS)))

        data = self.db_manager.get_user_data()
        self.assertEqual(list(data.webtoons), [ORIGINAL.key])

        self.assertTrue(self.db_manager.delete_user_webtoon(ORIGINAL))
        self.assertEqual(self.db_manager.get_user_data().webtoons, {})

    def test_library_survives_cache_deletion(self):
        record = make_record()
        self.db_manager.save_webtoon(record)
        self.db_manager.save_user_webtoon(UserWebtoon.from_metadata(record))

        self.db_manager.delete_webtoon(ORIGINAL)

        self.assertIsNotNone(self.db_manager.get_user_webtoon(ORIGINAL))

    def test_language_setting(self):
        self.assertEqual(self.db_manager.get_language(), Language.ENGLISH)

        self.db_manager.set_language(Language.FRENCH)

        self.assertEqual(self.db_manager.get_language(), Language.FRENCH)
        self.assertEqual(DatabaseManager(self.db_path).get_user_data().language, Language.FRENCH)

    def test_unknown_stored_language_falls_back(self):
        self.db_manager.set_value(USER_SETTINGS_TABLE, LANGUAGE_KEY, "xx")

        with self.assertLogs('webtoon_reader', level='WARNING'):
            self.assertEqual(self.db_manager.get_language(), Language.ENGLISH)

    def test_get_stats(self):
        self.db_manager.save_webtoon(make_record())

        self.assertEqual(self.db_manager.get_stats(),
                         {WEBTOONS_TABLE: 1, USER_WEBTOONS_TABLE: 0, USER_SETTINGS_TABLE: 0})

    def test_sqlite_errors_are_wrapped(self):
        with self.assertRaises(DatabaseError):
            self.db_manager.get_value('no_such_table', 'k')


if __name__ == '__main__':
    unittest.main()
