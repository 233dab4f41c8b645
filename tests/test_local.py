"""Tests for WealthMate.core.local.FileLocalStore."""
import json
import unittest
from unittest.mock import patch

from WealthMate.core import model
from WealthMate.core.local import FileLocalStore, Secret
from tests.base import BaseTestCase, make_snapshot, mute_ui_signals


class FileLocalStoreTest(BaseTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.store = self.make_local_store()

    def test_paths_follow_config_root(self):
        self.assertEqual(self.store.data_path, self.config_paths.config_dir / 'data.json')
        self.assertEqual(self.store.secrets_path, self.config_paths.auth_dir / 'secrets.ini')
        self.assertTrue(self.config_paths.auth_dir.is_dir())

    def test_missing_file_loads_as_none(self):
        self.assertFalse(self.store.data_path.exists())
        self.assertIsNone(self.store.load_snapshot())

    def test_save_and_load(self):
        snapshot = make_snapshot(updated_at=123, members=2)
        self.assertTrue(self.store.save_snapshot(snapshot))
        self.assertTrue(self.store.data_path.exists())

        loaded = self.store.load_snapshot()
        self.assertEqual(loaded, snapshot)

        data = json.loads(self.store.data_path.read_text(encoding='utf-8'))
        self.assertEqual(data['updatedAt'], 123)

    def test_save_leaves_no_temporary_files(self):
        self.store.save_snapshot(make_snapshot(updated_at=1))
        self.store.save_snapshot(make_snapshot(updated_at=2))
        names = sorted(p.name for p in self.store.data_path.parent.iterdir() if p.is_file())
        self.assertEqual(names, ['data.json'])
        self.assertEqual(self.store.load_snapshot().updated_at, 2)

    def test_corrupt_file_loads_as_none(self):
        self.store.data_path.write_text('{"members": [', encoding='utf-8')
        self.assertIsNone(self.store.load_snapshot())

        self.store.data_path.write_text('{"members": 42}', encoding='utf-8')
        self.assertIsNone(self.store.load_snapshot())

    def test_out_of_range_number_loads_as_none(self):
        self.store.data_path.write_text('{"updatedAt": 1e400}', encoding='utf-8')
        self.assertIsNone(self.store.load_snapshot())

        self.store.data_path.write_text('{"members": [{"salary": NaN}]}', encoding='utf-8')
        self.assertIsNone(self.store.load_snapshot())

    def test_deeply_nested_file_loads_as_none(self):
        depth = 100_000
        self.store.data_path.write_text('{"x": ' + '[' * depth + ']' * depth + '}', encoding='utf-8')
        self.assertIsNone(self.store.load_snapshot())

    def test_failed_save_returns_false(self):
        snapshot = make_snapshot(updated_at=1)
        with mute_ui_signals(), patch('WealthMate.core.local.os.replace', side_effect=OSError('disk full')):
            self.assertFalse(self.store.save_snapshot(snapshot))
        self.assertIsNone(self.store.load_snapshot())
        names = [p.name for p in self.store.data_path.parent.iterdir() if p.is_file()]
        self.assertEqual(names, [])

    def test_secrets(self):
        self.assertIsNone(self.store.load_secret(Secret.AccessToken))

        self.assertTrue(self.store.save_secret(Secret.AccessToken, 'ghp_token'))
        self.assertTrue(self.store.save_secret(Secret.GistId, 'abc123'))
        self.assertEqual(self.store.load_secret(Secret.AccessToken), 'ghp_token')
        self.assertEqual(self.store.load_secret(Secret.GistId), 'abc123')

        self.assertTrue(self.store.clear_secret(Secret.AccessToken))
        self.assertIsNone(self.store.load_secret(Secret.AccessToken))
        self.assertEqual(self.store.load_secret(Secret.GistId), 'abc123')

    def test_secrets_persist_across_instances(self):
        self.store.save_secret(Secret.GistId, 'abc123')
        other = FileLocalStore(paths=self.config_paths)
        self.assertEqual(other.load_secret(Secret.GistId), 'abc123')

    def test_secrets_stay_out_of_snapshot(self):
        self.store.save_secret(Secret.AccessToken, 'ghp_token')
        self.store.save_snapshot(model.default_household())
        self.assertNotIn('ghp_token', self.store.data_path.read_text(encoding='utf-8'))


if __name__ == '__main__':
    unittest.main()
