"""
永続化層単体テスト

読み込み失敗は空のデフォルト値、書き込み失敗はログのみで
呼び出し側に例外を送出しないことを確認する。
"""

import json
import unittest

from radiko_session.errors import StorageError
from radiko_session.models import AuthToken, FavoriteEntry
from radiko_session.storage import (
    AUTH_KEY, FAVORITES_KEY, PLAYBACK_PROGRAMS_KEY, PLAYBACK_SPEED_KEY,
    FileKeyValueStore, KeyValueStore, MemoryKeyValueStore, PlaybackStorage,
)
from tests.utils.test_environment import TemporaryTestEnvironment, make_program


class _BrokenStore(KeyValueStore):
    """常に失敗するストア（容量超過などを想定）"""

    def get(self, key):
        raise StorageError("読み込み不可", key)

    def set(self, key, value):
        raise StorageError("容量超過", key)

    def remove(self, key):
        raise StorageError("削除不可", key)


class TestPlaybackStorageDefaults(unittest.TestCase):
    """読み込み時のデフォルト値テスト"""

    def setUp(self):
        self.kv = MemoryKeyValueStore()
        self.storage = PlaybackStorage(self.kv)

    def test_01_未保存の場合は空のデフォルト値(self):
        self.assertIsNone(self.storage.load_auth())
        self.assertEqual(self.storage.load_history(), [])
        self.assertEqual(self.storage.load_speed(), 1.0)
        self.assertEqual(self.storage.load_favorites(), [])
        self.assertEqual(self.storage.load('unknown', 'default'), 'default')

    def test_02_壊れたJSONは空のデフォルト値(self):
        # Given: 壊れたデータが保存されている
        for key in (AUTH_KEY, PLAYBACK_PROGRAMS_KEY, FAVORITES_KEY):
            self.kv.set(key, "{broken json")
        self.kv.set(PLAYBACK_SPEED_KEY, "fast")

        # When & Then: 例外を送出せずデフォルト値を返す
        self.assertIsNone(self.storage.load_auth())
        self.assertEqual(self.storage.load_history(), [])
        self.assertEqual(self.storage.load_favorites(), [])
        self.assertEqual(self.storage.load_speed(), 1.0)

    def test_03_形式違いの旧データは空のデフォルト値(self):
        self.kv.set(PLAYBACK_PROGRAMS_KEY, json.dumps({'version': 0}))
        self.kv.set(AUTH_KEY, json.dumps({'token': 'abc'}))
        self.assertEqual(self.storage.load_history(), [])
        self.assertIsNone(self.storage.load_auth())

    def test_04_不正な履歴エントリのみ除外(self):
        valid = make_program().to_dict()
        self.kv.set(PLAYBACK_PROGRAMS_KEY, json.dumps([valid, {'title': 'IDなし'}, 5]))
        history = self.storage.load_history()
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].station_id, 'TBS')

    def test_05_有限の正の値でない再生速度はデフォルト値(self):
        for raw in ("nan", "inf", "-Infinity", "0", "-1.5"):
            with self.subTest(raw=raw):
                self.kv.set(PLAYBACK_SPEED_KEY, raw)
                self.assertEqual(self.storage.load_speed(), 1.0)


class TestPlaybackStorageWrite(unittest.TestCase):
    """書き込みテスト"""

    def test_01_型付きデータの保存と読み込み(self):
        storage = PlaybackStorage(MemoryKeyValueStore())
        auth = AuthToken('token', 'JP13', 1000)
        programs = [make_program(seconds=60), make_program('QRR', completed=True)]
        favorites = [FavoriteEntry('TBS', '番組A')]

        storage.save_auth(auth)
        storage.save_history(programs)
        storage.save_speed(1.5)
        storage.save_favorites(favorites)

        self.assertEqual(storage.load_auth(), auth)
        self.assertEqual(storage.load_history(), programs)
        self.assertEqual(storage.load_speed(), 1.5)
        self.assertEqual(storage.load_favorites(), favorites)

    def test_02_再生速度は数値文字列で保存(self):
        kv = MemoryKeyValueStore()
        PlaybackStorage(kv).save_speed(2)
        self.assertEqual(kv.get(PLAYBACK_SPEED_KEY), "2.0")

    def test_03_ストア障害でも例外を送出しない(self):
        storage = PlaybackStorage(_BrokenStore())

        self.assertFalse(storage.save_history([make_program()]))
        self.assertFalse(storage.save_speed(1.0))
        self.assertEqual(storage.load_history(), [])
        self.assertEqual(storage.load_speed(), 1.0)
        storage.clear()

    def test_04_JSON変換できない値は保存しない(self):
        storage = PlaybackStorage(MemoryKeyValueStore())
        self.assertFalse(storage.save('bad', {'value': object()}))

    def test_05_全データ削除(self):
        kv = MemoryKeyValueStore()
        storage = PlaybackStorage(kv)
        storage.save_speed(1.25)
        storage.save_history([make_program()])
        storage.clear()
        self.assertEqual(kv.keys(), [])


class TestFileKeyValueStore(unittest.TestCase):
    """FileKeyValueStore テスト"""

    def setUp(self):
        self.env = TemporaryTestEnvironment().__enter__()

    def tearDown(self):
        self.env.__exit__(None, None, None)

    def test_01_キーごとのファイルに保存(self):
        store = FileKeyValueStore(self.env.storage_dir)
        store.set(PLAYBACK_SPEED_KEY, "1.5")

        self.assertEqual(store.get(PLAYBACK_SPEED_KEY), "1.5")
        self.assertTrue((self.env.storage_dir / f"{PLAYBACK_SPEED_KEY}.json").exists())
        # 一時ファイルが残らない
        self.assertEqual(len(list(self.env.storage_dir.iterdir())), 1)

    def test_02_上書きと削除(self):
        store = FileKeyValueStore(self.env.storage_dir)
        store.set('radiko_auth', 'first')
        store.set('radiko_auth', 'second')
        self.assertEqual(store.get('radiko_auth'), 'second')

        store.remove('radiko_auth')
        store.remove('radiko_auth')
        self.assertIsNone(store.get('radiko_auth'))

    def test_03_不正なキー(self):
        store = FileKeyValueStore(self.env.storage_dir)
        for key in ('../escape', '', '.hidden'):
            with self.subTest(key=key):
                with self.assertRaises(StorageError):
                    store.set(key, 'value')

    def test_04_PlaybackStorageとの組み合わせ(self):
        storage = PlaybackStorage(FileKeyValueStore(self.env.storage_dir))
        programs = [make_program(seconds=90)]
        storage.save_history(programs)

        reloaded = PlaybackStorage(FileKeyValueStore(self.env.storage_dir))
        self.assertEqual(reloaded.load_history(), programs)


if __name__ == '__main__':
    unittest.main()
