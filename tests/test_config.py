"""
設定管理単体テスト

実ファイルを使ったJSON設定の読み込み・保存、
クライアント設定の検証と環境変数による上書きを確認する。
"""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from radiko_session.config import (
    ENV_API_BASE, ENV_STORAGE_DIR, ClientConfig, ConfigManager, load_client_config,
)
from radiko_session.errors import ConfigurationError


class TestConfigManager(unittest.TestCase):
    """ConfigManager テスト"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "config.json"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_01_デフォルト設定へのマージ(self):
        """ファイルの値がデフォルトを上書きし、未指定の項目はデフォルトが残ることを確認"""
        # Given
        self.config_path.write_text(json.dumps({'history_limit': 20}), encoding='utf-8')

        # When
        config = ConfigManager(self.config_path).load_config({'history_limit': 50, 'speed': 1.0})

        # Then
        self.assertEqual(config, {'history_limit': 20, 'speed': 1.0})

    def test_02_ファイルがなければデフォルト(self):
        default = {'history_limit': 50}
        config = ConfigManager(self.config_path).load_config(default)

        self.assertEqual(config, default)
        self.assertIsNot(config, default)

    def test_03_不正なJSONはデフォルト(self):
        self.config_path.write_text("{broken", encoding='utf-8')
        self.assertEqual(ConfigManager(self.config_path).load_config({'a': 1}), {'a': 1})

    def test_04_辞書以外のJSONはデフォルト(self):
        self.config_path.write_text("[1, 2]", encoding='utf-8')
        self.assertEqual(ConfigManager(self.config_path).load_config({'a': 1}), {'a': 1})

    def test_05_保存と読み込み(self):
        nested_path = Path(self.temp_dir) / "nested" / "config.json"
        manager = ConfigManager(nested_path)

        self.assertTrue(manager.save_config({'api_base_url': 'https://example.jp', 'name': '東京'}))

        self.assertEqual(manager.load_config(), {'api_base_url': 'https://example.jp', 'name': '東京'})
        self.assertIn('東京', nested_path.read_text(encoding='utf-8'))
        self.assertEqual(list(nested_path.parent.iterdir()), [nested_path])


class TestClientConfig(unittest.TestCase):
    """ClientConfig テスト"""

    def test_01_デフォルト値(self):
        config = ClientConfig()

        self.assertEqual(config.auth_ttl_minutes, 70)
        self.assertEqual(config.auth_ttl_ms, 70 * 60 * 1000)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.history_limit, 50)
        self.assertEqual(config.history_retention_days, 7)

    def test_02_不正な値はエラー(self):
        invalid_values = [
            {'api_base_url': 'ftp://example.jp'},
            {'api_base_url': ''},
            {'storage_dir': ''},
            {'history_limit': 0},
            {'history_retention_days': -1},
            {'autosave_interval': 'fast'},
            {'max_retries': -1},
            {'request_timeout': True},
        ]

        for values in invalid_values:
            with self.subTest(values=values):
                with self.assertRaises(ConfigurationError):
                    ClientConfig(**values)

    def test_03_リトライ0回は許可(self):
        self.assertEqual(ClientConfig(max_retries=0, initial_delay=0).max_retries, 0)

    def test_04_辞書からの生成は不明な項目を無視(self):
        config = ClientConfig.from_dict({'history_limit': 10, 'unknown_option': True})

        self.assertEqual(config.history_limit, 10)
        self.assertEqual(ClientConfig.from_dict(config.to_dict()), config)


class TestLoadClientConfig(unittest.TestCase):
    """load_client_config テスト"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "config.json"
        self.config_path.write_text(json.dumps({
            'api_base_url': 'https://proxy.example.jp/api/radiko',
            'history_limit': 30,
        }), encoding='utf-8')

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_01_設定ファイルの読み込み(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(ENV_API_BASE, None)
            os.environ.pop(ENV_STORAGE_DIR, None)
            config = load_client_config(self.config_path)

        self.assertEqual(config.api_base_url, 'https://proxy.example.jp/api/radiko')
        self.assertEqual(config.history_limit, 30)
        self.assertEqual(config.history_retention_days, 7)

    def test_02_環境変数で上書き(self):
        env = {ENV_API_BASE: 'http://127.0.0.1:8080/api', ENV_STORAGE_DIR: self.temp_dir}
        with patch.dict(os.environ, env):
            config = load_client_config(self.config_path)

        self.assertEqual(config.api_base_url, 'http://127.0.0.1:8080/api')
        self.assertEqual(config.storage_dir, self.temp_dir)
        self.assertEqual(config.history_limit, 30)

    def test_03_ファイルの不正な値はエラー(self):
        self.config_path.write_text(json.dumps({'history_limit': 0}), encoding='utf-8')
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(ENV_API_BASE, None)
            with self.assertRaises(ConfigurationError):
                load_client_config(self.config_path)


if __name__ == '__main__':
    unittest.main()
