"""
ログ設定単体テスト

パッケージを読み込んだだけではログ設定を変えず、
setup_logging() はパッケージロガーのみを設定することを確認する。
"""

import logging
import unittest

import radiko_session
from radiko_session.logging_config import (
    PACKAGE_LOGGER_NAME, LoggerMixin, reset_logging, setup_logging,
)


def _active_handlers(logger):
    return [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]


class TestLibraryDefaults(unittest.TestCase):
    """読み込み時の既定状態テスト"""

    def tearDown(self):
        reset_logging()

    def test_01_パッケージロガーはNullHandlerのみ(self):
        reset_logging()
        package_logger = logging.getLogger(radiko_session.__name__)

        self.assertTrue(any(isinstance(h, logging.NullHandler) for h in package_logger.handlers))
        self.assertEqual(_active_handlers(package_logger), [])
        self.assertEqual(package_logger.level, logging.NOTSET)

    def test_02_LoggerMixinはモジュール名のロガー(self):
        class Component(LoggerMixin):
            pass

        self.assertEqual(Component().logger.name, __name__)


class TestSetupLogging(unittest.TestCase):
    """setup_logging テスト"""

    def setUp(self):
        self.root_logger = logging.getLogger()
        self.root_handlers = list(self.root_logger.handlers)
        self.root_level = self.root_logger.level

    def tearDown(self):
        reset_logging()

    def test_01_ルートロガーは変更しない(self):
        setup_logging(log_level=logging.DEBUG, console_output=True)

        self.assertEqual(self.root_logger.handlers, self.root_handlers)
        self.assertEqual(self.root_logger.level, self.root_level)

    def test_02_レベル指定は文字列も可(self):
        logger = setup_logging(log_level='warning', console_output=False)

        self.assertEqual(logger.name, PACKAGE_LOGGER_NAME)
        self.assertEqual(logger.level, logging.WARNING)
        self.assertEqual(_active_handlers(logger), [])

    def test_03_テスト時のコンソール出力はERROR以上(self):
        logger = setup_logging(log_level=logging.DEBUG, console_output=True)

        handlers = _active_handlers(logger)
        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], logging.StreamHandler)
        self.assertEqual(handlers[0].level, logging.ERROR)

    def test_04_再設定でハンドラーを置き換える(self):
        setup_logging(log_level=logging.INFO, console_output=True)
        logger = setup_logging(log_level=logging.DEBUG, console_output=True)

        self.assertEqual(len(_active_handlers(logger)), 1)
        self.assertEqual(logger.level, logging.DEBUG)

    def test_05_リセットで未設定に戻る(self):
        setup_logging(log_level=logging.DEBUG, console_output=True)

        reset_logging()

        package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
        self.assertEqual(_active_handlers(package_logger), [])
        self.assertEqual(package_logger.level, logging.NOTSET)


if __name__ == '__main__':
    unittest.main()
