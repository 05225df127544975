"""
ログ設定モジュール

radiko-session のロガーを管理します。
- ライブラリとして読み込んだだけではログ設定を変更しない（NullHandlerのみ）
- CLI等のアプリケーションが setup_logging() でパッケージロガーを設定する
- 通常使用時：ファイル出力（ローテーション）、テスト時：コンソール出力（ERROR以上）
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union


ENV_PREFIX = "RADIKO_SESSION_"

PACKAGE_LOGGER_NAME = "radiko_session"

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FILE = "radiko_session.log"
DEFAULT_MAX_LOG_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def _is_test_mode() -> bool:
    return any([
        'PYTEST_CURRENT_TEST' in os.environ,
        'pytest' in sys.modules,
        os.environ.get(f'{ENV_PREFIX}TEST_MODE', '').lower() == 'true'
    ])


def _resolve_level(log_level: Optional[Union[str, int]]) -> int:
    if log_level is None:
        log_level = os.environ.get(f'{ENV_PREFIX}LOG_LEVEL', DEFAULT_LOG_LEVEL)
    if isinstance(log_level, str):
        return getattr(logging, log_level.upper(), DEFAULT_LOG_LEVEL)
    return log_level


def _console_default(test_mode: bool) -> bool:
    console_env = os.environ.get(f'{ENV_PREFIX}CONSOLE_OUTPUT', '').lower()
    if console_env in ('true', 'false'):
        return console_env == 'true'
    return test_mode


def setup_logging(log_level: Optional[Union[str, int]] = None,
                  log_file: Optional[str] = None,
                  console_output: Optional[bool] = None,
                  max_log_size: int = DEFAULT_MAX_LOG_SIZE) -> logging.Logger:
    """
    パッケージロガー（radiko_session）を設定

    呼び出すたびに以前のハンドラーを外して設定し直す。
    ルートロガーには触れない。

    Args:
        log_level: ログレベル（省略時は RADIKO_SESSION_LOG_LEVEL または INFO）
        log_file: ログファイルパス（省略時は RADIKO_SESSION_LOG_FILE）
        console_output: コンソール出力の有無（None時は自動判定）
        max_log_size: ログファイルの最大サイズ（バイト）

    Returns:
        logging.Logger: 設定済みのパッケージロガー
    """
    test_mode = _is_test_mode()
    level = _resolve_level(log_level)
    if log_file is None:
        log_file = os.environ.get(f'{ENV_PREFIX}LOG_FILE', DEFAULT_LOG_FILE)
    if console_output is None:
        console_output = _console_default(test_mode)

    reset_logging()
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level)

    handlers: List[logging.Handler] = []

    # ファイルハンドラー（テスト時以外で有効）
    if log_file and not test_mode:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_log_size,
                backupCount=DEFAULT_BACKUP_COUNT,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Failed to create log file handler: {e}", file=sys.stderr)

    # 標準出力はコマンドの出力に使うため標準エラーへ
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.ERROR if test_mode else level)
        handlers.append(console_handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.debug(f"ログ設定完了 - レベル: {logging.getLevelName(level)}, "
                         f"ファイル: {log_file if not test_mode else '-'}, コンソール出力: {console_output}")
    return package_logger


def reset_logging() -> None:
    """setup_logging() で追加したハンドラーを外し、レベルを未設定に戻す"""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in package_logger.handlers[:]:
        if isinstance(handler, logging.NullHandler):
            continue
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


def get_logger(name: str) -> logging.Logger:
    """モジュールロガーを取得（ログ設定は行わない）"""
    return logging.getLogger(name)


class LoggerMixin:
    """クラスのモジュール名でロガーを初期化するMixin

    サブクラスは super().__init__() を呼ぶと self.logger が使える。
    """

    logger: logging.Logger

    def __init__(self) -> None:
        self.logger = get_logger(self.__class__.__module__)
