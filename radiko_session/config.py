"""
設定管理モジュール

JSON設定ファイルの読み込み・保存と、クライアント設定値の検証を行います。
- デフォルト設定へのマージ
- 環境変数による上書き（RADIKO_SESSION_API_BASE / RADIKO_SESSION_STORAGE_DIR）
- 一時ファイル経由の原子的な保存
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import ConfigurationError
from .logging_config import get_logger
from .utils.path_utils import atomic_write_text

logger = get_logger(__name__)


DEFAULT_CONFIG_PATH = "~/.radiko_session/config.json"

ENV_API_BASE = "RADIKO_SESSION_API_BASE"
ENV_STORAGE_DIR = "RADIKO_SESSION_STORAGE_DIR"


class ConfigManager:
    """JSON設定ファイル管理クラス

    Usage:
        config_manager = ConfigManager("config.json")
        config = config_manager.load_config(default_config)
        config_manager.save_config(config)
    """

    def __init__(self, config_path: Union[str, Path], encoding: str = 'utf-8'):
        self.config_path = Path(config_path).expanduser()
        self.encoding = encoding

    def load_config(self, default_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """設定ファイルを読み込み

        ファイルが存在しない・解析できない場合はデフォルト設定を返す。
        """
        if default_config is None:
            default_config = {}

        if not self.config_path.exists():
            logger.info(f"設定ファイルが存在しません: {self.config_path}")
            return default_config.copy()

        try:
            with open(self.config_path, 'r', encoding=self.encoding) as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"設定ファイルJSON解析エラー: {self.config_path} - {e}")
            return default_config.copy()
        except OSError as e:
            logger.error(f"設定ファイル読み込みエラー: {self.config_path} - {e}")
            return default_config.copy()

        if not isinstance(config, dict):
            logger.error(f"設定データが辞書型ではありません: {self.config_path}")
            return default_config.copy()

        merged_config = default_config.copy()
        merged_config.update(config)
        logger.debug(f"設定ファイル読み込み成功: {self.config_path}")
        return merged_config

    def save_config(self, config: Dict[str, Any], indent: int = 2) -> bool:
        """設定ファイルを保存

        Returns:
            保存成功ならTrue
        """
        try:
            atomic_write_text(self.config_path,
                              json.dumps(config, ensure_ascii=False, indent=indent),
                              self.encoding)
            logger.debug(f"設定ファイル保存成功: {self.config_path}")
            return True
        except OSError as e:
            logger.error(f"設定ファイル保存エラー: {self.config_path} - {e}")
            return False


@dataclass
class ClientConfig:
    """クライアント設定"""
    api_base_url: str = "http://localhost:3000/api/radiko"
    storage_dir: str = "~/.radiko_session/data"
    auth_ttl_minutes: int = 70
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 5.0
    history_limit: int = 50
    history_retention_days: int = 7
    autosave_interval: float = 5.0
    request_timeout: int = 30

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """設定値の検証

        Raises:
            ConfigurationError: 不正な値がある場合
        """
        if not self.api_base_url or not str(self.api_base_url).startswith(('http://', 'https://')):
            raise ConfigurationError(f"APIのURLが不正です: {self.api_base_url!r}",
                                     {'api_base_url': self.api_base_url})
        if not self.storage_dir:
            raise ConfigurationError("保存先ディレクトリが指定されていません")

        positive = {
            'auth_ttl_minutes': self.auth_ttl_minutes,
            'history_limit': self.history_limit,
            'history_retention_days': self.history_retention_days,
            'autosave_interval': self.autosave_interval,
            'request_timeout': self.request_timeout,
        }
        for name, value in positive.items():
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{name} は正の数である必要があります: {value!r}",
                                         {name: value})

        non_negative = {
            'max_retries': self.max_retries,
            'initial_delay': self.initial_delay,
            'max_delay': self.max_delay,
        }
        for name, value in non_negative.items():
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"{name} は0以上である必要があります: {value!r}",
                                         {name: value})

    @property
    def auth_ttl_ms(self) -> int:
        return int(self.auth_ttl_minutes * 60 * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClientConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"不明な設定項目を無視します: {unknown}")
        return cls(**{k: v for k, v in data.items() if k in known})


def load_client_config(config_path: Optional[Union[str, Path]] = None) -> ClientConfig:
    """設定ファイルと環境変数からクライアント設定を構築"""
    config_manager = ConfigManager(config_path or DEFAULT_CONFIG_PATH)
    data = config_manager.load_config(ClientConfig().to_dict())

    if os.environ.get(ENV_API_BASE):
        data['api_base_url'] = os.environ[ENV_API_BASE]
    if os.environ.get(ENV_STORAGE_DIR):
        data['storage_dir'] = os.environ[ENV_STORAGE_DIR]

    return ClientConfig.from_dict(data)
