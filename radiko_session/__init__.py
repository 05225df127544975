"""
radiko-session - radikoのセッション管理・再生継続ライブラリ

このパッケージはradikoプレイヤーのクライアント側コア機能を提供します。

主要コンポーネント:
- auth: 認証トークンの取得・キャッシュ
- state: 状態スナップショットと購読
- storage: 認証情報・視聴履歴・再生速度・お気に入りの永続化
- history: 視聴履歴とお気に入り番組の自動収集
- restoration: 起動時の再生復元
- client: UIから利用する窓口クラス
- cli: コマンドライン操作
"""

__version__ = "1.0.0"
__license__ = "MIT"

# 主要クラスのインポート
from .api_client import AiohttpTransport, ApiResponse, HttpTransport, RadikoApiClient
from .auth import AuthManager
from .autosave import ProgressAutoSaver
from .client import RadikoClient, create_client, organize_programs_by_date
from .config import ClientConfig, ConfigManager, load_client_config
from .errors import (
    ConfigurationError, DataImportError, RadikoAPIError, RadikoSessionError,
    RequestAbortedError, StateInvariantError, StorageError, get_error_message,
)
from .favorites import FavoritesManager
from .history import HistoryEngine
from .models import (
    AuthToken, FavoriteEntry, PlaybackKind, PlaybackStatus, PlayingType, Program,
    RestoreResult, Station,
)
from .region_mapper import RegionMapper
from .restoration import RestorationEngine
from .retry import RetryPolicy, with_retry
from .state import RadikoState, StateStore, hydrate_state
from .storage import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore, PlaybackStorage

__all__ = [
    # 窓口
    'RadikoClient',
    'create_client',
    'organize_programs_by_date',
    'ProgressAutoSaver',

    # 認証・通信
    'AuthManager',
    'RadikoApiClient',
    'HttpTransport',
    'AiohttpTransport',
    'ApiResponse',
    'RetryPolicy',
    'with_retry',

    # 状態・永続化
    'RadikoState',
    'StateStore',
    'hydrate_state',
    'KeyValueStore',
    'MemoryKeyValueStore',
    'FileKeyValueStore',
    'PlaybackStorage',

    # 履歴・お気に入り・復元
    'HistoryEngine',
    'FavoritesManager',
    'RestorationEngine',

    # データモデル
    'AuthToken',
    'Station',
    'Program',
    'PlaybackStatus',
    'PlaybackKind',
    'PlayingType',
    'FavoriteEntry',
    'RestoreResult',
    'RegionMapper',

    # 設定
    'ClientConfig',
    'ConfigManager',
    'load_client_config',

    # エラー
    'RadikoSessionError',
    'RadikoAPIError',
    'RequestAbortedError',
    'StorageError',
    'StateInvariantError',
    'DataImportError',
    'ConfigurationError',
    'get_error_message',
]
