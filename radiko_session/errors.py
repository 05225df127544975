"""
エラー定義モジュール

このモジュールはradiko-sessionの統一例外クラスを提供します。
- エラー重要度・カテゴリ
- API エラー（リトライ可否付き）
- 中断エラー（呼び出し側によるキャンセル）
- ストレージ・状態・設定エラー
- 表示用エラーメッセージ変換
"""

from enum import Enum
from typing import Any, Dict, Optional


DEFAULT_ERROR_MESSAGE = "予期せぬエラーが発生しました"


class ErrorSeverity(Enum):
    """エラー重要度"""
    LOW = "low"           # 軽微な警告
    MEDIUM = "medium"     # 注意が必要なエラー
    HIGH = "high"         # 重要なエラー
    CRITICAL = "critical" # 致命的なエラー


class ErrorCategory(Enum):
    """エラーカテゴリ"""
    AUTHENTICATION = "authentication"     # 認証関連
    NETWORK = "network"                   # ネットワーク関連
    STORAGE = "storage"                   # 永続化関連
    STATE = "state"                       # 状態管理関連
    CONFIGURATION = "configuration"       # 設定関連
    CANCELLED = "cancelled"               # 呼び出し側による中断
    UNKNOWN = "unknown"                   # 不明


class RadikoSessionError(Exception):
    """radiko-session基底例外クラス"""
    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 severity: ErrorSeverity = ErrorSeverity.MEDIUM, context: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or {}


class RadikoAPIError(RadikoSessionError):
    """APIエラー

    サーバーが明示的に retry_recommended=False を返した場合のみリトライ不可。
    """
    def __init__(self, message: str, status: Optional[int] = None, details: Any = None,
                 retry_recommended: bool = True):
        super().__init__(message, ErrorCategory.NETWORK, ErrorSeverity.HIGH,
                         {'status': status})
        self.status = status
        self.details = details
        self.retry_recommended = retry_recommended

    def __repr__(self) -> str:
        return (f"RadikoAPIError(message={self.message!r}, status={self.status!r}, "
                f"retry_recommended={self.retry_recommended!r})")


class RequestAbortedError(RadikoSessionError):
    """呼び出し側による中断（リトライ対象外・ユーザー向けエラーにしない）"""
    def __init__(self, message: str = "Request aborted"):
        super().__init__(message, ErrorCategory.CANCELLED, ErrorSeverity.LOW)


class StorageError(RadikoSessionError):
    """ストレージエラー（永続化層の内部でのみ使用）"""
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, ErrorCategory.STORAGE, ErrorSeverity.LOW, {'key': key})
        self.key = key


class StateInvariantError(RadikoSessionError):
    """状態の整合性違反"""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.STATE, ErrorSeverity.HIGH)


class DataImportError(RadikoSessionError):
    """バックアップデータの読み込みエラー"""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.STATE, ErrorSeverity.MEDIUM)


class ConfigurationError(RadikoSessionError):
    """設定エラー"""
    def __init__(self, message: str, context: Dict[str, Any] = None):
        super().__init__(message, ErrorCategory.CONFIGURATION, ErrorSeverity.HIGH, context)


def get_error_message(error: Any) -> str:
    """表示用のエラーメッセージを取得

    Args:
        error: 例外オブジェクトまたは文字列

    Returns:
        str: ユーザー向けメッセージ
    """
    if isinstance(error, RadikoSessionError):
        return error.message or DEFAULT_ERROR_MESSAGE
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException) and str(error):
        return str(error)
    return DEFAULT_ERROR_MESSAGE
