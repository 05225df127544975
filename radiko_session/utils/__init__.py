"""
radiko-session ユーティリティモジュール

日時変換・パス処理・HTTPセッション作成のヘルパー関数
"""

from typing import List
from .datetime_utils import (
    JST, jst_now, parse_radiko_time, format_radiko_time, broadcast_date_key,
    format_display_time, format_display_date,
)
from .path_utils import atomic_write_text, ensure_directory_exists
from .network_utils import create_api_session, create_sync_session

__all__: List[str] = [
    'JST',
    'jst_now',
    'parse_radiko_time',
    'format_radiko_time',
    'broadcast_date_key',
    'format_display_time',
    'format_display_date',
    'atomic_write_text',
    'ensure_directory_exists',
    'create_api_session',
    'create_sync_session',
]
