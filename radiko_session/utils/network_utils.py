"""
ネットワーク処理ユーティリティ

HTTP セッション作成などのネットワーク関連処理の統一機能
"""

from typing import Dict, Optional

import aiohttp
import requests


STANDARD_HEADERS = {
    'User-Agent': 'radiko-session/1.0',
    'Accept': 'application/json',
    'Accept-Language': 'ja,en;q=0.9',
}


def create_api_session(
    timeout: int = 30,
    additional_headers: Optional[Dict[str, str]] = None
) -> aiohttp.ClientSession:
    """radiko APIプロキシ用の非同期セッションを作成
    
    イベントループ内で呼び出すこと。
    
    Args:
        timeout: リクエストタイムアウト秒数（デフォルト: 30秒）
        additional_headers: 追加ヘッダー辞書
        
    Returns:
        aiohttp.ClientSession: 設定済みセッション
    """
    headers = dict(STANDARD_HEADERS)
    if additional_headers:
        headers.update(additional_headers)

    return aiohttp.ClientSession(
        headers=headers,
        timeout=aiohttp.ClientTimeout(total=timeout),
    )


def create_sync_session(timeout: int = 10) -> requests.Session:
    """同期処理（CLIの補助処理）用のセッションを作成
    
    Args:
        timeout: リクエストタイムアウト秒数
        
    Returns:
        requests.Session: 設定済みセッション
    """
    session = requests.Session()
    session.timeout = timeout
    session.headers.update(STANDARD_HEADERS)
    return session
