"""
認証管理モジュール

このモジュールはradikoのエリア／セッショントークンの取得と管理を行います。
- キャッシュ済みトークンの再利用（70分間有効）
- IPアドレス認証・エリア指定認証
- 指数バックオフ付きリトライ
- 認証結果の永続化と状態ストアへの反映
"""

import asyncio
from typing import Awaitable, Callable, Optional, Tuple

from .api_client import RadikoApiClient
from .logging_config import LoggerMixin
from .models import AUTH_TTL_MS, AuthToken, now_ms
from .region_mapper import UNKNOWN_AREA_NAME, RegionMapper
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy, with_retry
from .state import StateStore
from .storage import PlaybackStorage


class AuthManager(LoggerMixin):
    """radiko認証を管理するクラス

    認証処理は asyncio.Lock で直列化する。同時に呼ばれた2件目以降は
    1件目の完了を待ち、保存されたトークンをキャッシュとして受け取る。
    """

    def __init__(self, api: RadikoApiClient, storage: PlaybackStorage,
                 store: Optional[StateStore] = None,
                 retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
                 ttl_ms: int = AUTH_TTL_MS,
                 clock: Callable[[], int] = now_ms,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        super().__init__()
        self.api = api
        self.storage = storage
        self.store = store
        self.retry_policy = retry_policy
        self.ttl_ms = ttl_ms
        self.clock = clock
        self.sleep = sleep
        self._lock = asyncio.Lock()

    def get_stored_auth(self) -> Optional[AuthToken]:
        """有効なキャッシュ済みトークンを取得（期限切れ・破損時はNone）"""
        auth = self.storage.load_auth()
        if auth is None:
            return None
        if auth.is_expired(self.clock(), self.ttl_ms):
            self.logger.info(f"認証トークンの有効期限切れ: {auth.area_id}")
            return None
        return auth

    def get_auth_name(self) -> str:
        """キャッシュ済みトークンのエリア表示名"""
        auth = self.get_stored_auth()
        return RegionMapper.get_area_name(auth.area_id) if auth else UNKNOWN_AREA_NAME

    async def authenticate(self, ip: str, signal: Optional[asyncio.Event] = None) -> AuthToken:
        """IPアドレスによる認証

        Args:
            ip: クライアントのIPアドレス
            signal: 中断シグナル

        Returns:
            AuthToken: 認証トークン
        """
        async with self._lock:
            cached = self.get_stored_auth()
            if cached is not None:
                self.logger.debug(f"キャッシュ済み認証トークンを使用: {cached.area_id}")
                return self._apply(cached)

            self.logger.info(f"IP認証開始: {ip}")
            result = await with_retry(
                lambda: self.api.auth_by_ip(ip, signal),
                self.retry_policy,
                sleep=self.sleep,
                description="IP認証",
            )
            return self._store(result)

    async def authenticate_by_area(self, area_id: str,
                                   signal: Optional[asyncio.Event] = None) -> AuthToken:
        """エリアIDによる認証

        キャッシュ済みトークンは要求エリアと一致する場合のみ再利用する。
        """
        async with self._lock:
            cached = self.get_stored_auth()
            if cached is not None and cached.area_id == area_id:
                self.logger.debug(f"キャッシュ済み認証トークンを使用: {area_id}")
                return self._apply(cached)

            self.logger.info(f"エリア認証開始: {area_id}")
            result = await with_retry(
                lambda: self.api.auth_by_area(area_id, signal),
                self.retry_policy,
                sleep=self.sleep,
                description="エリア認証",
            )
            return self._store(result)

    def _store(self, result: Tuple[str, str]) -> AuthToken:
        token, area_id = result
        auth = AuthToken(token=token, area_id=area_id, timestamp=self.clock())
        self.storage.save_auth(auth)
        self.logger.info(f"認証成功: {area_id} ({RegionMapper.get_area_name(area_id)})")
        return self._apply(auth)

    def _apply(self, auth: AuthToken) -> AuthToken:
        if self.store is not None:
            self.store.set_state(auth=auth,
                                 current_area_name=RegionMapper.get_area_name(auth.area_id))
        return auth
