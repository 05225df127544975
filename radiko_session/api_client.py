"""
radiko APIクライアントモジュール

このモジュールはradiko APIプロキシへの非同期HTTP呼び出しを提供します。
- IP／エリア指定による認証
- 放送局一覧・放送中番組・番組表の取得
- 構造化エラーレスポンスの解析
- 中断シグナル（asyncio.Event）による呼び出しのキャンセル
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Tuple, TypeVar
from urllib.parse import quote

import aiohttp

from .errors import DEFAULT_ERROR_MESSAGE, RadikoAPIError, RequestAbortedError
from .logging_config import LoggerMixin
from .models import Program, Station
from .utils.network_utils import create_api_session


T = TypeVar('T')

AUTH_TOKEN_HEADER = "X-Radiko-AuthToken"
AREA_ID_HEADER = "X-Radiko-AreaId"

PROGRAM_LIST_TYPES = ("today", "weekly", "date")


@dataclass
class ApiResponse:
    """HTTPレスポンス"""
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        """ヘッダー値を取得（大文字小文字を区別しない）"""
        value = self.headers.get(name)
        if value:
            return value
        name_lower = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name_lower and value:
                return value
        return None

    def json(self) -> Any:
        return json.loads(self.text)


class HttpTransport(ABC):
    """HTTP送信のインターフェース"""

    @abstractmethod
    async def request(self, method: str, url: str,
                      json_body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """リクエストを送信してレスポンスを返す

        Raises:
            RadikoAPIError: 接続失敗などレスポンスが得られなかった場合
        """

    async def close(self) -> None:
        """リソースを解放"""


class AiohttpTransport(HttpTransport, LoggerMixin):
    """aiohttpによるHTTP送信"""

    def __init__(self, timeout: int = 30, session: Optional[aiohttp.ClientSession] = None):
        LoggerMixin.__init__(self)
        self.timeout = timeout
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_api_session(timeout=self.timeout)
        return self._session

    async def request(self, method: str, url: str,
                      json_body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        session = self._get_session()
        try:
            async with session.request(method, url, json=json_body) as response:
                text = await response.text()
                return ApiResponse(
                    status=response.status,
                    headers={k: v for k, v in response.headers.items()},
                    text=text,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"通信エラー: {method} {url} - {e!r}")
            raise RadikoAPIError(f"通信エラーが発生しました: {e}", details=repr(e)) from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> 'AiohttpTransport':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def run_abortable(awaitable: Awaitable[T], signal: Optional[asyncio.Event] = None) -> T:
    """中断シグナル付きで処理を実行

    シグナルがセットされると実行中の処理をキャンセルし RequestAbortedError を送出する。
    """
    if signal is None:
        return await awaitable

    request_task = asyncio.ensure_future(awaitable)
    if signal.is_set():
        request_task.cancel()
        await asyncio.gather(request_task, return_exceptions=True)
        raise RequestAbortedError()

    abort_task = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({request_task, abort_task},
                                     return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        request_task.cancel()
        abort_task.cancel()
        raise

    if abort_task in done:
        request_task.cancel()
        await asyncio.gather(request_task, return_exceptions=True)
        raise RequestAbortedError()

    abort_task.cancel()
    await asyncio.gather(abort_task, return_exceptions=True)
    return request_task.result()


def parse_error_response(response: ApiResponse) -> RadikoAPIError:
    """エラーレスポンスを RadikoAPIError に変換

    構造化エラー {error, message, status, details?, retry_recommended?} を解析する。
    解析できない場合はHTTPステータス付きの汎用エラー（リトライ可）とする。
    """
    try:
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("エラーレスポンスが辞書ではありません")
    except ValueError:
        return RadikoAPIError(DEFAULT_ERROR_MESSAGE, response.status, retry_recommended=True)

    message = body.get('message') or body.get('error') or DEFAULT_ERROR_MESSAGE
    status = body.get('status') or response.status
    retry_recommended = body.get('retry_recommended')
    if retry_recommended is None:
        retry_recommended = True
    return RadikoAPIError(
        str(message),
        status,
        details=body.get('details'),
        retry_recommended=bool(retry_recommended),
    )


class RadikoApiClient(LoggerMixin):
    """radiko APIプロキシクライアント"""

    def __init__(self, base_url: str, transport: Optional[HttpTransport] = None):
        super().__init__()
        self.base_url = base_url.rstrip('/')
        self.transport = transport if transport is not None else AiohttpTransport()

    def _url(self, *parts: str) -> str:
        return '/'.join([self.base_url] + [quote(str(p), safe='') for p in parts])

    async def _send(self, method: str, url: str,
                    json_body: Optional[Dict[str, Any]] = None,
                    signal: Optional[asyncio.Event] = None) -> ApiResponse:
        self.logger.debug(f"API呼び出し: {method} {url}")
        return await run_abortable(self.transport.request(method, url, json_body), signal)

    def _parse_json(self, response: ApiResponse, error_message: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RadikoAPIError(error_message, response.status, details=str(e)) from e

    def _handle_auth_response(self, response: ApiResponse) -> Dict[str, Any]:
        if not response.ok:
            raise parse_error_response(response)
        data = self._parse_json(response, "認証レスポンスの解析に失敗しました")
        if not isinstance(data, dict):
            raise RadikoAPIError("認証レスポンスの形式が不正です", response.status)
        return data

    # 認証 --------------------------------------------------------------

    async def auth_by_ip(self, ip: str,
                         signal: Optional[asyncio.Event] = None) -> Tuple[str, str]:
        """IPアドレスによる認証

        Returns:
            (token, area_id)
        """
        response = await self._send('POST', self._url('auth', 'ip', ip), signal=signal)
        data = self._handle_auth_response(response)
        token = data.get('token')
        area_id = data.get('areaId')
        if not token or not area_id:
            raise RadikoAPIError("認証トークンが取得できませんでした", response.status)
        return str(token), str(area_id)

    async def auth_by_area(self, area_id: str,
                           signal: Optional[asyncio.Event] = None) -> Tuple[str, str]:
        """エリアIDによる認証

        レスポンスヘッダーのトークン・エリアIDをボディより優先する。

        Returns:
            (token, area_id)
        """
        response = await self._send('POST', self._url('auth', 'custom'),
                                    json_body={'areaId': area_id}, signal=signal)
        data = self._handle_auth_response(response)
        token = response.header(AUTH_TOKEN_HEADER) or data.get('token')
        response_area_id = response.header(AREA_ID_HEADER) or data.get('areaId')
        if not token or not response_area_id:
            raise RadikoAPIError("認証トークンが取得できませんでした", response.status)
        return str(token), str(response_area_id)

    # 放送局・番組 ------------------------------------------------------

    def _data_list(self, response: ApiResponse, error_message: str) -> List[Any]:
        if not response.ok:
            raise RadikoAPIError(error_message, response.status)
        body = self._parse_json(response, error_message)
        data = body.get('data') if isinstance(body, dict) else None
        return data if isinstance(data, list) else []

    def _parse_programs(self, items: List[Any]) -> List[Program]:
        programs = []
        for item in items:
            try:
                programs.append(Program.from_dict(item))
            except ValueError as e:
                self.logger.warning(f"番組データをスキップ: {e}")
        return programs

    async def get_stations(self, area_id: str,
                           signal: Optional[asyncio.Event] = None) -> List[Station]:
        """エリアの放送局一覧を取得"""
        error_message = "放送局情報の取得に失敗しました"
        response = await self._send('GET', self._url('stations', area_id), signal=signal)
        stations = []
        for item in self._data_list(response, error_message):
            try:
                stations.append(Station.from_dict(item))
            except ValueError as e:
                self.logger.warning(f"放送局データをスキップ: {e}")
        self.logger.info(f"放送局一覧取得: {area_id} ({len(stations)}局)")
        return stations

    async def get_program_now(self, token: str, area_id: str, station_id: str,
                              signal: Optional[asyncio.Event] = None) -> Program:
        """放送中の番組を取得"""
        error_message = "番組情報の取得に失敗しました"
        response = await self._send('GET', self._url('programs', 'now', area_id, token),
                                    signal=signal)
        programs = self._parse_programs(self._data_list(response, error_message))
        for program in programs:
            if program.station_id == station_id:
                return program
        raise RadikoAPIError("番組情報が見つかりませんでした", 404)

    async def get_programs(self, token: str, station_id: str, list_type: str = "date",
                           date: Optional[str] = None,
                           signal: Optional[asyncio.Event] = None) -> List[Program]:
        """番組表を取得

        Args:
            token: 認証トークン
            station_id: 放送局ID
            list_type: today / weekly / date
            date: 対象日（YYYYMMDD、list_type=date の場合）
        """
        if list_type not in PROGRAM_LIST_TYPES:
            raise ValueError(f"不明な番組表種別: {list_type}")
        parts = ['programs', list_type, station_id, token]
        if list_type == "date" and date:
            parts.append(date)
        response = await self._send('GET', self._url(*parts), signal=signal)
        programs = self._parse_programs(self._data_list(response, "番組表の取得に失敗しました"))
        self.logger.debug(f"番組表取得: {station_id} {list_type} ({len(programs)}番組)")
        return programs

    async def close(self) -> None:
        await self.transport.close()
