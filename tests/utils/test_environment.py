"""
テスト用共通ユーティリティ

ネットワークの代わりに使う偽のHTTP送信、固定時計、
一時ディレクトリを使う実ファイル環境を提供します。
"""

import asyncio
import json
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from radiko_session.api_client import ApiResponse, HttpTransport, RadikoApiClient
from radiko_session.client import RadikoClient
from radiko_session.models import PlaybackStatus, Program, Station
from radiko_session.retry import RetryPolicy
from radiko_session.storage import MemoryKeyValueStore, PlaybackStorage
from radiko_session.utils.datetime_utils import JST, format_radiko_time


BASE_URL = "http://radiko.test/api"

# テスト全体で使う「現在時刻」（2024-01-10 12:00 JST）
FIXED_NOW = JST.localize(datetime(2024, 1, 10, 12, 0, 0))
FIXED_NOW_MS = int(FIXED_NOW.timestamp() * 1000)


def json_response(data: Any, status: int = 200,
                  headers: Optional[Dict[str, str]] = None) -> ApiResponse:
    return ApiResponse(status=status, headers=headers or {}, text=json.dumps(data, ensure_ascii=False))


def error_response(status: int, message: str = "エラー",
                   retry_recommended: Optional[bool] = None) -> ApiResponse:
    body: Dict[str, Any] = {'error': 'error', 'message': message, 'status': status}
    if retry_recommended is not None:
        body['retry_recommended'] = retry_recommended
    return json_response(body, status)


RouteValue = Union[ApiResponse, BaseException, Callable[..., Any], List[Any]]


class FakeTransport(HttpTransport):
    """登録した応答を返す偽のHTTP送信

    ルートの値:
        ApiResponse: そのまま返す
        例外: 送出する
        コルーチン関数: await した結果を返す
        リスト: 先頭から順に使用し、最後の要素は繰り返し使用する
    """

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.routes: Dict[Tuple[str, str], RouteValue] = {}
        self.requests: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.closed = False

    def add(self, method: str, path: str, value: RouteValue) -> None:
        self.routes[(method, path)] = value

    def count(self, method: str, path: str) -> int:
        url = self.base_url + path
        return sum(1 for m, u, _ in self.requests if m == method and u == url)

    async def request(self, method: str, url: str,
                      json_body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        self.requests.append((method, url, json_body))
        path = url[len(self.base_url):]
        value = self.routes.get((method, path))
        if value is None:
            return json_response({'error': 'not found', 'message': f"未登録: {path}"}, 404)
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return await value()
        return value

    async def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """待機秒数を記録するだけの sleep 関数"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FixedClock:
    """固定時計（日本時間）"""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def ms(self) -> int:
        return int(self.now.timestamp() * 1000)

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_program(station_id: str = "TBS", start_time: str = "20240109100000",
                 end_time: Optional[str] = None, title: str = "テスト番組",
                 seconds: Optional[float] = None, completed: bool = False) -> Program:
    """テスト用番組を作成"""
    if end_time is None:
        end_time = start_time[:8] + "235959"
    if completed:
        status = PlaybackStatus.completed()
    elif seconds:
        status = PlaybackStatus.in_progress(seconds)
    else:
        status = PlaybackStatus.unwatched()
    return Program(station_id=station_id, start_time=start_time, end_time=end_time,
                   title=title, status=status)


def days_ago(days: int, hour: int = 10, now: datetime = FIXED_NOW) -> str:
    """指定日数前の開始時刻文字列"""
    target = (now - timedelta(days=days)).replace(hour=hour, minute=0, second=0)
    return format_radiko_time(target)


def make_stations(*station_ids: str) -> List[Station]:
    return [Station(id=station_id, name=f"{station_id}放送") for station_id in station_ids]


def build_client(transport: Optional[FakeTransport] = None,
                 storage: Optional[PlaybackStorage] = None,
                 clock: Optional[FixedClock] = None,
                 sleep: Optional[SleepRecorder] = None,
                 retry_policy: Optional[RetryPolicy] = None) -> RadikoClient:
    """偽の送信・メモリ保存・固定時計を使うクライアントを構築"""
    transport = transport or FakeTransport()
    storage = storage or PlaybackStorage(MemoryKeyValueStore())
    clock = clock or FixedClock()
    return RadikoClient(
        RadikoApiClient(BASE_URL, transport),
        storage,
        retry_policy=retry_policy or RetryPolicy(),
        clock=clock,
        ms_clock=clock.ms,
        sleep=sleep or SleepRecorder(),
    )


class TemporaryTestEnvironment:
    """実ファイルを使うテスト用の一時環境"""

    def __init__(self):
        self.temp_dir: Optional[str] = None
        self.config_dir: Optional[Path] = None
        self.storage_dir: Optional[Path] = None
        self.config_file: Optional[Path] = None

    def __enter__(self) -> 'TemporaryTestEnvironment':
        self.temp_dir = tempfile.mkdtemp()
        self.config_dir = Path(self.temp_dir) / ".radiko_session"
        self.storage_dir = self.config_dir / "data"
        self.config_dir.mkdir(parents=True)
        self.config_file = self.config_dir / "config.json"
        self.write_config({
            'api_base_url': BASE_URL,
            'storage_dir': str(self.storage_dir),
        })
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.temp_dir:
            shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_config(self, data: Dict[str, Any]) -> None:
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)


async def slow_response(response: ApiResponse, delay: float = 10.0) -> ApiResponse:
    await asyncio.sleep(delay)
    return response
