"""
radikoクライアントモジュール

このモジュールはUIから呼び出される単一の窓口（RadikoClient）を提供します。
- 認証・放送局一覧・番組表取得の読み込み中／エラー状態の管理
- 再生中番組と再生種別の管理
- 視聴履歴・お気に入り・再生復元の操作
- 状態のバックアップ（エクスポート／インポート）
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from .api_client import AiohttpTransport, RadikoApiClient
from .auth import AuthManager
from .config import ClientConfig
from .errors import DataImportError, RadikoAPIError, RequestAbortedError
from .errors import get_error_message as _get_error_message
from .favorites import FavoritesManager
from .history import HistoryEngine
from .logging_config import LoggerMixin
from .models import (
    AUTH_TTL_MS, AuthToken, FavoriteEntry, PlayingType, Program, RestoreResult, Station,
    is_valid_speed, now_ms,
)
from .region_mapper import UNKNOWN_AREA_NAME
from .restoration import RestorationEngine
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy
from .state import RadikoState, StateStore, hydrate_state
from .storage import DEFAULT_SPEED, FileKeyValueStore, PlaybackStorage
from .utils.datetime_utils import broadcast_date_key, jst_now


T = TypeVar('T')

# 再生位置の自動保存間隔（秒）
DEFAULT_AUTOSAVE_INTERVAL = 5.0


def organize_programs_by_date(programs: Iterable[Program]) -> Dict[str, List[Program]]:
    """番組を放送日（YYYYMMDD）ごとに分類

    0:00〜4:59開始の番組は前日の放送日に含める。各日の番組は開始時刻順。
    """
    buckets: Dict[str, List[Program]] = {}
    for program in programs:
        key = broadcast_date_key(program.start_time)
        if key is None:
            continue
        buckets.setdefault(key, []).append(program)
    return {
        key: sorted(buckets[key], key=lambda p: p.start_time_value)
        for key in sorted(buckets)
    }


class RadikoClient(LoggerMixin):
    """radikoセッション・再生継続の窓口クラス

    通信を伴う操作は開始時に is_loading=True / error=None とし、
    RadikoAPIError の場合はメッセージを error に保存して再送出する。
    中断（RequestAbortedError）の場合は読み込み中フラグのみ解除する。
    """

    def __init__(self, api: RadikoApiClient, storage: PlaybackStorage,
                 store: Optional[StateStore] = None,
                 retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
                 auth_ttl_ms: int = AUTH_TTL_MS,
                 history_limit: int = 50,
                 retention_days: int = 7,
                 clock: Callable[[], datetime] = jst_now,
                 ms_clock: Callable[[], int] = now_ms,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 autosave_interval: float = DEFAULT_AUTOSAVE_INTERVAL):
        super().__init__()
        self.api = api
        self.storage = storage
        self.autosave_interval = autosave_interval
        if store is None:
            store = StateStore(hydrate_state(storage, ms_clock, auth_ttl_ms))
        self.store = store

        self.auth_manager = AuthManager(api, storage, self.store, retry_policy,
                                        ttl_ms=auth_ttl_ms, clock=ms_clock, sleep=sleep)
        self.history = HistoryEngine(self.store, storage, api,
                                     history_limit=history_limit,
                                     retention_days=retention_days,
                                     clock=clock)
        self.favorites = FavoritesManager(self.store, storage)
        self.restoration = RestorationEngine(self.history, storage, retention_days)

    # 状態 --------------------------------------------------------------

    def get_state(self) -> RadikoState:
        return self.store.get_state()

    def set_state(self, **changes) -> RadikoState:
        return self.store.set_state(**changes)

    def subscribe(self, listener: Callable[[RadikoState], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    @staticmethod
    def get_error_message(error: Any) -> str:
        return _get_error_message(error)

    @staticmethod
    def organize_programs_by_date(programs: Iterable[Program]) -> Dict[str, List[Program]]:
        return organize_programs_by_date(programs)

    async def _run_network(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        self.store.set_state(is_loading=True, error=None)
        try:
            result = await operation()
        except RequestAbortedError:
            self.logger.info(f"{description}を中断しました")
            self.store.set_state(is_loading=False)
            raise
        except RadikoAPIError as e:
            self.logger.error(f"{description}エラー: {e.message}")
            self.store.set_state(is_loading=False, error=_get_error_message(e))
            raise
        except BaseException:
            # タスクのキャンセルや引数エラーでは読み込み中フラグのみ解除
            self.store.set_state(is_loading=False)
            raise
        self.store.set_state(is_loading=False)
        return result

    def _require_auth(self) -> AuthToken:
        auth = self.store.get_state().auth
        if auth is None:
            raise RadikoAPIError("認証されていません", 401, retry_recommended=False)
        return auth

    def _station_switch_changes(self, station_id: str) -> Dict[str, Any]:
        """放送局を切り替える場合に合わせて変更する項目

        前の放送局の放送中番組は消し、ライブ再生中なら停止する。
        """
        state = self.store.get_state()
        if station_id == state.selected_station:
            return {}
        changes: Dict[str, Any] = {'now_on_air': None}
        if state.playing_type is PlayingType.LIVE:
            self.logger.info(f"放送局切り替えのためライブ再生を停止: {state.selected_station} -> {station_id}")
            changes.update(current_program=None, playing_type=None)
        return changes

    async def _now_on_air_or_none(self, auth: AuthToken, station_id: str,
                                  signal: Optional[asyncio.Event]) -> Optional[Program]:
        try:
            return await self.api.get_program_now(auth.token, auth.area_id, station_id, signal)
        except RadikoAPIError as e:
            self.logger.debug(f"放送中番組を取得できません: {station_id} - {e.message}")
            return None

    # 認証 --------------------------------------------------------------

    async def authenticate(self, ip: str, signal: Optional[asyncio.Event] = None) -> AuthToken:
        """IPアドレスで認証"""
        return await self._run_network(
            lambda: self.auth_manager.authenticate(ip, signal), "IP認証")

    async def custom_authenticate(self, area_id: str,
                                  signal: Optional[asyncio.Event] = None) -> AuthToken:
        """エリアIDを指定して認証"""
        return await self._run_network(
            lambda: self.auth_manager.authenticate_by_area(area_id, signal), "エリア認証")

    def get_auth_info(self) -> Optional[AuthToken]:
        return self.auth_manager.get_stored_auth()

    def get_auth_name(self) -> str:
        return self.auth_manager.get_auth_name()

    # 放送局・番組 ------------------------------------------------------

    async def get_stations(self, area_id: Optional[str] = None,
                           signal: Optional[asyncio.Event] = None) -> List[Station]:
        """放送局一覧を取得（省略時は認証済みエリア）"""
        async def operation() -> List[Station]:
            target_area = area_id or self._require_auth().area_id
            stations = await self.api.get_stations(target_area, signal)
            self.store.set_state(stations=stations)
            return stations

        return await self._run_network(operation, "放送局一覧取得")

    async def fetch_programs(self, station_id: Optional[str] = None, list_type: str = "weekly",
                             date: Optional[str] = None,
                             signal: Optional[asyncio.Event] = None) -> List[Program]:
        """番組表と放送中の番組を取得

        番組表は放送日ごとに分類する。放送中の番組が取得できない場合は None。
        """
        async def operation() -> List[Program]:
            auth = self._require_auth()
            target = station_id or self.store.get_state().selected_station
            if not target:
                raise RadikoAPIError("放送局が選択されていません", retry_recommended=False)
            programs = await self.api.get_programs(auth.token, target, list_type, date, signal)
            now_on_air = await self._now_on_air_or_none(auth, target, signal)
            changes: Dict[str, Any] = self._station_switch_changes(target)
            changes.update(
                selected_station=target,
                now_on_air=now_on_air,
                programs=programs,
                programs_by_date=organize_programs_by_date(programs),
            )
            self.store.set_state(**changes)
            return programs

        return await self._run_network(operation, "番組表取得")

    async def fetch_now_on_air(self, station_id: Optional[str] = None,
                               signal: Optional[asyncio.Event] = None) -> Program:
        """放送中の番組を取得"""
        async def operation() -> Program:
            auth = self._require_auth()
            target = station_id or self.store.get_state().selected_station
            if not target:
                raise RadikoAPIError("放送局が選択されていません", retry_recommended=False)
            program = await self.api.get_program_now(auth.token, auth.area_id, target, signal)
            self.store.set_state(now_on_air=program)
            return program

        return await self._run_network(operation, "放送中番組取得")

    async def select_station(self, station_id: str,
                             signal: Optional[asyncio.Event] = None) -> None:
        """放送局を選択

        認証済みの場合は番組表も取得する。取得エラーは state.error に残る。
        """
        changes: Dict[str, Any] = self._station_switch_changes(station_id)
        changes['selected_station'] = station_id
        self.store.set_state(**changes)

        if self.store.get_state().auth is None:
            return
        try:
            await self.fetch_programs(station_id, signal=signal)
        except RadikoAPIError as e:
            self.logger.debug(f"放送局選択時の番組表取得に失敗（state.errorに保存済み）: {e.message}")

    # 再生 --------------------------------------------------------------

    def play_program(self, program: Program,
                     playing_type: PlayingType = PlayingType.TIMEFREE) -> Program:
        """番組を再生中に設定

        タイムフリー再生の場合は履歴の先頭に移動する（保存済みの再生位置は維持）。

        Returns:
            再生開始位置を含む番組
        """
        playing_type = PlayingType(playing_type)
        if playing_type is PlayingType.TIMEFREE:
            existing = self.history.find(program.station_id, program.start_time)
            if existing is not None:
                program = program.with_status(existing.status)
            self.history.add_to_history(program)
        self.store.set_state(current_program=program, playing_type=playing_type)
        self.logger.info(f"再生開始 ({playing_type.value}): {program.station_id} {program.title}")
        return program

    def stop_playback(self) -> None:
        self.store.set_state(current_program=None, playing_type=None)

    def is_program_playing(self, program: Program, playing_type: PlayingType) -> bool:
        """指定の番組を指定の再生種別で再生中か"""
        state = self.store.get_state()
        return (state.current_program is not None
                and state.current_program.key == program.key
                and state.playing_type is PlayingType(playing_type))

    def set_speed(self, speed: float) -> None:
        """再生速度を設定"""
        if not is_valid_speed(speed):
            raise ValueError(f"再生速度は正の有限値である必要があります: {speed}")
        self.storage.save_speed(speed)
        self.store.set_state(speed=float(speed))

    def finish_playback(self) -> Optional[RestoreResult]:
        """再生終了時の処理

        再生中の番組を視聴済みにして停止し、次の再開候補を返す。
        """
        current = self.store.get_state().current_program
        if current is None:
            return None
        self.mark_as_program_played(current.station_id, current.start_time)
        self.stop_playback()
        return self.restoration.restore(self.store.get_state().stations)

    # 履歴・お気に入り --------------------------------------------------

    def toggle_favorite(self, program: Program) -> bool:
        return self.favorites.toggle_favorite(program)

    def is_favorite(self, program: Program) -> bool:
        return self.favorites.is_favorite(program)

    def add_to_history(self, program: Program) -> None:
        self.history.add_to_history(program)

    def save_playback_program(self, program: Program, seconds: float) -> None:
        self.history.save_playback_progress(program, seconds)

    def remove_from_history(self, station_id: str, start_time: str) -> None:
        self.history.remove_from_history(station_id, start_time)

    def mark_as_program_played(self, station_id: str, start_time: str) -> None:
        self.history.mark_as_played(station_id, start_time)

    async def save_favorite_programs(self, stations: Optional[Iterable[Station]] = None,
                                     signal: Optional[asyncio.Event] = None) -> List[Program]:
        if stations is None:
            stations = self.store.get_state().stations
        return await self.history.save_favorite_programs(stations, signal)

    def restore_playback_program(self, stations: Optional[Iterable[Station]] = None,
                                 apply: bool = True) -> Optional[RestoreResult]:
        """再開する番組を決定

        Args:
            stations: 聴取可能な放送局（省略時は現在の放送局一覧）
            apply: Trueの場合は再生中番組・再生速度に反映する
        """
        if stations is None:
            stations = self.store.get_state().stations
        result = self.restoration.restore(stations)
        if result is not None and apply:
            self.store.set_state(current_program=result.program,
                                 playing_type=PlayingType.TIMEFREE,
                                 speed=result.speed)
        return result

    async def load_area(self, area_id: Optional[str] = None,
                        signal: Optional[asyncio.Event] = None) -> Optional[RestoreResult]:
        """放送局一覧の取得・お気に入り番組の収集・再生復元をまとめて実行"""
        stations = await self.get_stations(area_id, signal)
        await self.save_favorite_programs(stations, signal)
        return self.restore_playback_program(stations)

    # バックアップ ------------------------------------------------------

    def export_data(self) -> str:
        """永続的な状態をJSON文字列として出力

        読み込み中フラグ・エラー・再生中番組などの一時的な状態は含めない。
        """
        state = self.store.get_state()
        data = {
            'auth': state.auth.to_dict() if state.auth else None,
            'stations': [s.to_dict() for s in state.stations],
            'selected_station': state.selected_station,
            'current_area_name': state.current_area_name,
            'speed': state.speed,
            'favorites': [f.to_dict() for f in state.favorites],
            'played_programs': sorted(state.played_programs),
            'history': [p.to_dict() for p in state.history],
            'programs': [p.to_dict() for p in state.programs],
            'programs_by_date': {
                key: [p.to_dict() for p in programs]
                for key, programs in state.programs_by_date.items()
            },
        }
        return json.dumps(data, ensure_ascii=False, indent=2)

    def import_data(self, text: str) -> RadikoState:
        """export_data の出力から状態を復元

        Raises:
            DataImportError: 解析できない場合
        """
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            raise DataImportError(f"バックアップデータを解析できません: {e}") from e
        if not isinstance(data, dict):
            raise DataImportError("バックアップデータの形式が不正です")

        try:
            auth = AuthToken.from_dict(data['auth']) if data.get('auth') else None
            speed = float(data.get('speed', DEFAULT_SPEED))
            if not is_valid_speed(speed):
                raise ValueError(f"再生速度が不正です: {speed}")
            changes = {
                'auth': auth,
                'stations': [Station.from_dict(s) for s in data.get('stations') or []],
                'selected_station': data.get('selected_station'),
                'current_area_name': data.get('current_area_name') or UNKNOWN_AREA_NAME,
                'speed': speed,
                'favorites': [FavoriteEntry.from_dict(f) for f in data.get('favorites') or []],
                'played_programs': [str(k) for k in data.get('played_programs') or []],
                'history': [Program.from_dict(p) for p in data.get('history') or []],
                'programs': [Program.from_dict(p) for p in data.get('programs') or []],
                'programs_by_date': {
                    str(key): [Program.from_dict(p) for p in programs]
                    for key, programs in (data.get('programs_by_date') or {}).items()
                },
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DataImportError(f"バックアップデータの形式が不正です: {e}") from e

        if auth is not None:
            self.storage.save_auth(auth)
        self.storage.save_history(changes['history'])
        self.storage.save_favorites(changes['favorites'])
        self.storage.save_speed(speed)

        self.logger.info(f"バックアップデータを読み込み: 履歴{len(changes['history'])}件")
        return self.store.set_state(**changes)

    async def close(self) -> None:
        await self.api.close()

    async def __aenter__(self) -> 'RadikoClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_client(config: Optional[ClientConfig] = None) -> RadikoClient:
    """設定からクライアントを構築"""
    if config is None:
        config = ClientConfig()
    storage = PlaybackStorage(FileKeyValueStore(config.storage_dir))
    api = RadikoApiClient(config.api_base_url, AiohttpTransport(timeout=config.request_timeout))
    policy = RetryPolicy(max_retries=config.max_retries,
                         initial_delay=config.initial_delay,
                         max_delay=config.max_delay)
    return RadikoClient(api, storage,
                        retry_policy=policy,
                        auth_ttl_ms=config.auth_ttl_ms,
                        history_limit=config.history_limit,
                        retention_days=config.history_retention_days,
                        autosave_interval=config.autosave_interval)
