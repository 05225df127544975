"""
視聴履歴モジュール

このモジュールは視聴履歴（再生位置・視聴済み状態）の管理を行います。
- (放送局ID, 開始時刻) をキーとした履歴の追加・更新・削除
- 7日より古い番組の自動削除
- 視聴済みセットの管理
- お気に入り番組の自動収集
"""

import asyncio
from datetime import datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set

from .api_client import RadikoApiClient
from .errors import RadikoAPIError
from .logging_config import LoggerMixin
from .models import PlaybackStatus, Program, Station
from .state import StateStore
from .storage import PlaybackStorage
from .utils.datetime_utils import JST, jst_now, parse_radiko_time, program_calendar_date


DEFAULT_HISTORY_LIMIT = 50
DEFAULT_RETENTION_DAYS = 7


class HistoryEngine(LoggerMixin):
    """視聴履歴の管理クラス

    履歴の件数上限は add_to_history でのみ適用される。再生位置の保存経路は
    件数ではなく日数による削除で上限を保つ。
    """

    def __init__(self, store: StateStore, storage: PlaybackStorage,
                 api: Optional[RadikoApiClient] = None,
                 history_limit: int = DEFAULT_HISTORY_LIMIT,
                 retention_days: int = DEFAULT_RETENTION_DAYS,
                 clock: Callable[[], datetime] = jst_now):
        super().__init__()
        self.store = store
        self.storage = storage
        self.api = api
        self.history_limit = history_limit
        self.retention_days = retention_days
        self.clock = clock

    @property
    def history(self) -> List[Program]:
        return list(self.store.get_state().history)

    def find(self, station_id: str, start_time: str) -> Optional[Program]:
        for program in self.store.get_state().history:
            if program.key == (station_id, start_time):
                return program
        return None

    def _commit(self, history: List[Program], played: Optional[Set[str]] = None) -> None:
        self.storage.save_history(history)
        changes = {'history': history}
        if played is not None:
            changes['played_programs'] = played
        self.store.set_state(**changes)

    def add_to_history(self, program: Program) -> None:
        """履歴の先頭に追加（同一キーは置き換え、件数上限あり）"""
        history = [program] + [p for p in self.history if p.key != program.key]
        if len(history) > self.history_limit:
            self.logger.debug(f"履歴上限超過: {len(history) - self.history_limit}件を削除")
            history = history[:self.history_limit]
        self._commit(history)

    def save_playback_progress(self, program: Program, seconds: float) -> None:
        """再生位置を保存

        Args:
            program: 再生中の番組
            seconds: 再生位置（秒）。0は未視聴として扱う

        Raises:
            ValueError: 再生位置が負の値の場合
        """
        self._save_status(program, PlaybackStatus.from_position(seconds))

    def _save_status(self, program: Program, status: PlaybackStatus) -> None:
        updated = program.with_status(status)
        history = self.history
        for index, existing in enumerate(history):
            if existing.key == updated.key:
                history[index] = updated
                break
        else:
            history.insert(0, updated)

        played = set(self.store.get_state().played_programs)
        if status.is_completed:
            played.add(updated.played_key)
        else:
            played.discard(updated.played_key)

        self._commit(self._prune(history), played)

    def remove_from_history(self, station_id: str, start_time: str) -> None:
        """履歴から削除（視聴済みマークも解除）"""
        history = [p for p in self.history if p.key != (station_id, start_time)]
        played = set(self.store.get_state().played_programs)
        played.discard(f"{station_id}-{start_time}")
        self._commit(history, played)

    def mark_as_played(self, station_id: str, start_time: str) -> None:
        """視聴済みにする"""
        existing = self.find(station_id, start_time)
        if existing is not None:
            self._save_status(existing, PlaybackStatus.completed())
            return
        played = set(self.store.get_state().played_programs)
        played.add(f"{station_id}-{start_time}")
        self.store.set_state(played_programs=played)

    def is_played(self, station_id: str, start_time: str) -> bool:
        return f"{station_id}-{start_time}" in self.store.get_state().played_programs

    # 古い履歴の削除 ----------------------------------------------------

    def _cutoff(self, days: int) -> datetime:
        return self.clock() - timedelta(days=days)

    def _is_within(self, program: Program, cutoff: datetime) -> bool:
        start_date = program_calendar_date(program.start_time)
        if start_date is None:
            self.logger.warning(f"開始時刻が不正な履歴を削除: {program.station_id} {program.start_time!r}")
            return False
        return JST.localize(datetime.combine(start_date, time.min)) >= cutoff

    def _prune(self, history: List[Program], days: Optional[int] = None) -> List[Program]:
        cutoff = self._cutoff(self.retention_days if days is None else days)
        kept = [p for p in history if self._is_within(p, cutoff)]
        if len(kept) != len(history):
            self.logger.info(f"古い履歴を削除: {len(history) - len(kept)}件")
        return kept

    def prune_older_than(self, days: int = DEFAULT_RETENTION_DAYS) -> List[Program]:
        """放送日が指定日数より前の履歴を削除

        Returns:
            削除後の履歴
        """
        history = self.history
        kept = self._prune(history, days)
        if len(kept) != len(history):
            self._commit(kept)
        return kept

    # お気に入り番組の自動収集 ------------------------------------------

    async def save_favorite_programs(self, stations: Iterable[Station],
                                     signal: Optional[asyncio.Event] = None) -> List[Program]:
        """お気に入り番組のうち放送済みのものを未視聴として履歴に追加

        取得エラーはログ出力のみで続行する。中断は呼び出し側へ送出する。

        Returns:
            追加された番組
        """
        state = self.store.get_state()
        if self.api is None or state.auth is None or not state.favorites:
            return []

        titles_by_station: Dict[str, Set[str]] = {}
        for favorite in state.favorites:
            titles_by_station.setdefault(favorite.station_id, set()).add(favorite.title)

        now = self.clock()
        added: List[Program] = []
        known_keys = {p.key for p in state.history}

        for station in stations:
            titles = titles_by_station.get(station.id)
            if not titles:
                continue
            try:
                programs = await self.api.get_programs(state.auth.token, station.id, "weekly",
                                                       signal=signal)
            except RadikoAPIError as e:
                self.logger.warning(f"お気に入り番組の取得に失敗: {station.id} - {e.message}")
                continue

            for program in programs:
                if program.title not in titles or program.key in known_keys:
                    continue
                end_time = parse_radiko_time(program.end_time)
                if end_time is None or end_time > now:
                    continue
                added.append(program.with_status(PlaybackStatus.unwatched()))
                known_keys.add(program.key)

        if added:
            self.logger.info(f"お気に入り番組を履歴に追加: {len(added)}件")
            self._commit(self.history + added)
        return added
