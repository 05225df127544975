"""
再生復元モジュール

起動時に再開する番組を履歴から決定します。

選択規則:
    1. 7日より古い履歴を削除
    2. 現在のエリアで聴取可能な放送局の番組に限定
    3. 視聴途中の番組があれば、その中で開始時刻が最も古いもの
    4. なければ視聴済み以外で開始時刻が最も古いもの
    5. 該当なしの場合はNone

開始時刻が同じ場合は放送局IDの昇順で選ぶ。
"""

from typing import Iterable, List, Optional

from .history import DEFAULT_RETENTION_DAYS, HistoryEngine
from .logging_config import LoggerMixin
from .models import Program, RestoreResult, Station
from .storage import PlaybackStorage


def _oldest(programs: List[Program]) -> Optional[Program]:
    if not programs:
        return None
    return min(programs, key=lambda p: (p.start_time_value, p.station_id))


class RestorationEngine(LoggerMixin):
    """再生復元クラス"""

    def __init__(self, history: HistoryEngine, storage: PlaybackStorage,
                 retention_days: int = DEFAULT_RETENTION_DAYS):
        super().__init__()
        self.history = history
        self.storage = storage
        self.retention_days = retention_days

    def select(self, stations: Iterable[Station]) -> Optional[Program]:
        """再開する番組を選択"""
        available = {station.id for station in stations}
        candidates = [p for p in self.history.prune_older_than(self.retention_days)
                      if p.station_id in available]

        program = _oldest([p for p in candidates if p.status.is_in_progress])
        if program is None:
            program = _oldest([p for p in candidates if not p.status.is_completed])
        return program

    def restore(self, stations: Iterable[Station]) -> Optional[RestoreResult]:
        """再開する番組と再生速度を取得"""
        program = self.select(stations)
        if program is None:
            self.logger.debug("復元対象の番組なし")
            return None
        self.logger.info(
            f"再生復元: {program.station_id} {program.start_time} "
            f"({program.status.position:.0f}秒から)"
        )
        return RestoreResult(program=program, speed=self.storage.load_speed())
