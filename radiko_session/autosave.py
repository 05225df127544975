"""
再生位置の自動保存モジュール

タイムフリー再生中、プレイヤーから報告される再生位置を一定間隔で
視聴履歴に保存します。
"""

import asyncio
from typing import Callable, Optional

from .client import RadikoClient
from .logging_config import LoggerMixin
from .models import PlayingType


PositionProvider = Callable[[], Optional[float]]


class ProgressAutoSaver(LoggerMixin):
    """再生位置の定期保存

    Usage:
        saver = ProgressAutoSaver(client, player.current_time)
        saver.start()
        ...
        await saver.stop()
    """

    def __init__(self, client: RadikoClient, position_provider: PositionProvider,
                 interval: Optional[float] = None):
        super().__init__()
        if interval is None:
            interval = client.autosave_interval
        if interval <= 0:
            raise ValueError(f"保存間隔は正の値である必要があります: {interval}")
        self.client = client
        self.position_provider = position_provider
        self.interval = interval
        self.save_count = 0
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """自動保存を開始"""
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="progress_autosave")
        self.logger.debug(f"再生位置の自動保存を開始: {self.interval}秒間隔")

    async def stop(self, save: bool = True) -> None:
        """自動保存を停止

        Args:
            save: Trueの場合は停止前に現在位置を保存する
        """
        self._stop_event.set()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if save:
            self.save_now()
        self.logger.debug("再生位置の自動保存を停止")

    def save_now(self) -> bool:
        """現在の再生位置を保存

        Returns:
            保存した場合True
        """
        state = self.client.get_state()
        program = state.current_program
        if program is None or state.playing_type is not PlayingType.TIMEFREE:
            return False

        position = self.position_provider()
        if position is None:
            return False
        try:
            self.client.save_playback_program(program, position)
        except ValueError as e:
            self.logger.warning(f"再生位置を保存できません: {e}")
            return False

        self.save_count += 1
        return True

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                self.save_now()
