"""
再生復元単体テスト

視聴途中の優先、開始時刻の古い順、視聴済みの除外、放送局による絞り込みを確認する。
"""

import unittest

from radiko_session.history import HistoryEngine
from radiko_session.restoration import RestorationEngine
from radiko_session.state import StateStore
from radiko_session.storage import MemoryKeyValueStore, PlaybackStorage
from tests.utils.test_environment import FixedClock, days_ago, make_program, make_stations


class TestRestorationEngine(unittest.TestCase):
    """RestorationEngine テスト"""

    def setUp(self):
        self.store = StateStore()
        self.storage = PlaybackStorage(MemoryKeyValueStore())
        self.history = HistoryEngine(self.store, self.storage, clock=FixedClock())
        self.engine = RestorationEngine(self.history, self.storage)
        self.stations = make_stations('S1', 'S2', 'S3')

    def _set_history(self, *programs):
        self.store.set_state(history=list(programs))

    def test_01_視聴途中の番組を未視聴より優先(self):
        """新しい視聴途中の番組が、古い未視聴の番組より優先されることを確認"""
        # Given: S1は視聴途中（新しい）、S2は未視聴（古い）
        in_progress = make_program('S1', days_ago(1), seconds=120)
        unwatched = make_program('S2', days_ago(2))
        self._set_history(in_progress, unwatched)

        # When
        result = self.engine.restore(self.stations)

        # Then
        self.assertEqual(result.program, in_progress)
        self.assertEqual(result.speed, 1.0)

    def test_02_視聴途中同士は開始時刻の古い方(self):
        newer = make_program('S1', days_ago(1), seconds=120)
        older = make_program('S2', days_ago(2), seconds=30)
        self._set_history(newer, older)

        self.assertEqual(self.engine.restore(self.stations).program, older)

    def test_03_視聴途中がなければ未視聴の古い順(self):
        self._set_history(
            make_program('S1', days_ago(1)),
            make_program('S2', days_ago(3), completed=True),
            make_program('S3', days_ago(2)),
        )

        self.assertEqual(self.engine.restore(self.stations).program.station_id, 'S3')

    def test_04_全て視聴済みならNone(self):
        self._set_history(
            make_program('S1', days_ago(1), completed=True),
            make_program('S2', days_ago(2), completed=True),
        )

        self.assertIsNone(self.engine.restore(self.stations))

    def test_05_履歴が空ならNone(self):
        self.assertIsNone(self.engine.restore(self.stations))

    def test_06_聴取できない放送局の番組は対象外(self):
        self._set_history(
            make_program('OTHER', days_ago(3), seconds=50),
            make_program('S1', days_ago(1)),
        )

        self.assertEqual(self.engine.restore(self.stations).program.station_id, 'S1')
        self.assertIsNone(self.engine.restore(make_stations('S9')))

    def test_07_古い履歴は削除してから選択(self):
        self._set_history(
            make_program('S1', days_ago(9), seconds=50),
            make_program('S2', days_ago(1)),
        )

        result = self.engine.restore(self.stations)

        self.assertEqual(result.program.station_id, 'S2')
        self.assertEqual(len(self.storage.load_history()), 1)

    def test_08_開始時刻が同じ場合は放送局IDの昇順(self):
        start = days_ago(1)
        self._set_history(
            make_program('S3', start, seconds=10),
            make_program('S1', start, seconds=20),
            make_program('S2', start, seconds=30),
        )

        self.assertEqual(self.engine.restore(self.stations).program.station_id, 'S1')

    def test_09_保存済みの再生速度を返す(self):
        self.storage.save_speed(1.5)
        self._set_history(make_program('S1', days_ago(1)))

        self.assertEqual(self.engine.restore(self.stations).speed, 1.5)


if __name__ == '__main__':
    unittest.main()
