"""
お気に入り管理モジュール

お気に入りは (放送局ID, 番組タイトル) で一致判定する。
同じタイトルの再放送や回違いは区別しない。
"""

from typing import List, Set

from .logging_config import LoggerMixin
from .models import FavoriteEntry, Program
from .state import StateStore
from .storage import PlaybackStorage


class FavoritesManager(LoggerMixin):
    """お気に入りの管理クラス"""

    def __init__(self, store: StateStore, storage: PlaybackStorage):
        super().__init__()
        self.store = store
        self.storage = storage

    @property
    def favorites(self) -> List[FavoriteEntry]:
        return list(self.store.get_state().favorites)

    def is_favorite(self, program: Program) -> bool:
        return any(entry.matches(program) for entry in self.store.get_state().favorites)

    def titles_for_station(self, station_id: str) -> Set[str]:
        return {entry.title for entry in self.store.get_state().favorites
                if entry.station_id == station_id}

    def toggle_favorite(self, program: Program) -> bool:
        """お気に入りの登録／解除を切り替え

        Returns:
            切り替え後にお気に入りならTrue
        """
        entry = FavoriteEntry(station_id=program.station_id, title=program.title)
        favorites = self.favorites
        if entry in favorites:
            favorites.remove(entry)
            is_favorite = False
            self.logger.info(f"お気に入り解除: {entry.station_id} {entry.title}")
        else:
            favorites.append(entry)
            is_favorite = True
            self.logger.info(f"お気に入り登録: {entry.station_id} {entry.title}")

        self.storage.save_favorites(favorites)
        self.store.set_state(favorites=favorites)
        return is_favorite
