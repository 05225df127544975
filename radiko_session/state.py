"""
状態管理モジュール

このモジュールはアプリケーション全体の状態スナップショットと購読機能を提供します。
- 不変スナップショット（RadikoState）
- 差分マージによる更新と同期通知
- 永続化データからの初期状態の構築

通知は同期的に購読順で行われる。リスナー内から set_state を呼ぶと
その場で入れ子の通知が走るため、リスナーは自分だけが状態を更新して
いると仮定してはならない。
"""

from dataclasses import dataclass, field, fields, replace
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from .errors import StateInvariantError
from .logging_config import LoggerMixin
from .models import AUTH_TTL_MS, AuthToken, FavoriteEntry, PlayingType, Program, Station, now_ms
from .region_mapper import UNKNOWN_AREA_NAME, RegionMapper
from .storage import DEFAULT_SPEED, PlaybackStorage


Listener = Callable[['RadikoState'], None]


@dataclass(frozen=True)
class RadikoState:
    """状態スナップショット"""
    is_loading: bool = False
    error: Optional[str] = None
    auth: Optional[AuthToken] = None
    stations: Tuple[Station, ...] = ()
    selected_station: Optional[str] = None
    now_on_air: Optional[Program] = None
    programs: Tuple[Program, ...] = ()
    programs_by_date: Dict[str, Tuple[Program, ...]] = field(default_factory=dict)
    current_area_name: str = UNKNOWN_AREA_NAME
    current_program: Optional[Program] = None
    playing_type: Optional[PlayingType] = None
    speed: float = DEFAULT_SPEED
    favorites: Tuple[FavoriteEntry, ...] = ()
    played_programs: FrozenSet[str] = frozenset()
    history: Tuple[Program, ...] = ()

    def __post_init__(self):
        if (self.current_program is None) != (self.playing_type is None):
            raise StateInvariantError(
                "current_program と playing_type は両方設定するか両方未設定である必要があります"
            )


STATE_FIELDS = frozenset(f.name for f in fields(RadikoState))

# 保存形式と相互変換するため順序を保つフィールド
_SEQUENCE_FIELDS = ('stations', 'programs', 'favorites', 'history')


def _normalize(changes: Dict[str, object]) -> Dict[str, object]:
    normalized = dict(changes)
    for name in _SEQUENCE_FIELDS:
        if name in normalized and not isinstance(normalized[name], tuple):
            normalized[name] = tuple(normalized[name])
    if 'played_programs' in normalized and not isinstance(normalized['played_programs'], frozenset):
        normalized['played_programs'] = frozenset(normalized['played_programs'])
    if normalized.get('playing_type') is not None:
        normalized['playing_type'] = PlayingType(normalized['playing_type'])
    if 'programs_by_date' in normalized:
        normalized['programs_by_date'] = {
            key: tuple(value) for key, value in (normalized['programs_by_date'] or {}).items()
        }
    return normalized


class StateStore(LoggerMixin):
    """状態ストア

    アプリケーション起動時に1つ生成して各コンポーネントへ渡す。
    """

    def __init__(self, initial_state: Optional[RadikoState] = None):
        super().__init__()
        self._state = initial_state if initial_state is not None else RadikoState()
        self._listeners: List[Listener] = []

    def get_state(self) -> RadikoState:
        """現在のスナップショットを取得"""
        return self._state

    def set_state(self, **changes) -> RadikoState:
        """状態を部分更新して購読者に通知

        Raises:
            TypeError: 存在しないフィールド名が指定された場合
            StateInvariantError: 再生中番組と再生種別の整合性が崩れる場合
        """
        unknown = set(changes) - STATE_FIELDS
        if unknown:
            raise TypeError(f"不明な状態フィールド: {', '.join(sorted(unknown))}")

        # 検証に失敗した場合は現在のスナップショットを維持する
        new_state = replace(self._state, **_normalize(changes))
        self._state = new_state

        for listener in list(self._listeners):
            listener(new_state)
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """購読を登録

        Returns:
            購読解除関数
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


def hydrate_state(storage: PlaybackStorage,
                  clock: Callable[[], int] = now_ms,
                  ttl_ms: int = AUTH_TTL_MS) -> RadikoState:
    """永続化データから初期状態を構築

    Args:
        storage: 永続化層
        clock: 現在時刻（エポックミリ秒）。認証情報の有効期限判定に使う
        ttl_ms: 認証情報の有効期間
    """
    history = storage.load_history()
    played = frozenset(p.played_key for p in history if p.status.is_completed)
    auth = storage.load_auth()
    if auth is not None and auth.is_expired(clock(), ttl_ms):
        auth = None
    return RadikoState(
        auth=auth,
        current_area_name=RegionMapper.get_area_name(auth.area_id) if auth else UNKNOWN_AREA_NAME,
        speed=storage.load_speed(),
        favorites=tuple(storage.load_favorites()),
        history=tuple(history),
        played_programs=played,
    )
