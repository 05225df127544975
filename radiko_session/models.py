"""
データモデルモジュール

このモジュールは放送局・番組・認証トークン・お気に入りのデータクラスを定義します。
- 番組の再生状態（未視聴／視聴途中／視聴済み）
- 保存形式（JSON）との相互変換
"""

import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# 認証トークンの有効期間（70分）
AUTH_TTL_MS = 70 * 60 * 1000

# 保存形式で「視聴済み」を表す値
COMPLETED_SENTINEL = -1


def now_ms() -> int:
    """現在時刻（エポックミリ秒）"""
    return int(time.time() * 1000)


def is_valid_speed(speed: float) -> bool:
    """再生速度として使える値か（有限の正の数）"""
    return math.isfinite(speed) and speed > 0


class PlayingType(str, Enum):
    """再生種別"""
    LIVE = "live"           # ライブ再生
    TIMEFREE = "timefree"   # タイムフリー再生


class PlaybackKind(Enum):
    """再生状態の種類"""
    UNWATCHED = "unwatched"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PlaybackStatus:
    """番組の再生状態

    保存形式の currentTime との対応:
        未設定 / null / 0  -> UNWATCHED
        正の数             -> IN_PROGRESS(seconds)
        -1                 -> COMPLETED
    """
    kind: PlaybackKind = PlaybackKind.UNWATCHED
    seconds: float = 0.0

    @classmethod
    def unwatched(cls) -> 'PlaybackStatus':
        return cls(PlaybackKind.UNWATCHED, 0.0)

    @classmethod
    def in_progress(cls, seconds: float) -> 'PlaybackStatus':
        if seconds <= 0:
            raise ValueError(f"視聴途中の再生位置は正の値である必要があります: {seconds}")
        return cls(PlaybackKind.IN_PROGRESS, float(seconds))

    @classmethod
    def completed(cls) -> 'PlaybackStatus':
        return cls(PlaybackKind.COMPLETED, 0.0)

    @classmethod
    def from_position(cls, seconds: float) -> 'PlaybackStatus':
        """プレイヤーから報告された再生位置（秒）から状態を生成"""
        if seconds is None:
            return cls.unwatched()
        if seconds < 0:
            raise ValueError(f"再生位置が負の値です: {seconds}")
        if seconds == 0:
            return cls.unwatched()
        return cls.in_progress(seconds)

    @classmethod
    def from_current_time(cls, value: Any) -> 'PlaybackStatus':
        """保存形式の currentTime から状態を復元"""
        if value is None or isinstance(value, bool):
            return cls.unwatched()
        try:
            number = float(value)
        except (TypeError, ValueError):
            return cls.unwatched()
        if number == COMPLETED_SENTINEL:
            return cls.completed()
        if number > 0:
            return cls.in_progress(number)
        return cls.unwatched()

    def to_current_time(self) -> float:
        """保存形式の currentTime に変換"""
        if self.kind is PlaybackKind.COMPLETED:
            return COMPLETED_SENTINEL
        if self.kind is PlaybackKind.IN_PROGRESS:
            return self.seconds
        return 0

    @property
    def is_in_progress(self) -> bool:
        return self.kind is PlaybackKind.IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.kind is PlaybackKind.COMPLETED

    @property
    def position(self) -> float:
        """再生開始位置（秒）"""
        return self.seconds if self.kind is PlaybackKind.IN_PROGRESS else 0.0


@dataclass(frozen=True)
class Station:
    """放送局情報"""
    id: str
    name: str = ""
    ascii_name: str = ""
    logo: str = ""
    url: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ('id', 'name', 'ascii_name', 'logo', 'url')

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'id': self.id,
            'name': self.name,
            'ascii_name': self.ascii_name,
            'logo': self.logo,
            'url': self.url,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Station':
        if not isinstance(data, dict) or not data.get('id'):
            raise ValueError(f"放送局IDがありません: {data!r}")
        return cls(
            id=str(data['id']),
            name=str(data.get('name') or ''),
            ascii_name=str(data.get('ascii_name') or ''),
            logo=str(data.get('logo') or ''),
            url=str(data.get('url') or data.get('href') or ''),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS and k != 'href'},
        )


@dataclass(frozen=True)
class Program:
    """番組情報

    同一番組の識別は (station_id, start_time) で行う。
    """
    station_id: str
    start_time: str   # YYYYMMDDHHMMSS
    end_time: str     # YYYYMMDDHHMMSS
    title: str
    pfm: Optional[str] = None
    url: Optional[str] = None
    info: Optional[str] = None
    status: PlaybackStatus = field(default_factory=PlaybackStatus.unwatched)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ('station_id', 'startTime', 'endTime', 'title', 'pfm', 'url', 'info', 'currentTime')

    @property
    def key(self) -> Tuple[str, str]:
        """履歴の一意キー"""
        return (self.station_id, self.start_time)

    @property
    def played_key(self) -> str:
        """視聴済みセット用のキー"""
        return f"{self.station_id}-{self.start_time}"

    @property
    def start_time_value(self) -> int:
        """比較用の開始時刻（数値）"""
        try:
            return int(self.start_time)
        except (TypeError, ValueError):
            return 0

    def with_status(self, status: PlaybackStatus) -> 'Program':
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式への変換（保存用）"""
        data = dict(self.extra)
        data.update({
            'station_id': self.station_id,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'title': self.title,
        })
        for key in ('pfm', 'url', 'info'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data['currentTime'] = self.status.to_current_time()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Program':
        """辞書からの復元

        Raises:
            ValueError: 必須項目が不足している場合
        """
        if not isinstance(data, dict):
            raise ValueError(f"番組データが辞書ではありません: {data!r}")
        station_id = data.get('station_id')
        start_time = data.get('startTime')
        if not station_id or not start_time:
            raise ValueError(f"番組の放送局IDまたは開始時刻がありません: {data!r}")
        return cls(
            station_id=str(station_id),
            start_time=str(start_time),
            end_time=str(data.get('endTime') or ''),
            title=str(data.get('title') or ''),
            pfm=data.get('pfm'),
            url=data.get('url'),
            info=data.get('info'),
            status=PlaybackStatus.from_current_time(data.get('currentTime')),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )


@dataclass(frozen=True)
class AuthToken:
    """認証トークン（70分間有効）"""
    token: str
    area_id: str
    timestamp: int  # エポックミリ秒

    def is_expired(self, current_ms: Optional[int] = None, ttl_ms: int = AUTH_TTL_MS) -> bool:
        """認証トークンが期限切れかどうかをチェック"""
        if current_ms is None:
            current_ms = now_ms()
        return current_ms - self.timestamp >= ttl_ms

    def to_dict(self) -> Dict[str, Any]:
        return {'token': self.token, 'areaId': self.area_id, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthToken':
        if not isinstance(data, dict):
            raise ValueError(f"認証情報が辞書ではありません: {data!r}")
        token = data['token']
        area_id = data['areaId']
        if not isinstance(token, str) or not isinstance(area_id, str):
            raise ValueError("認証情報の形式が不正です")
        return cls(token=token, area_id=area_id, timestamp=int(data['timestamp']))


@dataclass(frozen=True)
class FavoriteEntry:
    """お気に入り（放送局内の番組タイトルで一致判定）"""
    station_id: str
    title: str

    def matches(self, program: Program) -> bool:
        return self.station_id == program.station_id and self.title == program.title

    def to_dict(self) -> Dict[str, str]:
        return {'stationId': self.station_id, 'title': self.title}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FavoriteEntry':
        if not isinstance(data, dict):
            raise ValueError(f"お気に入りデータが辞書ではありません: {data!r}")
        return cls(station_id=str(data['stationId']), title=str(data['title']))


@dataclass(frozen=True)
class RestoreResult:
    """再生復元の結果"""
    program: Program
    speed: float = 1.0
