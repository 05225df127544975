"""
永続化モジュール

このモジュールは名前付きJSONデータの保存・読み込みを提供します。
- キーバリューストアの抽象化（メモリ／ファイル）
- 認証情報・視聴履歴・再生速度・お気に入りの型付き読み書き
- 読み込み失敗時は空のデフォルト値、書き込み失敗時はログのみ
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from .errors import StorageError
from .logging_config import LoggerMixin
from .models import AuthToken, FavoriteEntry, Program, is_valid_speed
from .utils.path_utils import atomic_write_text


T = TypeVar('T')

# 保存キー
AUTH_KEY = "radiko_auth"
PLAYBACK_PROGRAMS_KEY = "radiko_playback_programs"
PLAYBACK_SPEED_KEY = "radiko_playback_speed"
FAVORITES_KEY = "radiko_favorites"

STORAGE_KEYS = (AUTH_KEY, PLAYBACK_PROGRAMS_KEY, PLAYBACK_SPEED_KEY, FAVORITES_KEY)

DEFAULT_SPEED = 1.0


class KeyValueStore(ABC):
    """文字列キーバリューストアのインターフェース

    実装は失敗時に StorageError を送出する。
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """値を取得（存在しない場合はNone）"""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """値を保存（既存値は置き換え）"""

    @abstractmethod
    def remove(self, key: str) -> None:
        """値を削除（存在しない場合は何もしない）"""


class MemoryKeyValueStore(KeyValueStore):
    """メモリ上のキーバリューストア（テスト用）"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())


class FileKeyValueStore(KeyValueStore):
    """ディレクトリ内の <key>.json ファイルに保存するキーバリューストア"""

    def __init__(self, directory: Union[str, Path], encoding: str = 'utf-8'):
        self.directory = Path(directory).expanduser()
        self.encoding = encoding

    def _path(self, key: str) -> Path:
        if not key or '/' in key or '\\' in key or key.startswith('.'):
            raise StorageError(f"不正な保存キー: {key!r}", key)
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"読み込みに失敗しました: {path} - {e}", key) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            atomic_write_text(path, value, self.encoding)
        except OSError as e:
            raise StorageError(f"書き込みに失敗しました: {path} - {e}", key) from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"削除に失敗しました: {path} - {e}", key) from e


class PlaybackStorage(LoggerMixin):
    """再生状態の永続化層

    呼び出し側に例外を送出しない。読み込み失敗は空のデフォルト値、
    書き込み失敗はログ出力のみで再試行しない。
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        super().__init__()
        self.store = store if store is not None else MemoryKeyValueStore()

    # 汎用API ------------------------------------------------------------

    def save(self, key: str, value: Any) -> bool:
        """JSONとして保存

        Returns:
            保存成功ならTrue
        """
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self.logger.error(f"保存データのJSON変換エラー: {key} - {e}")
            return False
        return self._write(key, payload)

    def load(self, key: str, default: Any = None) -> Any:
        """JSONとして読み込み（存在しない・破損している場合はdefault）"""
        raw = self._read(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            self.logger.error(f"保存データのJSON解析エラー: {key} - {e}")
            return default

    def remove(self, key: str) -> None:
        try:
            self.store.remove(key)
        except StorageError as e:
            self.logger.error(f"保存データ削除エラー: {e.message}")

    def clear(self) -> None:
        """全ての保存データを削除"""
        for key in STORAGE_KEYS:
            self.remove(key)

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except StorageError as e:
            self.logger.error(f"保存データ読み込みエラー: {e.message}")
            return None

    def _write(self, key: str, payload: str) -> bool:
        try:
            self.store.set(key, payload)
            return True
        except StorageError as e:
            self.logger.error(f"保存データ書き込みエラー: {e.message}")
            return False

    def _load_list(self, key: str, parse: Callable[[Dict[str, Any]], T]) -> List[T]:
        data = self.load(key, [])
        if not isinstance(data, list):
            self.logger.warning(f"保存データの形式が不正です（リストではありません）: {key}")
            return []
        items = []
        for item in data:
            try:
                items.append(parse(item))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"不正な保存データをスキップ: {key} - {e}")
        return items

    # 認証情報 ----------------------------------------------------------

    def load_auth(self) -> Optional[AuthToken]:
        data = self.load(AUTH_KEY)
        if data is None:
            return None
        try:
            return AuthToken.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"保存された認証情報が不正です: {e}")
            return None

    def save_auth(self, auth: AuthToken) -> bool:
        return self.save(AUTH_KEY, auth.to_dict())

    # 視聴履歴 ----------------------------------------------------------

    def load_history(self) -> List[Program]:
        return self._load_list(PLAYBACK_PROGRAMS_KEY, Program.from_dict)

    def save_history(self, programs: List[Program]) -> bool:
        return self.save(PLAYBACK_PROGRAMS_KEY, [p.to_dict() for p in programs])

    # 再生速度 ----------------------------------------------------------

    def load_speed(self) -> float:
        raw = self._read(PLAYBACK_SPEED_KEY)
        if raw is None:
            return DEFAULT_SPEED
        try:
            speed = float(raw.strip().strip('"'))
        except ValueError:
            self.logger.warning(f"保存された再生速度が不正です: {raw!r}")
            return DEFAULT_SPEED
        if not is_valid_speed(speed):
            self.logger.warning(f"保存された再生速度が不正です: {raw!r}")
            return DEFAULT_SPEED
        return speed

    def save_speed(self, speed: float) -> bool:
        return self._write(PLAYBACK_SPEED_KEY, str(float(speed)))

    # お気に入り --------------------------------------------------------

    def load_favorites(self) -> List[FavoriteEntry]:
        return self._load_list(FAVORITES_KEY, FavoriteEntry.from_dict)

    def save_favorites(self, favorites: List[FavoriteEntry]) -> bool:
        return self.save(FAVORITES_KEY, [f.to_dict() for f in favorites])
