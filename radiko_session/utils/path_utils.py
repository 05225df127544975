"""
パス処理ユーティリティ

保存先ディレクトリの作成と、一時ファイル経由の原子的な書き込み
"""

import os
import tempfile
from pathlib import Path
from typing import Union


def ensure_directory_exists(file_path: Union[str, Path]) -> Path:
    """ファイルの親ディレクトリを作成し、Pathオブジェクトを返す

    Args:
        file_path: ファイルパス（~ は展開する）

    Returns:
        Path: 展開済みのファイルパス
    """
    path = Path(file_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write_text(file_path: Union[str, Path], text: str, encoding: str = 'utf-8') -> Path:
    """同じディレクトリの一時ファイルに書き込んでから置き換える

    書き込み途中で失敗しても既存ファイルは壊れない。

    Raises:
        OSError: 書き込み・置き換えに失敗した場合
    """
    path = ensure_directory_exists(file_path)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding=encoding) as f:
            f.write(text)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
    return path
