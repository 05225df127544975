"""
日時処理ユーティリティ

Radiko形式（YYYYMMDDHHMMSS）の時刻文字列と日本時間の変換機能
"""

from datetime import date, datetime, timedelta
from typing import Optional

import pytz


JST = pytz.timezone('Asia/Tokyo')

# 放送日の切り替わり時刻（5時より前は前日の放送日）
BROADCAST_DAY_START_HOUR = 5

RADIKO_TIME_FORMAT = '%Y%m%d%H%M%S'


def jst_now() -> datetime:
    """現在の日本時間（タイムゾーン付き）を取得"""
    return datetime.now(JST)


def parse_radiko_time(time_str: str) -> Optional[datetime]:
    """時刻文字列の解析
    
    Args:
        time_str: 時刻文字列 (YYYYMMDDHHMMSS形式)
        
    Returns:
        Optional[datetime]: 日本時間のdatetime (失敗時はNone)
    """
    if not time_str or len(time_str) != 14 or not time_str.isdigit():
        return None
    try:
        return JST.localize(datetime.strptime(time_str, RADIKO_TIME_FORMAT))
    except ValueError:
        return None


def format_radiko_time(value: datetime) -> str:
    """datetimeをRadiko形式の文字列に変換"""
    if value.tzinfo is not None:
        value = value.astimezone(JST)
    return value.strftime(RADIKO_TIME_FORMAT)


def program_calendar_date(start_time: str) -> Optional[date]:
    """番組開始時刻の暦日を取得（放送日補正なし）"""
    try:
        return date(int(start_time[0:4]), int(start_time[4:6]), int(start_time[6:8]))
    except (ValueError, IndexError, TypeError):
        return None


def broadcast_date_key(start_time: str) -> Optional[str]:
    """番組開始時刻から放送日キー（YYYYMMDD）を生成
    
    0:00〜4:59開始の番組は前日の放送日として扱う。
    
    Example:
        broadcast_date_key('20240102033000')  # '20240101'
        broadcast_date_key('20240102050000')  # '20240102'
    """
    calendar_date = program_calendar_date(start_time)
    if calendar_date is None:
        return None
    try:
        hour = int(start_time[8:10])
    except ValueError:
        return None
    if hour < BROADCAST_DAY_START_HOUR:
        calendar_date -= timedelta(days=1)
    return calendar_date.strftime('%Y%m%d')


_WEEKDAY_NAMES = ('月', '火', '水', '木', '金', '土', '日')


def format_display_time(time_str: str) -> str:
    """表示用の時刻（HH:MM）"""
    parsed = parse_radiko_time(time_str)
    return parsed.strftime('%H:%M') if parsed else ""


def format_display_date(date_str: str) -> str:
    """表示用の日付（例: 1/2(火)）"""
    calendar_date = program_calendar_date(date_str)
    if calendar_date is None:
        return ""
    weekday = _WEEKDAY_NAMES[calendar_date.weekday()]
    return f"{calendar_date.month}/{calendar_date.day}({weekday})"
