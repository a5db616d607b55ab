"""
시간 유틸리티

DB에는 naive UTC datetime을 저장한다 (SQLite/PostgreSQL 공통).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """현재 시각 (naive UTC)"""
    return datetime.utcnow()


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """aware datetime을 naive UTC로 변환"""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value) -> Optional[datetime]:
    """
    커넥터가 돌려주는 날짜 값 파싱

    ISO 문자열, epoch 초(int/float), datetime을 허용하고
    해석할 수 없으면 None을 반환한다.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.utcfromtimestamp(float(value))
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def month_key(moment: Optional[datetime] = None) -> str:
    """월 버킷 키 (UTC, YYYY-MM)"""
    moment = moment or utcnow()
    return f"{moment.year:04d}-{moment.month:02d}"


def start_of_day(moment: datetime) -> datetime:
    """해당 일자의 00:00 (UTC)"""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime) -> datetime:
    """해당 주 월요일 00:00 (UTC)"""
    return start_of_day(moment) - timedelta(days=moment.weekday())
