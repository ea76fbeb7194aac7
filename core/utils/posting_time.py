"""
전기 시각 유틸리티

posting_date + posting_time이 파티션 내 논리적 순서를 결정.
DB에는 사전순 정렬이 곧 시간순 정렬이 되도록 고정 폭 문자열로 저장:
- posting_date: YYYY-MM-DD
- posting_time: HH:MM:SS.ffffff
"""

from datetime import date, datetime, time, timezone

POSTING_DATE_FORMAT: str = "%Y-%m-%d"

_TIME_FORMATS: tuple[str, ...] = ("%H:%M:%S.%f", "%H:%M:%S", "%H:%M")


def parse_posting_date(value: date | str) -> date:
    """전기 일자 파싱

    Args:
        value: date 또는 ISO 형식 문자열 (YYYY-MM-DD)

    Returns:
        date

    Raises:
        ValueError: 형식이 잘못된 경우
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), POSTING_DATE_FORMAT).date()


def parse_posting_time(value: time | str | None) -> time:
    """전기 시각 파싱

    None이면 00:00:00 (원본 스키마에서 posting_time은 선택 필드).

    Args:
        value: time, "HH:MM", "HH:MM:SS", "HH:MM:SS.ffffff" 또는 None

    Returns:
        tzinfo 없는 time

    Raises:
        ValueError: 형식이 잘못된 경우
    """
    if value is None:
        return time(0, 0, 0)
    if isinstance(value, time):
        return value.replace(tzinfo=None)

    text = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid posting time: {value!r}")


def format_posting_date(value: date) -> str:
    """전기 일자 → 저장용 문자열"""
    return value.strftime(POSTING_DATE_FORMAT)


def format_posting_time(value: time) -> str:
    """전기 시각 → 저장용 고정 폭 문자열

    Example:
        >>> format_posting_time(time(9, 5))
        '09:05:00.000000'
    """
    return f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}.{value.microsecond:06d}"


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.

    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)
