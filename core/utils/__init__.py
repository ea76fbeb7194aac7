"""
유틸리티 패키지

전기 일자/시각 파싱, 저장용 포맷, 락 획득 등 공통 유틸리티
"""

from core.utils.locks import acquire_within
from core.utils.posting_time import (
    format_posting_date,
    format_posting_time,
    now_utc,
    parse_posting_date,
    parse_posting_time,
)

__all__ = [
    "acquire_within",
    "format_posting_date",
    "format_posting_time",
    "now_utc",
    "parse_posting_date",
    "parse_posting_time",
]
