# app/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간/날짜 처리를 위한 유틸리티 모듈

- Firestore 타임스탬프, datetime, ISO 문자열을 모두 UTC timezone-aware datetime으로 통일합니다.
- 응답 직렬화와 상대 시간 표시(render 모듈)에서 사용합니다.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime으로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)
            return DateTimeUtils.ensure_utc(dt)

        except (ValueError, OverflowError) as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """timezone-naive면 UTC로 간주하고, aware면 UTC로 변환합니다."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime 객체를 'Z' 접미사의 ISO 문자열로 변환"""
        return DateTimeUtils.ensure_utc(dt).isoformat().replace('+00:00', 'Z')

    @staticmethod
    def coerce(value: Union[datetime, str, None, Any]) -> Optional[datetime]:
        """
        Firestore 타임스탬프(DatetimeWithNanoseconds), datetime, ISO 문자열을 UTC datetime으로 변환합니다.
        변환할 수 없는 값(None, 서버 타임스탬프 센티널 등)은 None을 반환합니다.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            return DateTimeUtils.ensure_utc(value)
        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)
        logger.warning(f"datetime으로 변환할 수 없는 값: {value!r}")
        return None

    @staticmethod
    def serialize(value: Any) -> Optional[str]:
        """응답 직렬화용. 변환할 수 없는 값은 None으로 내려줍니다."""
        dt = DateTimeUtils.coerce(value)
        return DateTimeUtils.to_iso_string(dt) if dt else None


# 편의를 위한 글로벌 함수들
def now() -> datetime:
    """현재 UTC 시간 반환"""
    return DateTimeUtils.now()


def to_iso(dt: datetime) -> str:
    """datetime을 ISO 문자열로 변환"""
    return DateTimeUtils.to_iso_string(dt)
