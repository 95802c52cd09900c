# app/utils/render.py
"""
게시글/프로필 표시에 쓰는 텍스트 헬퍼 모음 (요약문, 읽기 시간, 상대 시간, 태그 렌더링)
"""

import math
import re
from datetime import datetime
from typing import Iterable, List, Optional

from markupsafe import Markup

from app.utils.datetime_utils import DateTimeUtils

_tag_separators = re.compile(r'[,，\s]+')

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_MONTH = 30 * _DAY
_YEAR = 365 * _DAY


def strip_tags(html: Optional[str]) -> str:
    """HTML 태그를 제거하고 엔티티를 풀어 순수 텍스트로 만듭니다."""
    if not html:
        return ''
    return Markup(html).striptags()


def format_date(value, fmt: str = '%Y-%m-%d') -> str:
    dt = DateTimeUtils.coerce(value)
    if dt is None:
        return ''
    return dt.strftime(fmt)


def format_relative_time(value, now: Optional[datetime] = None) -> str:
    """'방금 전', '3분 전', '2주 전' 형태의 상대 시간 문자열을 반환합니다."""
    dt = DateTimeUtils.coerce(value)
    if dt is None:
        return ''

    now = DateTimeUtils.ensure_utc(now) if now else DateTimeUtils.now()
    diff = (now - dt).total_seconds()

    if diff < _MINUTE:
        return '방금 전'
    if diff < _HOUR:
        return f"{math.floor(diff / _MINUTE)}분 전"
    if diff < _DAY:
        return f"{math.floor(diff / _HOUR)}시간 전"
    if diff < _WEEK:
        return f"{math.floor(diff / _DAY)}일 전"
    if diff < _MONTH:
        return f"{math.floor(diff / _WEEK)}주 전"
    if diff < _YEAR:
        return f"{math.floor(diff / _MONTH)}개월 전"
    return f"{math.floor(diff / _YEAR)}년 전"


def calculate_reading_minutes(content: Optional[str], words_per_minute: int = 400) -> int:
    """본문 단어 수로 읽기 시간(분)을 계산합니다. 최소 1분입니다."""
    if not content:
        return 1
    word_count = len(strip_tags(content).split())
    # JavaScript Math.round와 같게 .5는 올림
    return max(1, math.floor(word_count / words_per_minute + 0.5))


def calculate_reading_time(content: Optional[str], words_per_minute: int = 400) -> str:
    return f"{calculate_reading_minutes(content, words_per_minute)}분 읽기"


def generate_excerpt(content: Optional[str], length: int = 150) -> str:
    """본문에서 태그를 제거한 뒤 length자로 자른 요약문을 만듭니다."""
    if not content:
        return ''
    text = strip_tags(content).strip()
    if len(text) <= length:
        return text
    return text[:length] + '…'


def render_tags(tags: Optional[Iterable[str]], class_name: str = 'tag') -> Markup:
    if not tags:
        return Markup('')
    return Markup('').join(
        Markup('<span class="{}">{}</span>').format(class_name, tag) for tag in tags
    )


def format_tags_input(text: Optional[str], max_count: int = 10) -> List[str]:
    """'python, flask 블로그' 같은 입력 문자열을 태그 리스트로 나눕니다."""
    if not text or not isinstance(text, str):
        return []
    tags = [tag.strip() for tag in _tag_separators.split(text)]
    return [tag for tag in tags if tag][:max_count]


def tags_to_string(tags) -> str:
    if not isinstance(tags, (list, tuple)):
        return ''
    return ', '.join(tags)
