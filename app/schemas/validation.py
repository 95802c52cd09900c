# app/schemas/validation.py
"""
프로필/게시글 입력값 검증 엔진

marshmallow 스키마로 입력 dict를 검증하고 정규화합니다.
- 입력에 존재하는 필드만 검사하며, 없는 필드는 결과에서도 missing으로 남습니다(부분 업데이트용).
- 문자열은 길이 검사 후 앞뒤 공백을 제거합니다.
- 실패 시 app.core.exceptions의 타입별 예외(InvalidURL, InvalidSlug 등)를 발생시킵니다.

I/O가 없는 순수 함수이므로 같은 입력에는 항상 같은 결과를 돌려줍니다.
"""

import re
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, Mapping, Optional

from marshmallow import EXCLUDE, Schema, ValidationError as SchemaValidationError, fields, missing, post_load, validate

from app.core.config import ContentLimits
from app.core.exceptions import InvalidSlug, InvalidStatus, InvalidURL, RequiredFieldMissing, ValidationError
from app.models.post import POST_DOCUMENT_KEYS, PostStatus
from app.models.profile import PROFILE_DOCUMENT_KEYS
from app.utils.render import format_tags_input

SLUG_PATTERN = re.compile(r'^[a-zA-Z0-9]+([a-zA-Z0-9-]*[a-zA-Z0-9])?$')
POST_STATUSES = tuple(status.value for status in PostStatus)

_http_url = validate.URL(relative=False, schemes={'http', 'https'}, require_tld=False)


# =====================================================================================
# 커스텀 필드
# =====================================================================================
class TrimmedString(fields.String):
    """
    길이 제한을 검사한 뒤 앞뒤 공백을 제거하는 문자열 필드.

    :param limit: ContentLimits의 속성 이름. 스키마에 주입된 limits에서 최대 길이를 읽습니다.
    :param required_on_create: 생성 모드에서 공백 제거 후 빈 문자열을 허용하지 않습니다.

    allow_none=True이면 None을 빈 문자열과 같게 취급합니다.
    """
    default_error_messages = {
        "too_long": "{max_length}자를 넘을 수 없습니다.",
        "blank": "필수 항목이 비어 있습니다.",
    }

    def __init__(self, *, limit: Optional[str] = None, required_on_create: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.limit = limit
        self.required_on_create = required_on_create

    def deserialize(self, value, attr=None, data=None, **kwargs):
        if value is None and self.allow_none:
            value = ''
        return super().deserialize(value, attr, data, **kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        if self.limit:
            max_length = getattr(self.parent.limits, self.limit)
            if len(value) > max_length:
                raise self.make_error("too_long", max_length=max_length)
        value = value.strip()
        if self.required_on_create and not value and not self.parent.is_update:
            raise self.make_error("blank")
        return value


class HttpUrl(TrimmedString):
    """빈 문자열(미설정) 또는 http/https 절대 URL만 허용하는 필드."""
    default_error_messages = {"invalid_url": "유효한 http(s) URL이 아닙니다."}

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        if value:
            try:
                _http_url(value)
            except SchemaValidationError:
                raise self.make_error("invalid_url")
        return value


class Slug(TrimmedString):
    """영문/숫자와 내부 하이픈으로 이루어진 URL 식별자. 빈 문자열은 '없음'을 뜻합니다."""
    default_error_messages = {
        "invalid_slug": "URL 식별자는 영문, 숫자, 하이픈만 사용할 수 있으며 하이픈으로 시작하거나 끝날 수 없습니다.",
    }

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        if value and not SLUG_PATTERN.match(value):
            raise self.make_error("invalid_slug")
        return value


class PostStatusField(fields.Field):
    """'draft' 또는 'published' 중 하나와 정확히 일치해야 합니다."""
    default_error_messages = {
        "invalid_status": "상태는 draft 또는 published 여야 합니다.",
        "null": "상태는 draft 또는 published 여야 합니다.",
    }

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, str) or value not in POST_STATUSES:
            raise self.make_error("invalid_status")
        return value


class TagList(fields.Field):
    """
    태그 배열 필드.
    - 배열이 아니거나 문자열이 아닌 항목, 길이 초과 항목이 있으면 실패합니다.
    - 공백만 있는 항목은 오류 없이 제거합니다.
    - 결과는 최대 개수까지만 남깁니다.
    """
    default_error_messages = {
        "invalid": "태그는 배열이어야 합니다.",
        "invalid_tag": "태그는 문자열이어야 합니다.",
        "tag_too_long": "태그는 {max_length}자를 넘을 수 없습니다.",
    }

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, (list, tuple)):
            raise self.make_error("invalid")
        limits = self.parent.limits
        tags = []
        for tag in value:
            if not isinstance(tag, str):
                raise self.make_error("invalid_tag")
            trimmed = tag.strip()
            if not trimmed:
                continue
            if len(trimmed) > limits.max_tag_length:
                raise self.make_error("tag_too_long", max_length=limits.max_tag_length)
            tags.append(trimmed)
        return tags[:limits.max_tag_count]


# =====================================================================================
# 검증 결과 타입
# =====================================================================================
class _FieldSet:
    """검증 결과의 공통 동작. 입력에 없던 필드는 marshmallow.missing 값을 가집니다."""
    _document_keys: Dict[str, str] = {}

    def is_present(self, name: str) -> bool:
        return getattr(self, name) is not missing

    def to_document(self) -> Dict[str, Any]:
        """입력에 존재했던 필드만 Firestore 필드명으로 반환합니다."""
        document = {}
        for f in dataclass_fields(self):
            value = getattr(self, f.name)
            if value is not missing:
                document[self._document_keys[f.name]] = value
        return document


@dataclass
class ProfileFields(_FieldSet):
    display_name: Any = missing
    nickname: Any = missing
    bio: Any = missing
    tags: Any = missing
    photo_url: Any = missing
    site_bg_url: Any = missing
    author_bg_url: Any = missing

    _document_keys = PROFILE_DOCUMENT_KEYS


@dataclass
class PostFields(_FieldSet):
    title: Any = missing
    content_html: Any = missing
    tags: Any = missing
    status: Any = missing
    cover_url: Any = missing
    slug: Any = missing

    _document_keys = POST_DOCUMENT_KEYS


# =====================================================================================
# 스키마
# =====================================================================================
# marshmallow 오류 메시지 키 -> 발생시킬 예외 타입
_TYPED_ERRORS = (
    ("required", RequiredFieldMissing),
    ("blank", RequiredFieldMissing),
    ("invalid_url", InvalidURL),
    ("invalid_status", InvalidStatus),
    ("invalid_slug", InvalidSlug),
)


class _FieldsSchema(Schema):
    """limits와 생성/수정 모드를 주입받는 검증 스키마의 기반 클래스."""
    result_class = None

    class Meta:
        unknown = EXCLUDE

    def __init__(self, limits: ContentLimits, is_update: bool = True, **kwargs):
        super().__init__(**kwargs)
        self.limits = limits
        self.is_update = is_update

    @post_load
    def make_result(self, data, **kwargs):
        return self.result_class(**data)

    def handle_error(self, error, data, **kwargs):
        raise self._typed_error(error) from error

    def _typed_error(self, error: SchemaValidationError) -> ValidationError:
        """선언 순서상 첫 번째로 실패한 필드를 기준으로 예외 타입을 결정합니다."""
        messages = error.normalized_messages()
        for name, field in self.load_fields.items():
            key = field.data_key or name
            if key not in messages:
                continue
            field_messages = messages[key]
            message = field_messages[0] if isinstance(field_messages, list) else str(field_messages)
            for error_key, error_type in _TYPED_ERRORS:
                if field.error_messages.get(error_key) == message:
                    return error_type(message, details=messages, field=key)
            return ValidationError(message, details=messages, field=key)
        return ValidationError(details=messages)


class ProfileFieldsSchema(_FieldsSchema):
    """프로필 입력 검증 스키마. 필수 항목은 없습니다."""
    result_class = ProfileFields

    display_name = TrimmedString(data_key='displayName', limit='max_display_name_length')
    nickname = TrimmedString(limit='max_display_name_length')
    bio = TrimmedString(limit='max_bio_length')
    tags = TagList()
    photo_url = HttpUrl(data_key='photoURL')
    site_bg_url = HttpUrl(data_key='siteBgUrl')
    author_bg_url = HttpUrl(data_key='authorBgUrl')


class PostFieldsSchema(_FieldsSchema):
    """게시글 입력 검증 스키마. 생성 시 title, contentHtml이 필수입니다."""
    result_class = PostFields

    title = TrimmedString(
        required=True, required_on_create=True, allow_none=True, limit='max_title_length',
        error_messages={"required": "필수 항목이 비어 있습니다."}
    )
    content_html = TrimmedString(
        data_key='contentHtml', required=True, required_on_create=True, allow_none=True,
        error_messages={"required": "필수 항목이 비어 있습니다."}
    )
    tags = TagList()
    status = PostStatusField()
    cover_url = HttpUrl(data_key='coverUrl')
    slug = Slug()


def validate_profile_fields(partial: Mapping[str, Any], limits: Optional[ContentLimits] = None) -> ProfileFields:
    """프로필 입력을 검증/정규화합니다. 실패 시 ValidationError 계열 예외를 발생시킵니다."""
    schema = ProfileFieldsSchema(limits or ContentLimits())
    return schema.load(partial, partial=True)


def validate_post_fields(partial: Mapping[str, Any], is_update: bool = False,
                         limits: Optional[ContentLimits] = None) -> PostFields:
    """
    게시글 입력을 검증/정규화합니다.

    :param partial: 사용자 입력 (Firestore 필드명 기준, 예: 'contentHtml')
    :param is_update: True이면 필수 항목 검사를 생략합니다.
    :param limits: 길이/개수 제한값. 없으면 기본값을 사용합니다.
    """
    schema = PostFieldsSchema(limits or ContentLimits(), is_update=is_update)
    return schema.load(partial, partial=is_update)


def expand_tags_text(data: Mapping[str, Any], max_count: int) -> Dict[str, Any]:
    """
    'tagsText' 문자열 입력(예: 'python, flask')을 'tags' 배열로 바꾼 새 dict를 반환합니다.
    'tags'가 함께 있으면 'tags'를 그대로 사용합니다.
    """
    if not isinstance(data, Mapping):
        return data
    data = dict(data)
    text = data.pop('tagsText', None)
    if text is not None and 'tags' not in data:
        data['tags'] = format_tags_input(text, max_count)
    return data
