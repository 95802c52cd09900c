# app/api/posts/schemas.py
from marshmallow import EXCLUDE, Schema, fields, validate

from app.utils.datetime_utils import DateTimeUtils
from app.utils.render import (
    calculate_reading_time,
    format_date,
    format_relative_time,
    generate_excerpt,
    render_tags,
    tags_to_string,
)


# --- API 요청 스키마 ---
# 본문 필드 자체의 검증은 서비스 계층(app.schemas.validation)에서 수행합니다.

class PostListQuerySchema(Schema):
    """GET /api/posts, /api/posts/mine 쿼리 파라미터의 유효성을 검사합니다."""
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=None, validate=validate.Range(min=1, max=50))
    cursor = fields.Str(load_default=None)
    tag = fields.Str(load_default=None)


# --- API 응답 스키마 ---

class PostResponseSchema(Schema):
    """게시글 정보 응답을 위한 최종 JSON 형식을 정의합니다. 요약문과 읽기 시간을 함께 내려줍니다."""
    id = fields.Str(attribute='post_id', dump_only=True)
    title = fields.Str(required=True)
    content_html = fields.Str(data_key='contentHtml')
    tags = fields.List(fields.Str())
    status = fields.Str()
    cover_url = fields.Str(data_key='coverUrl')
    slug = fields.Str()
    author_id = fields.Str(data_key='authorId')
    created_at = fields.Method('get_created_at', data_key='createdAt')
    updated_at = fields.Method('get_updated_at', data_key='updatedAt')
    excerpt = fields.Method('get_excerpt')
    reading_time = fields.Method('get_reading_time', data_key='readingTime')
    # 화면 표시용 값
    created_date = fields.Method('get_created_date', data_key='createdDate')
    created_ago = fields.Method('get_created_ago', data_key='createdAgo')
    tags_text = fields.Method('get_tags_text', data_key='tagsText')
    tags_html = fields.Method('get_tags_html', data_key='tagsHtml')

    def __init__(self, preview_length: int = 150, words_per_minute: int = 400, **kwargs):
        super().__init__(**kwargs)
        self.preview_length = preview_length
        self.words_per_minute = words_per_minute

    def get_created_at(self, post):
        return DateTimeUtils.serialize(post.created_at)

    def get_updated_at(self, post):
        return DateTimeUtils.serialize(post.updated_at)

    def get_excerpt(self, post):
        return generate_excerpt(post.content_html, self.preview_length)

    def get_reading_time(self, post):
        return calculate_reading_time(post.content_html, self.words_per_minute)

    def get_created_date(self, post):
        return format_date(post.created_at)

    def get_created_ago(self, post):
        return format_relative_time(post.created_at)

    def get_tags_text(self, post):
        return tags_to_string(post.tags)

    def get_tags_html(self, post):
        return str(render_tags(post.tags))


class PostSummarySchema(PostResponseSchema):
    """목록 응답용 스키마. 본문 HTML은 제외합니다."""
    class Meta:
        exclude = ('content_html',)
