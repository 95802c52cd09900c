# app/api/profiles/schemas.py
from marshmallow import Schema, fields

from app.utils.datetime_utils import DateTimeUtils
from app.utils.render import tags_to_string


class ProfileResponseSchema(Schema):
    """프로필 응답 스키마. Firestore 문서와 같은 camelCase 필드명을 사용합니다."""
    uid = fields.Str(dump_only=True)
    display_name = fields.Str(data_key='displayName')
    nickname = fields.Str()
    bio = fields.Str()
    tags = fields.List(fields.Str())
    tags_text = fields.Method('get_tags_text', data_key='tagsText')
    photo_url = fields.Str(data_key='photoURL')
    site_bg_url = fields.Str(data_key='siteBgUrl')
    author_bg_url = fields.Str(data_key='authorBgUrl')
    is_complete = fields.Bool(data_key='isComplete', dump_only=True)
    created_at = fields.Method('get_created_at', data_key='createdAt')
    updated_at = fields.Method('get_updated_at', data_key='updatedAt')

    def get_tags_text(self, profile):
        return tags_to_string(profile.tags)

    def get_created_at(self, profile):
        return DateTimeUtils.serialize(profile.created_at)

    def get_updated_at(self, profile):
        return DateTimeUtils.serialize(profile.updated_at)
