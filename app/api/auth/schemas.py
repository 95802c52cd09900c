#app/api/auth/schemas.py
from marshmallow import Schema, fields, validate


class EmailSignInSchema(Schema):
    """이메일/비밀번호 로그인 및 회원가입 요청의 유효성을 검사하는 스키마"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=1))


class ProviderSignInSchema(Schema):
    """외부 제공자 로그인 요청의 유효성을 검사하는 스키마"""
    provider_id = fields.Str(
        required=True, data_key='providerId',
        metadata={"description": "외부 로그인 제공자 (e.g., github.com)"}
    )
    access_token = fields.Str(
        required=True, data_key='accessToken',
        metadata={"description": "제공자가 발급한 OAuth access token"}
    )
    request_uri = fields.Str(load_default='http://localhost', data_key='requestUri')


class PasswordResetSchema(Schema):
    email = fields.Email(required=True)


class SessionRestoreSchema(Schema):
    """저장해 둔 ID 토큰으로 세션을 복원하는 요청"""
    id_token = fields.Str(required=True, data_key='idToken')


class IdentityResponseSchema(Schema):
    """현재 로그인 사용자 응답. 관리자 여부를 함께 내려줍니다."""
    uid = fields.Str()
    display_name = fields.Str(data_key='displayName')
    label = fields.Str()
    email = fields.Str()
    photo_url = fields.Str(data_key='photoURL')
    id_token = fields.Str(data_key='idToken')
    refresh_token = fields.Str(data_key='refreshToken')
    is_admin = fields.Method('get_is_admin', data_key='isAdmin')

    def __init__(self, admin_uids=(), **kwargs):
        super().__init__(**kwargs)
        self.admin_uids = frozenset(admin_uids)

    def get_is_admin(self, identity):
        return identity.uid in self.admin_uids
