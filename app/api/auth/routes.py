# app/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app, g

from app.api.auth.schemas import (
    EmailSignInSchema,
    IdentityResponseSchema,
    PasswordResetSchema,
    ProviderSignInSchema,
    SessionRestoreSchema,
)
from app.core.exceptions import Unauthenticated

# 로그인 상태는 서버에 남지 않습니다.
# 클라이언트는 응답의 idToken을 보관했다가 'Authorization: Bearer <idToken>' 헤더로 보냅니다.
auth_bp = Blueprint('auth_bp', __name__)


def _identity_response(identity, status_code=200):
    schema = IdentityResponseSchema(admin_uids=current_app.config['ADMIN_UIDS'])
    return jsonify(schema.dump(identity)), status_code


@auth_bp.route('/sign-in', methods=['POST'])
def sign_in():
    """이메일/비밀번호로 로그인하고 ID 토큰과 refresh 토큰을 반환합니다."""
    data = EmailSignInSchema().load(request.get_json() or {})
    identity = g.auth.sign_in_with_email(data['email'], data['password'])
    return _identity_response(identity)


@auth_bp.route('/sign-up', methods=['POST'])
def sign_up():
    """이메일/비밀번호로 회원가입하고 바로 사용할 수 있는 토큰을 반환합니다."""
    data = EmailSignInSchema().load(request.get_json() or {})
    identity = g.auth.sign_up_with_email(data['email'], data['password'])
    return _identity_response(identity, 201)


@auth_bp.route('/provider', methods=['POST'])
def sign_in_with_provider():
    """외부 제공자(GitHub 등)의 access token으로 로그인합니다."""
    data = ProviderSignInSchema().load(request.get_json() or {})
    identity = g.auth.sign_in_with_provider(
        data['provider_id'], data['access_token'], data['request_uri']
    )
    return _identity_response(identity)


@auth_bp.route('/password-reset', methods=['POST'])
def password_reset():
    data = PasswordResetSchema().load(request.get_json() or {})
    g.auth.send_password_reset_email(data['email'])
    return jsonify({"message": "비밀번호 재설정 메일을 보냈습니다."}), 200


@auth_bp.route('/session', methods=['POST'])
def restore_session():
    """클라이언트가 보관하던 ID 토큰이 아직 유효한지 확인하고 사용자 정보를 반환합니다."""
    data = SessionRestoreSchema().load(request.get_json() or {})
    identity = g.auth.restore_session(data['id_token'])
    return _identity_response(identity)


@auth_bp.route('/sign-out', methods=['POST'])
def sign_out():
    """이 요청의 로그인 상태만 해제합니다. 토큰 폐기는 클라이언트가 보관한 토큰을 지우는 것으로 끝납니다."""
    g.auth.sign_out()
    logging.info("로그아웃 처리 완료")
    return jsonify({"message": "로그아웃 되었습니다."}), 200


@auth_bp.route('/me', methods=['GET'])
def get_me():
    """요청 토큰의 사용자 정보를 반환합니다. 토큰이 없으면 401."""
    identity = current_app.services['session'].current_identity
    if identity is None:
        raise Unauthenticated()
    return _identity_response(identity)
