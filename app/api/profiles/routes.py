# app/api/profiles/routes.py
from flask import Blueprint, request, jsonify, current_app

from app.api.profiles.schemas import ProfileResponseSchema
from app.core.exceptions import NotFound
from app.schemas.validation import expand_tags_text

profiles_bp = Blueprint('profiles_bp', __name__)


@profiles_bp.route('/me', methods=['GET'])
def get_my_profile():
    """
    내 프로필을 조회합니다.
    - 프로필 문서가 아직 없으면 로그인 정보로 기본 프로필을 만들어 반환합니다.
    """
    identity = current_app.services['session'].require_auth()
    profile = current_app.services['profiles'].get_or_create_profile(identity)
    return jsonify(ProfileResponseSchema().dump(profile)), 200


@profiles_bp.route('/me', methods=['PATCH'])
def update_my_profile():
    """
    내 프로필을 부분 수정합니다. 요청 본문에 포함된 필드만 변경됩니다.
    - 태그는 배열(tags) 또는 쉼표로 구분한 문자열(tagsText)로 보낼 수 있습니다.
    """
    profiles = current_app.services['profiles']
    data = expand_tags_text(request.get_json() or {}, profiles.limits.max_tag_count)
    profile = profiles.update_my_profile(data)
    return jsonify(ProfileResponseSchema().dump(profile)), 200


@profiles_bp.route('/<string:uid>', methods=['GET'])
def get_profile(uid: str):
    """공개 프로필 조회 (로그인 불필요)"""
    profile = current_app.services['profiles'].get_profile(uid)
    if profile is None:
        raise NotFound("프로필을 찾을 수 없습니다.")
    return jsonify(ProfileResponseSchema().dump(profile)), 200
