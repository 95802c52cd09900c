# app/api/site/routes.py
from flask import Blueprint, jsonify, current_app

site_bp = Blueprint('site_bp', __name__)


@site_bp.route('', methods=['GET'])
def get_site_info():
    """사이트 이름/소개 등 화면 공통 정보를 반환합니다."""
    config = current_app.config
    return jsonify({
        "name": config['SITE_NAME'],
        "description": config['SITE_DESCRIPTION'],
        "postsPerPage": config['POSTS_PER_PAGE'],
        "maxImageSize": config['MAX_IMAGE_SIZE'],
        "allowedImageTypes": list(config['ALLOWED_IMAGE_TYPES']),
    }), 200
