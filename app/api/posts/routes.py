# app/api/posts/routes.py
from flask import Blueprint, request, jsonify, Response, current_app

from app.api.posts.schemas import PostListQuerySchema, PostResponseSchema, PostSummarySchema
from app.core.exceptions import NotFound
from app.schemas.validation import expand_tags_text
from app.services.slug_service import derive_slug

posts_bp = Blueprint('posts_bp', __name__)


def _schema(schema_class, **kwargs):
    return schema_class(
        preview_length=current_app.config['PREVIEW_LENGTH'],
        words_per_minute=current_app.config['WORDS_PER_MINUTE'],
        **kwargs
    )


def _request_body():
    """요청 본문. 쉼표로 구분한 tagsText가 있으면 tags 배열로 바꿉니다."""
    max_count = current_app.services['posts'].limits.max_tag_count
    return expand_tags_text(request.get_json() or {}, max_count)


def _page_response(posts, next_cursor):
    return jsonify({
        "posts": _schema(PostSummarySchema, many=True).dump(posts),
        "next_cursor": next_cursor
    }), 200


@posts_bp.route('', methods=['GET'])
def get_published_posts():
    """
    공개된 게시글 목록을 최신순으로 조회합니다.
    - 쿼리 파라미터: limit, cursor(이전 응답의 next_cursor), tag
    """
    args = PostListQuerySchema().load(request.args)
    posts, next_cursor = current_app.services['posts'].list_published(args['limit'], args['cursor'], args['tag'])
    return _page_response(posts, next_cursor)


@posts_bp.route('/mine', methods=['GET'])
def get_my_posts():
    """내가 작성한 게시글 목록 (초안 포함, 관리자 전용)"""
    args = PostListQuerySchema().load(request.args)
    posts, next_cursor = current_app.services['posts'].list_mine(args['limit'], args['cursor'])
    return _page_response(posts, next_cursor)


@posts_bp.route('/tags', methods=['GET'])
def get_all_tags():
    tags = current_app.services['posts'].get_all_tags()
    return jsonify({"tags": tags}), 200


@posts_bp.route('/slug-suggestion', methods=['GET'])
def suggest_slug():
    """제목으로 slug 후보를 만들고 현재 사용 가능한지 함께 알려줍니다."""
    slug = derive_slug(request.args.get('title', ''))
    available = bool(slug) and current_app.services['slugs'].find_by_slug(slug) is None
    return jsonify({"slug": slug, "available": available}), 200


@posts_bp.route('/<string:key>', methods=['GET'])
def get_post(key: str):
    """게시글 ID 또는 slug로 게시글 하나를 조회합니다."""
    post = current_app.services['posts'].get_post_by_id_or_slug(key)
    if post is None:
        raise NotFound("게시글을 찾을 수 없습니다.")
    return jsonify(_schema(PostResponseSchema).dump(post)), 200


@posts_bp.route('', methods=['POST'])
def create_post():
    """
    새 게시글을 작성합니다. (관리자 전용)
    - 성공 시, 생성된 게시글 정보를 201 Created 상태 코드와 함께 반환합니다.
    """
    post = current_app.services['posts'].create_post(_request_body())
    return jsonify(_schema(PostResponseSchema).dump(post)), 201


@posts_bp.route('/<string:key>', methods=['PATCH'])
def update_post(key: str):
    """게시글을 부분 수정합니다. (작성자 본인만 가능)"""
    post = current_app.services['posts'].update_post(key, _request_body())
    return jsonify(_schema(PostResponseSchema).dump(post)), 200


@posts_bp.route('/<string:key>/publish', methods=['POST'])
def publish_post(key: str):
    post = current_app.services['posts'].publish_post(key)
    return jsonify(_schema(PostResponseSchema).dump(post)), 200


@posts_bp.route('/<string:key>/unpublish', methods=['POST'])
def unpublish_post(key: str):
    post = current_app.services['posts'].unpublish_post(key)
    return jsonify(_schema(PostResponseSchema).dump(post)), 200


@posts_bp.route('/<string:key>', methods=['DELETE'])
def delete_post(key: str):
    """게시글을 영구 삭제합니다. (작성자 본인만 가능)"""
    current_app.services['posts'].delete_post(key)
    return Response(status=204)
