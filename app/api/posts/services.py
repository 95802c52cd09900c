# app/api/posts/services.py
import logging
from typing import Any, List, Mapping, Optional, Tuple

from firebase_admin import firestore

from app.core.config import ContentLimits
from app.core.exceptions import Forbidden, NotFound, translate_backend_errors
from app.core.session import SessionContext
from app.models.identity import Identity
from app.models.post import Post, PostStatus
from app.schemas.validation import validate_post_fields
from app.services.slug_service import SlugAllocator

# 생성 시 입력에 없으면 채워 넣는 기본값
_CREATE_DEFAULTS = {
    'tags': [],
    'status': PostStatus.DRAFT.value,
    'coverUrl': '',
    'slug': '',
}

# Firestore 문서 ID 최대 길이 (UTF-8 바이트)
_MAX_DOCUMENT_ID_BYTES = 1500


def _is_document_id(key: str) -> bool:
    """Firestore가 문서 ID로 받아들이는 값인지 확인합니다. ('/', '.', '..', '__x__', 1500바이트 초과 불가)"""
    return (
        bool(key)
        and '/' not in key
        and key not in ('.', '..')
        and not (key.startswith('__') and key.endswith('__'))
        and len(key.encode('utf-8')) <= _MAX_DOCUMENT_ID_BYTES
    )


class PostService:
    """
    게시글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 목록/상세 조회는 누구나 가능합니다.
    - 생성/수정/삭제는 관리자만 가능하며, 수정/삭제는 작성자 본인이어야 합니다.
    """
    def __init__(self, session: SessionContext, slugs: Optional[SlugAllocator] = None,
                 limits: Optional[ContentLimits] = None, posts_per_page: int = 10, db=None):
        self.session = session
        self.limits = limits or ContentLimits()
        self.posts_per_page = posts_per_page
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.slugs = slugs or SlugAllocator(self.db)

    # =====================================================================================
    # 조회
    # =====================================================================================
    def _paginate(self, query, limit: Optional[int], cursor: Optional[str]) -> Tuple[List[Post], Optional[str]]:
        """createdAt 내림차순으로 정렬하고, 이전 페이지 마지막 문서 ID(cursor) 다음부터 조회합니다."""
        query = query.order_by('createdAt', direction=firestore.Query.DESCENDING)
        if cursor and _is_document_id(cursor):
            cursor_doc = self.posts_ref.document(cursor).get()
            if cursor_doc.exists:
                query = query.start_after(cursor_doc)

        query = query.limit(limit or self.posts_per_page)
        posts = [Post.from_snapshot(doc) for doc in query.stream()]
        next_cursor = posts[-1].post_id if posts else None
        return posts, next_cursor

    @translate_backend_errors
    def list_published(self, limit: Optional[int] = None, cursor: Optional[str] = None,
                       tag: Optional[str] = None) -> Tuple[List[Post], Optional[str]]:
        """공개된 게시글 목록을 최신순으로 조회합니다. tag가 있으면 해당 태그를 가진 글만 조회합니다."""
        query = self.posts_ref.where('status', '==', PostStatus.PUBLISHED.value)
        if tag:
            query = query.where('tags', 'array_contains', tag)
        return self._paginate(query, limit, cursor)

    @translate_backend_errors
    def list_mine(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Tuple[List[Post], Optional[str]]:
        """현재 관리자가 작성한 게시글(초안 포함)을 최신순으로 조회합니다."""
        identity = self.session.require_admin()
        query = self.posts_ref.where('authorId', '==', identity.uid)
        return self._paginate(query, limit, cursor)

    @translate_backend_errors
    def get_post_by_id_or_slug(self, key: str) -> Optional[Post]:
        """
        문서 ID로 먼저 조회하고, 없으면 slug로 다시 조회합니다.
        문서 ID가 될 수 없는 값('/' 포함, '..' 등)은 바로 slug로 조회합니다.
        """
        if not key:
            return None

        if _is_document_id(key):
            doc = self.posts_ref.document(key).get()
            if doc.exists:
                return Post.from_snapshot(doc)

        return self.slugs.find_by_slug(key)

    @translate_backend_errors
    def get_all_tags(self) -> List[str]:
        """공개된 모든 게시글의 태그를 모아 정렬해 반환합니다. (전체 스캔)"""
        docs = self.posts_ref.where('status', '==', PostStatus.PUBLISHED.value).stream()
        tag_set = set()
        for doc in docs:
            tag_set.update((doc.to_dict() or {}).get('tags') or [])
        return sorted(tag_set)

    # =====================================================================================
    # 생성/수정/삭제
    # =====================================================================================
    @translate_backend_errors
    def create_post(self, fields: Mapping[str, Any]) -> Post:
        """새 게시글을 생성하고 Firestore가 발급한 ID를 포함한 저장 결과를 반환합니다."""
        identity = self.session.require_admin()
        validated = validate_post_fields(fields, is_update=False, limits=self.limits)

        post_data = {**_CREATE_DEFAULTS, **validated.to_document()}
        if post_data['slug']:
            self.slugs.ensure_unique(post_data['slug'])

        post_data['authorId'] = identity.uid
        post_data['createdAt'] = firestore.SERVER_TIMESTAMP
        post_data['updatedAt'] = firestore.SERVER_TIMESTAMP

        post_ref = self.posts_ref.document()
        post_ref.set(post_data)
        logging.info(f"게시글 생성 완료 (post_id: {post_ref.id}, author: {identity.uid}, status: {post_data['status']})")
        return Post.from_snapshot(post_ref.get())

    def _get_owned_post(self, id_or_slug: str, identity: Identity) -> Post:
        post = self.get_post_by_id_or_slug(id_or_slug)
        if not post:
            raise NotFound("게시글을 찾을 수 없습니다.")
        if post.author_id != identity.uid:
            raise Forbidden("본인이 작성한 게시글만 수정하거나 삭제할 수 있습니다.")
        return post

    @translate_backend_errors
    def update_post(self, id_or_slug: str, patch: Mapping[str, Any]) -> Post:
        """게시글을 부분 수정합니다. 입력에 없는 필드는 그대로 유지됩니다."""
        identity = self.session.require_admin()
        existing = self._get_owned_post(id_or_slug, identity)

        update_data = validate_post_fields(patch, is_update=True, limits=self.limits).to_document()
        new_slug = update_data.get('slug')
        if new_slug and new_slug != existing.slug:
            self.slugs.ensure_unique(new_slug, exclude_post_id=existing.post_id)

        update_data['updatedAt'] = firestore.SERVER_TIMESTAMP
        post_ref = self.posts_ref.document(existing.post_id)
        post_ref.update(update_data)
        logging.info(f"게시글 수정 완료 (post_id: {existing.post_id}, fields: {sorted(update_data)})")
        return Post.from_snapshot(post_ref.get())

    def publish_post(self, post_id: str) -> Post:
        return self.update_post(post_id, {'status': PostStatus.PUBLISHED.value})

    def unpublish_post(self, post_id: str) -> Post:
        return self.update_post(post_id, {'status': PostStatus.DRAFT.value})

    @translate_backend_errors
    def delete_post(self, post_id: str) -> None:
        """게시글을 영구 삭제합니다. 되돌릴 수 없습니다."""
        identity = self.session.require_admin()
        existing = self._get_owned_post(post_id, identity)
        self.posts_ref.document(existing.post_id).delete()
        logging.info(f"게시글 삭제 완료 (post_id: {existing.post_id})")
