# app/services/slug_service.py
import logging
import re
from typing import Optional

from firebase_admin import firestore

from app.core.exceptions import SlugConflict, translate_backend_errors
from app.models.post import Post

MAX_SLUG_LENGTH = 50

_non_slug_chars = re.compile(r'[^\w\s-]', re.ASCII)
_separator_runs = re.compile(r'[\s_-]+', re.ASCII)


def derive_slug(title: Optional[str]) -> str:
    """
    제목으로부터 URL 식별자 후보를 만듭니다.
    소문자 변환 -> 특수문자 제거 -> 공백/밑줄/하이픈 연속을 하이픈 하나로 -> 양끝 하이픈 제거 -> 50자 제한
    """
    if not title:
        return ''
    slug = _non_slug_chars.sub('', title.lower())
    slug = _separator_runs.sub('-', slug)
    return slug.strip('-')[:MAX_SLUG_LENGTH]


class SlugAllocator:
    """
    게시글 slug의 중복 여부를 확인하는 서비스.

    확인 후 저장(check-then-act) 방식이라 동시에 같은 slug로 생성하는 요청 둘이
    모두 통과할 수 있습니다. SlugConflict는 다른 slug로 재시도하라는 의미로 다룹니다.
    """

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('posts')

    @translate_backend_errors
    def find_by_slug(self, slug: str) -> Optional[Post]:
        """slug가 일치하는 첫 번째 게시글을 반환합니다."""
        docs = self.posts_ref.where('slug', '==', slug).limit(1).get()
        if not docs:
            return None
        return Post.from_snapshot(docs[0])

    @translate_backend_errors
    def ensure_unique(self, slug: str, exclude_post_id: Optional[str] = None) -> None:
        """
        slug를 사용하는 다른 게시글이 있으면 SlugConflict를 발생시킵니다.

        :param slug: 검사할 slug (명시 입력 또는 derive_slug 결과)
        :param exclude_post_id: 수정 중인 게시글 자신의 ID. 이 문서와의 일치는 충돌로 보지 않습니다.
        """
        # 경합으로 중복이 생긴 경우에도 자기 자신 외의 문서를 찾을 수 있도록 2건까지 조회합니다.
        docs = self.posts_ref.where('slug', '==', slug).limit(2).get()
        for doc in docs:
            if doc.id != exclude_post_id:
                logging.info(f"slug 충돌: '{slug}' (기존 게시글 ID: {doc.id})")
                raise SlugConflict()
