# app/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class PostStatus(Enum):
    """게시글 공개 상태. draft <-> published 사이에서만 전환됩니다."""
    DRAFT = "draft"
    PUBLISHED = "published"


# 파이썬 속성명 -> Firestore 문서 필드명
POST_DOCUMENT_KEYS = {
    'title': 'title',
    'content_html': 'contentHtml',
    'tags': 'tags',
    'status': 'status',
    'cover_url': 'coverUrl',
    'slug': 'slug',
    'author_id': 'authorId',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
}


@dataclass
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    post_id는 Firestore가 생성한 문서 ID이고, slug는 선택적인 보조 키입니다.
    """
    post_id: str
    title: str = ''
    content_html: str = ''
    author_id: str = ''
    tags: List[str] = field(default_factory=list)
    status: str = PostStatus.DRAFT.value
    cover_url: str = ''
    slug: str = ''
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_published(self) -> bool:
        return self.status == PostStatus.PUBLISHED.value

    def to_document(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in POST_DOCUMENT_KEYS.items()}

    @classmethod
    def from_document(cls, post_id: str, data: Dict[str, Any]) -> 'Post':
        values = {attr: data[key] for attr, key in POST_DOCUMENT_KEYS.items() if key in data}
        return cls(post_id=post_id, **values)

    @classmethod
    def from_snapshot(cls, snapshot) -> 'Post':
        return cls.from_document(snapshot.id, snapshot.to_dict() or {})
