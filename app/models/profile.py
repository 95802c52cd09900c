# app/models/profile.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.models.identity import Identity

# 파이썬 속성명 -> Firestore 문서 필드명
PROFILE_DOCUMENT_KEYS = {
    'display_name': 'displayName',
    'nickname': 'nickname',
    'bio': 'bio',
    'tags': 'tags',
    'photo_url': 'photoURL',
    'site_bg_url': 'siteBgUrl',
    'author_bg_url': 'authorBgUrl',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
}


@dataclass
class Profile:
    """
    Firestore 'profiles' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    문서 ID는 소유자의 uid와 같습니다.
    """
    uid: str
    display_name: str = ''
    nickname: str = ''
    bio: str = ''
    tags: List[str] = field(default_factory=list)
    photo_url: str = ''
    site_bg_url: str = ''
    author_bg_url: str = ''
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def defaults_for(cls, identity: Identity) -> 'Profile':
        """최초 접근 시 생성할 기본 프로필. 인증 정보의 표시 이름과 사진만 가져옵니다."""
        return cls(
            uid=identity.uid,
            display_name=identity.display_name or '',
            photo_url=identity.photo_url or '',
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.display_name and self.bio)

    def to_document(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in PROFILE_DOCUMENT_KEYS.items()}

    @classmethod
    def from_document(cls, uid: str, data: Dict[str, Any]) -> 'Profile':
        values = {attr: data[key] for attr, key in PROFILE_DOCUMENT_KEYS.items() if key in data}
        return cls(uid=uid, **values)

    @classmethod
    def from_snapshot(cls, snapshot) -> 'Profile':
        return cls.from_document(snapshot.id, snapshot.to_dict() or {})
