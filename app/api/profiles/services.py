# app/api/profiles/services.py
import logging
from typing import Any, Mapping, Optional

from firebase_admin import firestore

from app.core.config import ContentLimits
from app.core.exceptions import translate_backend_errors
from app.core.session import SessionContext
from app.models.identity import Identity
from app.models.profile import Profile
from app.schemas.validation import validate_profile_fields


class ProfileService:
    """
    사용자 프로필 관련 비즈니스 로직을 담당하는 서비스 클래스.
    프로필 문서 ID는 소유자의 uid이며, 본인만 수정할 수 있습니다.
    """
    def __init__(self, session: SessionContext, limits: Optional[ContentLimits] = None, db=None):
        self.session = session
        self.limits = limits or ContentLimits()
        self.db = db or firestore.client()
        self.profiles_ref = self.db.collection('profiles')

    @translate_backend_errors
    def get_profile(self, uid: str) -> Optional[Profile]:
        """공개 프로필을 조회합니다. 로그인이 필요하지 않습니다."""
        doc = self.profiles_ref.document(uid).get()
        if not doc.exists:
            return None
        return Profile.from_snapshot(doc)

    @translate_backend_errors
    def get_or_create_profile(self, identity: Identity) -> Profile:
        """프로필이 없으면 인증 정보의 표시 이름/사진으로 기본 프로필을 만들어 반환합니다."""
        profile = self.get_profile(identity.uid)
        if profile:
            return profile

        document = Profile.defaults_for(identity).to_document()
        document['createdAt'] = firestore.SERVER_TIMESTAMP
        document['updatedAt'] = firestore.SERVER_TIMESTAMP

        profile_ref = self.profiles_ref.document(identity.uid)
        profile_ref.set(document)
        logging.info(f"기본 프로필 생성 완료 (uid: {identity.uid})")
        return Profile.from_snapshot(profile_ref.get())

    @translate_backend_errors
    def update_my_profile(self, partial: Mapping[str, Any]) -> Profile:
        """
        현재 로그인한 사용자의 프로필을 부분 병합(merge)으로 수정합니다.
        입력에 없는 필드는 저장소에서도 그대로 유지됩니다.
        """
        identity = self.session.require_auth()
        update_data = validate_profile_fields(partial, self.limits).to_document()
        update_data['updatedAt'] = firestore.SERVER_TIMESTAMP

        profile_ref = self.profiles_ref.document(identity.uid)
        profile_ref.set(update_data, merge=True)
        logging.info(f"프로필 수정 완료 (uid: {identity.uid}, fields: {sorted(update_data)})")
        return Profile.from_snapshot(profile_ref.get())

    @staticmethod
    def is_profile_complete(profile: Optional[Profile]) -> bool:
        """표시 이름과 소개가 모두 채워져 있으면 True."""
        return bool(profile and profile.is_complete)
