# app/models/identity.py
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Identity:
    """
    인증 제공자(Firebase Auth)가 발급한 현재 사용자 정보.
    이 시스템은 읽기만 하며, 토큰 값은 메모리에만 보관합니다.
    """
    uid: str
    display_name: str = ''
    email: str = ''
    photo_url: str = ''
    id_token: Optional[str] = field(default=None, repr=False, compare=False)
    refresh_token: Optional[str] = field(default=None, repr=False, compare=False)

    @property
    def label(self) -> str:
        """화면 표시용 이름. 표시 이름이 없으면 이메일을 사용합니다."""
        return self.display_name or self.email or 'Anonymous'
