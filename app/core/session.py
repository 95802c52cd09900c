# app/core/session.py
"""
현재 로그인 사용자(Identity)를 보관하고 변경을 구독자에게 전달하는 세션 컨텍스트.

create_app()에서 한 번 생성되어 모든 서비스에 주입됩니다.
인증 제공자에는 생성 시점에 리스너를 정확히 하나만 등록하며,
identity 값은 그 리스너만 교체합니다.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from app.core.exceptions import Forbidden, Unauthenticated
from app.models.identity import Identity

IdentityListener = Callable[[Optional[Identity]], None]


class SessionContext:

    def __init__(self, auth_provider, admin_uids: Iterable[str] = ()):
        self.admin_uids = frozenset(admin_uids)
        self._identity: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []
        self._lock = threading.Lock()
        # 인증 제공자가 첫 상태 알림을 보내기 전까지는 로그인 여부를 알 수 없습니다.
        self._initialized = threading.Event()
        self._provider_unsubscribe = auth_provider.on_auth_state_changed(self._handle_auth_state)

    def _handle_auth_state(self, identity: Optional[Identity]):
        with self._lock:
            self._identity = identity
            listeners = list(self._listeners)
        self._initialized.set()
        logging.info(f"인증 상태 변경: {identity.uid if identity else '로그아웃'}")
        for callback in listeners:
            callback(identity)

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_initialized(self) -> bool:
        return self._initialized.is_set()

    def subscribe(self, callback: IdentityListener) -> Callable[[], None]:
        """
        인증 상태 변경을 구독합니다. 등록 즉시 현재 값을 한 번 전달합니다.

        :return: 구독 해제 함수 (여러 번 호출해도 안전합니다)
        """
        with self._lock:
            self._listeners.append(callback)
            current = self._identity
        callback(current)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)
        return unsubscribe

    def wait_until_initialized(self) -> Optional[Identity]:
        """인증 제공자의 첫 상태 알림을 기다린 뒤 현재 identity를 반환합니다. 시간 제한은 없습니다."""
        self._initialized.wait()
        return self._identity

    def is_authenticated(self) -> bool:
        return self._identity is not None

    def is_admin(self, identity: Optional[Identity] = None) -> bool:
        identity = identity or self._identity
        return identity is not None and identity.uid in self.admin_uids

    def require_auth(self) -> Identity:
        """로그인된 identity를 반환합니다. 없으면 Unauthenticated."""
        identity = self.wait_until_initialized()
        if identity is None:
            raise Unauthenticated()
        return identity

    def require_admin(self) -> Identity:
        """관리자 허용 목록에 있는 identity를 반환합니다. 아니면 Forbidden."""
        identity = self.require_auth()
        if not self.is_admin(identity):
            raise Forbidden("관리자 권한이 필요합니다.")
        return identity
