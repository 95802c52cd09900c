# app/services/firebase_auth_service.py

import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import requests
from firebase_admin import auth as firebase_auth
from flask import Flask

from app.core.exceptions import BackendError, backend_error_message
from app.models.identity import Identity


class FirebaseAuthService:
    """
    Firebase Authentication과의 통신을 담당하는 서비스 클래스입니다.

    - 이메일/비밀번호 및 외부 제공자(GitHub 등) 로그인은 Identity Toolkit REST API를 사용합니다.
    - 전달받은 ID 토큰의 검증은 firebase_admin.auth로 처리합니다.
    - 로그인 상태가 바뀔 때마다 on_auth_state_changed로 등록된 리스너에 알립니다.
    - 앱에 등록된 인스턴스는 설정만 보관하고, 요청마다 bind()로 만든 인스턴스가 그 요청의 로그인 상태를 가집니다.
    """
    _identity_toolkit_url = "https://identitytoolkit.googleapis.com/v1/accounts"

    # REST API 오류 메시지 -> 공통 오류 코드
    _rest_error_codes = {
        'EMAIL_NOT_FOUND': 'auth/user-not-found',
        'INVALID_PASSWORD': 'auth/wrong-password',
        'INVALID_LOGIN_CREDENTIALS': 'auth/invalid-credential',
        'EMAIL_EXISTS': 'auth/email-already-in-use',
        'WEAK_PASSWORD': 'auth/weak-password',
        'INVALID_EMAIL': 'auth/invalid-email',
        'MISSING_EMAIL': 'auth/invalid-email',
        'USER_DISABLED': 'auth/user-disabled',
        'TOO_MANY_ATTEMPTS_TRY_LATER': 'auth/too-many-requests',
        'INVALID_IDP_RESPONSE': 'auth/invalid-credential',
    }

    def __init__(self, api_key: Optional[str] = None, http: Optional[requests.Session] = None):
        self.api_key = api_key
        self.http = http or requests.Session()
        self._reset_state()

    def _reset_state(self):
        self._identity: Optional[Identity] = None
        self._initialized = False
        self._listeners: List[Callable[[Optional[Identity]], None]] = []
        self._lock = threading.Lock()

    def bind(self) -> 'FirebaseAuthService':
        """
        같은 설정(API 키, HTTP 세션)을 쓰는 새 인스턴스를 만듭니다.
        로그인 상태와 리스너는 공유하지 않으므로 요청 하나의 로그인 상태를 담는 데 사용합니다.
        """
        bound = copy.copy(self)
        bound._reset_state()
        return bound

    def init_app(self, app: Flask):
        """Flask 앱 초기화 과정에서 호출되어 API 키를 설정합니다."""
        self.api_key = app.config.get('FIREBASE_API_KEY')
        if not self.api_key:
            logging.warning("FirebaseAuthService: FIREBASE_API_KEY가 없어 이메일/외부 제공자 로그인을 사용할 수 없습니다.")

    # --- 상태 구독 ---
    @property
    def is_initialized(self) -> bool:
        """첫 로그인 상태가 확정되었는지 여부 (동기 확인용)."""
        return self._initialized

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    def on_auth_state_changed(self, callback: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        """
        로그인 상태 변경 리스너를 등록합니다.
        이미 초기화가 끝난 상태라면 현재 값을 즉시 한 번 전달합니다.
        """
        with self._lock:
            self._listeners.append(callback)
            initialized, current = self._initialized, self._identity
        if initialized:
            callback(current)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)
        return unsubscribe

    def _set_identity(self, identity: Optional[Identity]):
        with self._lock:
            self._identity = identity
            self._initialized = True
            listeners = list(self._listeners)
        for callback in listeners:
            callback(identity)

    def initialize(self, id_token: Optional[str] = None) -> Optional[Identity]:
        """
        앱 시작 시 한 번 호출되어 로그인 상태를 확정합니다.
        저장된 ID 토큰이 있으면 검증해 세션을 복원하고, 없으면 로그아웃 상태로 확정합니다.
        """
        if id_token:
            try:
                return self.restore_session(id_token)
            except BackendError as e:
                logging.warning(f"저장된 세션 복원 실패, 로그아웃 상태로 시작합니다: {e.message}")
        self._set_identity(None)
        return None

    # --- 로그인/로그아웃 ---
    def verify_id_token(self, id_token: str) -> Identity:
        """ID 토큰을 검증해 Identity를 만듭니다. 로그인 상태는 바꾸지 않습니다."""
        try:
            claims = firebase_auth.verify_id_token(id_token)
        except (firebase_auth.InvalidIdTokenError, ValueError) as e:
            logging.warning(f"ID 토큰 검증 실패: {e}")
            raise BackendError('auth/invalid-id-token') from e
        return Identity(
            uid=claims['uid'],
            display_name=claims.get('name', ''),
            email=claims.get('email', ''),
            photo_url=claims.get('picture', ''),
            id_token=id_token,
        )

    def restore_session(self, id_token: str) -> Identity:
        """클라이언트가 보관하던 ID 토큰을 검증해 세션을 복원합니다."""
        identity = self.verify_id_token(id_token)
        self._set_identity(identity)
        return identity

    def sign_in_with_email(self, email: str, password: str) -> Identity:
        payload = self._post('signInWithPassword', {
            'email': email, 'password': password, 'returnSecureToken': True
        })
        return self._sign_in(payload)

    def sign_up_with_email(self, email: str, password: str) -> Identity:
        payload = self._post('signUp', {
            'email': email, 'password': password, 'returnSecureToken': True
        })
        return self._sign_in(payload)

    def sign_in_with_provider(self, provider_id: str, access_token: str,
                              request_uri: str = 'http://localhost') -> Identity:
        """
        외부 제공자(예: 'github.com', 'google.com')의 OAuth access token으로 로그인합니다.
        """
        payload = self._post('signInWithIdp', {
            'postBody': f"access_token={access_token}&providerId={provider_id}",
            'requestUri': request_uri,
            'returnIdpCredential': True,
            'returnSecureToken': True,
        })
        return self._sign_in(payload)

    def send_password_reset_email(self, email: str) -> None:
        self._post('sendOobCode', {'requestType': 'PASSWORD_RESET', 'email': email})
        logging.info("비밀번호 재설정 메일 발송 요청 완료")

    def sign_out(self) -> None:
        self._set_identity(None)

    # --- 내부 도우미 ---
    def _sign_in(self, payload: Dict[str, Any]) -> Identity:
        identity = Identity(
            uid=payload['localId'],
            display_name=payload.get('displayName', ''),
            email=payload.get('email', ''),
            photo_url=payload.get('photoUrl', ''),
            id_token=payload.get('idToken'),
            refresh_token=payload.get('refreshToken'),
        )
        self._set_identity(identity)
        logging.info(f"로그인 성공 (uid: {identity.uid})")
        return identity

    def _post(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._identity_toolkit_url}:{method}"
        try:
            response = self.http.post(url, params={'key': self.api_key}, json=payload)
        except requests.RequestException as e:
            logging.error(f"Identity Toolkit 요청 실패 ({method}): {e}", exc_info=True)
            raise BackendError('unavailable') from e

        if not response.ok:
            try:
                rest_message = response.json().get('error', {}).get('message', '')
            except ValueError:
                rest_message = ''
            code = self.error_code_for(rest_message)
            logging.warning(f"Identity Toolkit 오류 ({method}): {response.status_code} {rest_message}")
            raise BackendError(code, backend_error_message(code, rest_message or None))
        return response.json()

    @classmethod
    def error_code_for(cls, rest_message: str) -> str:
        """'WEAK_PASSWORD : Password should be ...' 형태의 메시지에서 오류 코드를 추출합니다."""
        key = rest_message.split(':')[0].strip()
        return cls._rest_error_codes.get(key, key.lower().replace('_', '-') or 'unknown')
