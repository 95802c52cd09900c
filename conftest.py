# conftest.py
"""
공용 pytest 픽스처

- FakeFirestore: 서비스가 사용하는 범위(document/set/update/delete/where/order_by/limit/start_after)만
  흉내 내는 메모리 Firestore. SERVER_TIMESTAMP는 저장 시점에 단조 증가하는 시간으로 바뀝니다.
- ScriptedAuthProvider: 네트워크 없이 로그인 상태를 바꿀 수 있는 인증 제공자
- FakeHttp: requests 세션 대신 미리 정한 응답을 돌려주고 호출 내역을 기록합니다.
"""

import itertools
import json
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
import requests
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from app import create_app
from app.core.config import ContentLimits
from app.core.session import SessionContext
from app.models.identity import Identity
from app.services.firebase_auth_service import FirebaseAuthService

ADMIN = Identity(uid='admin-uid', display_name='관리자', email='admin@example.com')
OTHER_ADMIN = Identity(uid='other-admin-uid', display_name='다른 관리자', email='other@example.com')
READER = Identity(uid='reader-uid', display_name='독자', email='reader@example.com')
ADMIN_UIDS = (ADMIN.uid, OTHER_ADMIN.uid)


# =====================================================================================
# Firestore 대역
# =====================================================================================
class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def get(self):
        with self._collection.db.lock:
            return FakeSnapshot(self, self._collection.docs.get(self.id))

    def set(self, data, merge=False):
        with self._collection.db.lock:
            values = self._collection.db.resolve(data)
            current = self._collection.docs.get(self.id)
            if merge and current is not None:
                values = {**current, **values}
            self._collection.docs[self.id] = values

    def update(self, data):
        with self._collection.db.lock:
            current = self._collection.docs.get(self.id)
            if current is None:
                raise google_exceptions.NotFound(f"No document to update: {self.id}")
            self._collection.docs[self.id] = {**current, **self._collection.db.resolve(data)}

    def delete(self):
        with self._collection.db.lock:
            self._collection.docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, collection, filters=(), order=None, limit_count=None, after=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit_count
        self._after = after

    def _copy(self, **changes):
        values = dict(filters=self._filters, order=self._order, limit_count=self._limit, after=self._after)
        values.update(changes)
        return FakeQuery(self._collection, **values)

    def where(self, field, op, value):
        if op not in ('==', 'array_contains'):
            raise NotImplementedError(op)
        return self._copy(filters=self._filters + ((field, op, value),))

    def order_by(self, field, direction=firestore.Query.ASCENDING):
        return self._copy(order=(field, direction))

    def limit(self, count):
        return self._copy(limit_count=count)

    def start_after(self, snapshot):
        return self._copy(after=snapshot.id)

    def _matches(self, data):
        for field, op, value in self._filters:
            if op == '==' and data.get(field) != value:
                return False
            if op == 'array_contains' and value not in (data.get(field) or []):
                return False
        return True

    def stream(self):
        with self._collection.db.lock:
            rows = [(doc_id, dict(data)) for doc_id, data in self._collection.docs.items() if self._matches(data)]

        if self._order:
            field, direction = self._order
            rows = [row for row in rows if row[1].get(field) is not None]
            rows.sort(key=lambda row: row[1][field], reverse=direction == firestore.Query.DESCENDING)
        if self._after is not None:
            ids = [doc_id for doc_id, _ in rows]
            rows = rows[ids.index(self._after) + 1:] if self._after in ids else rows
        if self._limit is not None:
            rows = rows[:self._limit]

        for doc_id, data in rows:
            yield FakeSnapshot(self._collection.document(doc_id), data)

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id=None):
        return FakeDocumentRef(self, doc_id or uuid.uuid4().hex[:20])


class FakeFirestore:
    def __init__(self):
        self.lock = threading.RLock()
        self._collections = {}
        self._clock = itertools.count(1)
        self.epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def collection(self, name):
        with self.lock:
            if name not in self._collections:
                self._collections[name] = FakeCollection(self, name)
            return self._collections[name]

    def resolve(self, data):
        """SERVER_TIMESTAMP 센티널을 저장 시각으로 바꿉니다. 호출마다 1초씩 증가합니다."""
        stamp = None
        resolved = {}
        for key, value in data.items():
            if value is firestore.SERVER_TIMESTAMP:
                if stamp is None:
                    stamp = self.epoch + timedelta(seconds=next(self._clock))
                value = stamp
            resolved[key] = value
        return resolved


# =====================================================================================
# 인증/HTTP 대역
# =====================================================================================
class ScriptedAuthProvider(FirebaseAuthService):
    """
    네트워크 없이 로그인 상태를 직접 바꿀 수 있는 인증 제공자.
    'token-<uid>' 형태의 ID 토큰은 미리 등록된 사용자로 검증됩니다.
    """
    known_identities = {identity.uid: identity for identity in (ADMIN, OTHER_ADMIN, READER)}

    def sign_in_as(self, identity):
        self._set_identity(identity)
        return identity

    def verify_id_token(self, id_token):
        uid = id_token[len('token-'):] if id_token.startswith('token-') else None
        if uid in self.known_identities:
            return replace(self.known_identities[uid], id_token=id_token)
        return super().verify_id_token(id_token)


def token_for(identity):
    return f'token-{identity.uid}'


class FakeHttp:
    """requests.Session 대역. post() 호출을 기록하고 준비된 응답을 순서대로 돌려줍니다."""

    def __init__(self):
        self.calls = []
        self._responses = []

    def queue(self, status_code=200, payload=None, error=None):
        self._responses.append((status_code, payload, error))

    def post(self, url, **kwargs):
        self.calls.append({'url': url, **kwargs})
        status_code, payload, error = self._responses.pop(0)
        if error is not None:
            raise error
        response = requests.Response()
        response.status_code = status_code
        response._content = json.dumps(payload or {}).encode('utf-8')
        return response


# =====================================================================================
# 픽스처
# =====================================================================================
@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def auth_provider(http):
    provider = ScriptedAuthProvider(api_key='test-api-key', http=http)
    provider.initialize()
    return provider


@pytest.fixture
def session(auth_provider):
    return SessionContext(auth_provider, admin_uids=ADMIN_UIDS)


@pytest.fixture
def limits():
    return ContentLimits()


@pytest.fixture
def app(db, http):
    provider = ScriptedAuthProvider(http=http)
    app = create_app('testing', db=db, auth_provider=provider, http=http)
    provider.init_app(app)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def other_admin():
    return OTHER_ADMIN


@pytest.fixture
def reader():
    return READER


@pytest.fixture
def sign_in(client):
    """client가 이후 요청에 해당 사용자의 Bearer 토큰을 보내도록 합니다. None이면 헤더를 제거합니다."""
    def _sign_in(identity):
        if identity is None:
            client.environ_base.pop('HTTP_AUTHORIZATION', None)
        else:
            client.environ_base['HTTP_AUTHORIZATION'] = f'Bearer {token_for(identity)}'
        return identity
    return _sign_in
