# app/api/posts/test_post_service.py
"""
게시글 서비스 테스트 (메모리 Firestore 사용)

사용법: python -m pytest app/api/posts/test_post_service.py -v
"""

import threading

import pytest
from google.api_core import exceptions as google_exceptions

from app.api.posts.services import PostService
from app.core.exceptions import Forbidden, InvalidStatus, NotFound, RequiredFieldMissing, SlugConflict, Unauthenticated
from app.services.slug_service import SlugAllocator


@pytest.fixture
def post_service(db, session, limits):
    return PostService(session, slugs=SlugAllocator(db), limits=limits, posts_per_page=3, db=db)


@pytest.fixture
def as_admin(auth_provider, admin):
    return auth_provider.sign_in_as(admin)


def _create(post_service, title, **fields):
    return post_service.create_post({'title': title, 'contentHtml': f'<p>{title}</p>', **fields})


# --- 생성 ---

def test_create_post_applies_defaults(post_service, as_admin):
    post = _create(post_service, '  첫 글  ')

    assert post.post_id
    assert post.title == '첫 글'
    assert post.tags == []
    assert post.status == 'draft'
    assert post.cover_url == ''
    assert post.slug == ''
    assert post.author_id == as_admin.uid
    assert post.created_at is not None
    assert post.created_at == post.updated_at


def test_create_post_can_start_published(post_service, as_admin):
    post = _create(post_service, '공개 글', status='published', tags=['python'])
    assert post.is_published
    assert post.tags == ['python']


def test_create_post_requires_sign_in(post_service, auth_provider):
    auth_provider.sign_out()
    with pytest.raises(Unauthenticated):
        _create(post_service, '제목')


def test_create_post_requires_admin(post_service, auth_provider, reader):
    auth_provider.sign_in_as(reader)
    with pytest.raises(Forbidden):
        _create(post_service, '제목')


def test_authorization_is_checked_before_validation(post_service, auth_provider, reader):
    auth_provider.sign_in_as(reader)
    with pytest.raises(Forbidden):
        post_service.create_post({})


def test_create_post_validates(post_service, as_admin, db):
    with pytest.raises(RequiredFieldMissing):
        post_service.create_post({'title': '제목만'})
    with pytest.raises(InvalidStatus):
        _create(post_service, '제목', status='archived')
    assert db.collection('posts').docs == {}


# --- slug ---

def test_duplicate_slug_is_rejected_until_first_post_is_deleted(post_service, as_admin, db):
    first = _create(post_service, '원본', slug='my-post')

    with pytest.raises(SlugConflict):
        _create(post_service, '중복', slug='my-post')
    assert len(db.collection('posts').docs) == 1

    post_service.delete_post(first.post_id)
    second = _create(post_service, '다시', slug='my-post')
    assert second.slug == 'my-post'


def test_update_keeps_own_slug_and_rejects_taken_slug(post_service, as_admin):
    first = _create(post_service, '첫 글', slug='first')
    _create(post_service, '둘째 글', slug='second')

    assert post_service.update_post(first.post_id, {'slug': 'first', 'title': '수정'}).title == '수정'
    with pytest.raises(SlugConflict):
        post_service.update_post(first.post_id, {'slug': 'second'})


def test_empty_slugs_never_conflict(post_service, as_admin):
    _create(post_service, '하나')
    _create(post_service, '둘', slug='')
    assert len(post_service.list_mine()[0]) == 2


def test_concurrent_creates_with_same_slug_can_both_pass(post_service, as_admin, db, monkeypatch):
    """확인 후 저장 방식이므로 동시에 같은 slug로 만들면 둘 다 저장될 수 있습니다."""
    barrier = threading.Barrier(2)
    real_check = post_service.slugs.ensure_unique

    def check_then_wait(slug, exclude_post_id=None):
        real_check(slug, exclude_post_id)
        barrier.wait(timeout=5)

    monkeypatch.setattr(post_service.slugs, 'ensure_unique', check_then_wait)

    errors = []

    def worker(title):
        try:
            _create(post_service, title, slug='race')
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(title,)) for title in ('A', 'B')]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    slugs = [doc['slug'] for doc in db.collection('posts').docs.values()]
    assert slugs == ['race', 'race']

    monkeypatch.undo()
    with pytest.raises(SlugConflict):
        _create(post_service, 'C', slug='race')


# --- 조회 ---

def test_get_post_by_id_or_slug(post_service, as_admin):
    post = _create(post_service, '조회', slug='lookup-me')

    assert post_service.get_post_by_id_or_slug(post.post_id).post_id == post.post_id
    assert post_service.get_post_by_id_or_slug('lookup-me').post_id == post.post_id
    assert post_service.get_post_by_id_or_slug('nothing-here') is None
    assert post_service.get_post_by_id_or_slug('') is None
    assert post_service.get_post_by_id_or_slug('a/b') is None


@pytest.fixture
def strict_document_ids(post_service, monkeypatch):
    """Firestore처럼 문서 ID로 쓸 수 없는 값이 들어오면 InvalidArgument를 발생시킵니다."""
    real_document = post_service.posts_ref.document

    def document(doc_id=None):
        if doc_id is not None and (doc_id in ('.', '..') or doc_id.startswith('__') or len(doc_id) > 1500):
            raise google_exceptions.InvalidArgument(f'invalid document id: {doc_id[:20]}')
        return real_document(doc_id)

    monkeypatch.setattr(post_service.posts_ref, 'document', document)


@pytest.mark.parametrize('key', ['.', '..', '__name__', 'a' * 1501])
def test_keys_that_cannot_be_document_ids_are_not_found(post_service, strict_document_ids, key):
    assert post_service.get_post_by_id_or_slug(key) is None


def test_invalid_cursor_restarts_from_first_page(post_service, as_admin, strict_document_ids):
    _create(post_service, '첫 페이지', status='published')
    posts, _ = post_service.list_published(cursor='..')
    assert [p.title for p in posts] == ['첫 페이지']


def test_short_slug_is_found(post_service, as_admin):
    post = _create(post_service, '짧은 slug', slug='a')
    assert post_service.get_post_by_id_or_slug('a').post_id == post.post_id


def test_list_published_is_newest_first_and_paginated(post_service, as_admin):
    created = [_create(post_service, f'글 {i}', status='published') for i in range(5)]
    _create(post_service, '초안')

    first_page, cursor = post_service.list_published()
    assert [p.title for p in first_page] == ['글 4', '글 3', '글 2']

    second_page, cursor = post_service.list_published(cursor=cursor)
    assert [p.post_id for p in second_page] == [created[1].post_id, created[0].post_id]

    third_page, cursor = post_service.list_published(cursor=cursor)
    assert third_page == []
    assert cursor is None


def test_list_published_filters_by_tag(post_service, as_admin):
    _create(post_service, '파이썬', status='published', tags=['python'])
    _create(post_service, '플라스크', status='published', tags=['python', 'flask'])
    _create(post_service, '초안', tags=['python'])

    posts, _ = post_service.list_published(limit=10, tag='flask')
    assert [p.title for p in posts] == ['플라스크']
    posts, _ = post_service.list_published(limit=10, tag='python')
    assert [p.title for p in posts] == ['플라스크', '파이썬']


def test_list_mine_includes_drafts_of_current_admin_only(post_service, auth_provider, admin, other_admin):
    auth_provider.sign_in_as(admin)
    _create(post_service, '내 초안')
    auth_provider.sign_in_as(other_admin)
    _create(post_service, '남의 글', status='published')

    auth_provider.sign_in_as(admin)
    posts, _ = post_service.list_mine()
    assert [p.title for p in posts] == ['내 초안']


def test_get_all_tags_collects_published_posts(post_service, as_admin):
    _create(post_service, '하나', status='published', tags=['b', 'a'])
    _create(post_service, '둘', status='published', tags=['c', 'a'])
    _create(post_service, '초안', tags=['hidden'])
    assert post_service.get_all_tags() == ['a', 'b', 'c']


# --- 수정/상태 전환/삭제 ---

def test_update_is_partial(post_service, as_admin):
    post = _create(post_service, '원래 제목', tags=['x'])
    updated = post_service.update_post(post.post_id, {'title': '새 제목'})

    assert updated.title == '새 제목'
    assert updated.tags == ['x']
    assert updated.content_html == post.content_html
    assert updated.author_id == post.author_id
    assert updated.updated_at > post.updated_at
    assert updated.created_at == post.created_at


def test_update_by_slug_targets_real_document(post_service, as_admin, db):
    post = _create(post_service, '슬러그 글', slug='by-slug')
    post_service.update_post('by-slug', {'title': '바뀜'})
    assert db.collection('posts').docs[post.post_id]['title'] == '바뀜'
    assert 'by-slug' not in db.collection('posts').docs


def test_author_id_cannot_be_changed(post_service, as_admin):
    post = _create(post_service, '작성자 고정')
    updated = post_service.update_post(post.post_id, {'authorId': 'someone-else'})
    assert updated.author_id == as_admin.uid


def test_publish_and_unpublish(post_service, as_admin):
    post = _create(post_service, '상태 전환')
    assert post_service.publish_post(post.post_id).status == 'published'
    assert post_service.unpublish_post(post.post_id).status == 'draft'


def test_non_author_admin_is_forbidden(post_service, auth_provider, admin, other_admin, db):
    auth_provider.sign_in_as(admin)
    post = _create(post_service, '관리자 글')

    auth_provider.sign_in_as(other_admin)
    with pytest.raises(Forbidden):
        post_service.update_post(post.post_id, {'title': '탈취'})
    with pytest.raises(Forbidden):
        post_service.publish_post(post.post_id)
    with pytest.raises(Forbidden):
        post_service.delete_post(post.post_id)

    assert db.collection('posts').docs[post.post_id]['title'] == '관리자 글'


def test_missing_post_is_not_found(post_service, as_admin):
    with pytest.raises(NotFound):
        post_service.update_post('missing', {'title': 'x'})
    with pytest.raises(NotFound):
        post_service.delete_post('missing')


def test_delete_is_irreversible(post_service, as_admin):
    post = _create(post_service, '삭제될 글')
    post_service.delete_post(post.post_id)

    assert post_service.get_post_by_id_or_slug(post.post_id) is None
    with pytest.raises(NotFound):
        post_service.delete_post(post.post_id)
