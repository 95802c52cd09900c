# app/core/config.py

import os
from dataclasses import dataclass


def _env_list(key: str, default: str = '') -> list:
    """쉼표로 구분된 환경 변수 값을 리스트로 변환합니다."""
    raw = os.getenv(key, default)
    return [item.strip() for item in raw.split(',') if item.strip()]


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # Firebase 서비스 계정 키 파일 경로 (Firestore 접근 및 ID 토큰 검증에 사용)
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    # Identity Toolkit REST API 호출에 사용하는 웹 API 키
    FIREBASE_API_KEY = os.getenv('FIREBASE_API_KEY')

    # 글 작성/관리 권한을 가진 관리자 uid 목록
    ADMIN_UIDS = _env_list('ADMIN_UIDS')

    # Cloudinary 이미지 호스팅 설정
    CLOUDINARY_CLOUD_NAME = os.getenv('CLOUDINARY_CLOUD_NAME', '')
    CLOUDINARY_UPLOAD_PRESET = os.getenv('CLOUDINARY_UPLOAD_PRESET', 'blog_unsigned')

    # 사이트 설정
    SITE_NAME = os.getenv('SITE_NAME', '나의 블로그')
    SITE_DESCRIPTION = os.getenv('SITE_DESCRIPTION', '배움과 일상을 기록합니다')
    POSTS_PER_PAGE = int(os.getenv('POSTS_PER_PAGE', 10))

    # 업로드 제한
    MAX_IMAGE_SIZE = int(os.getenv('MAX_IMAGE_SIZE', 5 * 1024 * 1024))  # 5MB
    ALLOWED_IMAGE_TYPES = _env_list('ALLOWED_IMAGE_TYPES', 'image/jpeg,image/png,image/gif,image/webp')
    MAX_BATCH_FILES = int(os.getenv('MAX_BATCH_FILES', 5))
    # 요청 본문 최대 크기. 일괄 업로드 파일 수만큼의 이미지와 multipart 헤더 여유분(64KB)까지 허용하며,
    # 이를 넘는 요청은 본문을 읽기 전에 Werkzeug가 413으로 거절합니다.
    MAX_CONTENT_LENGTH = MAX_IMAGE_SIZE * MAX_BATCH_FILES + 64 * 1024

    # 입력값 길이 제한
    MAX_TITLE_LENGTH = int(os.getenv('MAX_TITLE_LENGTH', 120))
    MAX_TAG_LENGTH = int(os.getenv('MAX_TAG_LENGTH', 16))
    MAX_TAG_COUNT = int(os.getenv('MAX_TAG_COUNT', 10))
    MAX_DISPLAY_NAME_LENGTH = int(os.getenv('MAX_DISPLAY_NAME_LENGTH', 40))
    MAX_BIO_LENGTH = int(os.getenv('MAX_BIO_LENGTH', 500))

    # 렌더링 설정
    PREVIEW_LENGTH = int(os.getenv('PREVIEW_LENGTH', 150))
    WORDS_PER_MINUTE = int(os.getenv('WORDS_PER_MINUTE', 400))  # 읽기 시간 계산용


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다. 외부 서비스 값은 고정값을 사용합니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_API_KEY = 'test-api-key'
    ADMIN_UIDS = ['admin-uid', 'other-admin-uid']
    CLOUDINARY_CLOUD_NAME = 'demo-cloud'


class ProductionConfig(Config):
    """운영 환경 설정 클래스입니다."""
    DEBUG = False


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)


@dataclass(frozen=True)
class ContentLimits:
    """프로필/게시글 유효성 검사에 사용하는 길이 및 개수 제한값."""
    max_title_length: int = 120
    max_tag_length: int = 16
    max_tag_count: int = 10
    max_display_name_length: int = 40
    max_bio_length: int = 500

    @classmethod
    def from_config(cls, config) -> 'ContentLimits':
        """Flask app.config (또는 dict 형태의 설정)에서 제한값을 읽어옵니다."""
        return cls(
            max_title_length=config['MAX_TITLE_LENGTH'],
            max_tag_length=config['MAX_TAG_LENGTH'],
            max_tag_count=config['MAX_TAG_COUNT'],
            max_display_name_length=config['MAX_DISPLAY_NAME_LENGTH'],
            max_bio_length=config['MAX_BIO_LENGTH'],
        )
