# app/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, g, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.local import LocalProxy
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정 및 공통 예외
from app.core.config import ContentLimits, config_by_name
from app.core.exceptions import BackendError, BlogError, Unauthenticated
from app.core.session import SessionContext

# - API 블루프린트
from app.api.auth.routes import auth_bp
from app.api.profiles.routes import profiles_bp
from app.api.posts.routes import posts_bp
from app.api.uploads.routes import uploads_bp
from app.api.site.routes import site_bp

# - 서비스 모듈
from app.services.firebase_auth_service import FirebaseAuthService
from app.services.image_service import ImageService
from app.services.slug_service import SlugAllocator
from app.api.profiles.services import ProfileService
from app.api.posts.services import PostService


def _request_session():
    """현재 요청의 SessionContext. before_request 훅에서 만들어집니다."""
    return g.session


def create_app(config_name=None, db=None, auth_provider=None, http=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production'. 없으면 FLASK_ENV를 사용합니다.
    :param db: Firestore 클라이언트. 없으면 firebase_admin을 초기화해 기본 클라이언트를 사용합니다.
    :param auth_provider: 인증 제공자. 없으면 FirebaseAuthService를 사용합니다.
    :param http: 외부 REST 호출(Identity Toolkit, Cloudinary)에 사용할 requests 세션
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 외부 서비스 초기화
    # =====================================================================================
    if db is None:
        if not firebase_admin._apps:
            cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
            if not cred_path or not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
            cred = credentials.Certificate(cred_path)
            firebase_admin.initialize_app(cred)
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 인증 제공자와 세션 컨텍스트 (다른 서비스의 기반)
    # 세션은 요청마다 새로 만들어지며, 서비스에는 현재 요청의 세션을 가리키는 프록시를 주입합니다.
    if auth_provider is None:
        auth_provider = FirebaseAuthService(http=http)
        auth_provider.init_app(app)
    app.services['auth'] = auth_provider
    app.services['session'] = LocalProxy(_request_session)

    # 5-2. 도메인 서비스
    limits = ContentLimits.from_config(app.config)
    app.services['slugs'] = SlugAllocator(db)
    app.services['profiles'] = ProfileService(app.services['session'], limits=limits, db=db)
    app.services['posts'] = PostService(
        app.services['session'],
        slugs=app.services['slugs'],
        limits=limits,
        posts_per_page=app.config['POSTS_PER_PAGE'],
        db=db
    )

    try:
        image_instance = ImageService(session=app.services['session'], http=http)
        image_instance.init_app(app)
        app.services['images'] = image_instance
        logging.info("Image service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize image service: {e}")
        raise

    # 5-3. 요청 단위 로그인 상태
    @app.before_request
    def load_request_session():
        """
        Authorization: Bearer <Firebase ID 토큰> 헤더를 검증해 이 요청의 세션을 만듭니다.
        헤더가 없으면 로그아웃 상태의 세션이고, 토큰이 유효하지 않으면 401을 반환합니다.
        """
        provider = app.services['auth'].bind()
        g.auth = provider
        g.session = SessionContext(provider, admin_uids=app.config['ADMIN_UIDS'])

        auth_header = request.headers.get('Authorization')
        if not auth_header:
            provider.initialize()
            return None
        if not auth_header.startswith('Bearer '):
            raise Unauthenticated("Authorization 헤더 형식이 올바르지 않습니다.")

        try:
            provider.restore_session(auth_header.split(' ', 1)[1].strip())
        except BackendError as e:
            raise Unauthenticated("유효하지 않은 토큰입니다.") from e
        return None

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(profiles_bp, url_prefix='/api/profiles')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(site_bp, url_prefix='/api/site')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(BlogError)
    def handle_blog_error(err):
        if err.status_code >= 500:
            logging.error(f"{err.error_code}: {err.message}")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        response = {"error_code": err.name.upper().replace(' ', '_'), "message": err.description}
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
