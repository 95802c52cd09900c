# app/services/image_service.py
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests
from flask import Flask

from app.core.exceptions import BlogError, FileTooLarge, InvalidFile, UploadFailed


@dataclass(frozen=True)
class UploadFile:
    """업로드할 이미지 파일. 라우트에서 Werkzeug FileStorage로부터 만들어집니다."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_storage(cls, storage) -> 'UploadFile':
        return cls(
            filename=storage.filename or '',
            content_type=storage.mimetype or '',
            data=storage.read(),
        )


@dataclass(frozen=True)
class UploadedImage:
    """이미지 호스트가 돌려준 업로드 결과."""
    url: str
    derived_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    byte_size: Optional[int] = None


_upload_path = re.compile(r'/upload/(?:v\d+/)?(.+)$')


class ImageService:
    """
    Cloudinary 이미지 업로드 및 변환 URL 생성을 담당하는 서비스 클래스입니다.
    파일 형식/크기 검사는 네트워크 요청 전에 수행합니다.
    """
    _api_base_url = "https://api.cloudinary.com/v1_1"
    _delivery_base_url = "https://res.cloudinary.com"

    def __init__(self, session=None, http: Optional[requests.Session] = None):
        """
        :param session: 현재 사용자를 확인할 SessionContext (업로드 폴더 이름에 uid 사용)
        :param http: HTTP 세션. 테스트에서 교체할 수 있습니다.
        """
        self.session = session
        self.http = http or requests.Session()
        self.cloud_name = ''
        self.upload_preset = ''
        self.max_image_size = 5 * 1024 * 1024
        self.allowed_image_types: List[str] = ['image/jpeg', 'image/png', 'image/gif', 'image/webp']

    def init_app(self, app: Flask):
        """Flask 앱 초기화 과정에서 호출되어 Cloudinary 설정과 업로드 제한을 읽어옵니다."""
        self.cloud_name = app.config.get('CLOUDINARY_CLOUD_NAME', '')
        self.upload_preset = app.config.get('CLOUDINARY_UPLOAD_PRESET', '')
        self.max_image_size = app.config.get('MAX_IMAGE_SIZE', self.max_image_size)
        self.allowed_image_types = list(app.config.get('ALLOWED_IMAGE_TYPES', self.allowed_image_types))
        if not self.cloud_name:
            logging.warning("ImageService: CLOUDINARY_CLOUD_NAME이 설정되지 않아 업로드를 사용할 수 없습니다.")
        logging.info("ImageService: Cloudinary 설정이 초기화되었습니다.")

    # =====================================================================================
    # 업로드
    # =====================================================================================
    def validate_image_file(self, file: Optional[UploadFile]):
        """업로드 전 파일 형식과 크기를 검사합니다."""
        if file is None:
            raise InvalidFile("파일을 선택해주세요.")
        if file.content_type not in self.allowed_image_types:
            raise InvalidFile(f"지원하지 않는 파일 형식입니다. 지원 형식: {', '.join(self.allowed_image_types)}")
        if file.size > self.max_image_size:
            max_size_mb = round(self.max_image_size / 1024 / 1024)
            raise FileTooLarge(f"파일 크기는 {max_size_mb}MB를 넘을 수 없습니다.")

    def upload_image(self, file: Optional[UploadFile], category: str = 'uploads') -> UploadedImage:
        """
        이미지를 Cloudinary에 업로드합니다.

        :param file: 업로드할 파일
        :param category: 저장 폴더 (예: 'avatars', 'covers'). 로그인 상태면 하위에 uid 폴더를 사용합니다.
        :return: 원본 URL과 메타데이터
        """
        self.validate_image_file(file)

        identity = self.session.current_identity if self.session else None
        folder = f"{category}/{identity.uid}" if identity else category
        upload_url = f"{self._api_base_url}/{self.cloud_name}/image/upload"

        try:
            response = self.http.post(
                upload_url,
                data={
                    'upload_preset': self.upload_preset,
                    'folder': folder,
                    'resource_type': 'image',
                },
                files={'file': (file.filename, file.data, file.content_type)},
            )
        except requests.RequestException as e:
            logging.error(f"이미지 업로드 요청 실패: {e}", exc_info=True)
            raise UploadFailed(str(e)) from e

        if not response.ok:
            try:
                message = response.json().get('error', {}).get('message')
            except ValueError:
                message = None
            logging.warning(f"이미지 업로드 거부됨: {response.status_code} {message}")
            raise UploadFailed(message or f"업로드 실패: {response.status_code}")

        result = response.json()
        if not result.get('secure_url'):
            raise UploadFailed("업로드 응답에 이미지 URL이 없습니다.")

        logging.info(f"이미지 업로드 성공 (folder: {folder}, public_id: {result.get('public_id')})")
        return UploadedImage(
            url=result['secure_url'],
            derived_id=result.get('public_id', ''),
            width=result.get('width'),
            height=result.get('height'),
            format=result.get('format'),
            byte_size=result.get('bytes'),
        )

    def upload_avatar(self, file: UploadFile) -> UploadedImage:
        return self.upload_image(file, 'avatars')

    def upload_background(self, file: UploadFile) -> UploadedImage:
        return self.upload_image(file, 'backgrounds')

    def upload_post_image(self, file: UploadFile) -> UploadedImage:
        return self.upload_image(file, 'posts')

    def upload_cover(self, file: UploadFile) -> UploadedImage:
        return self.upload_image(file, 'covers')

    def upload_multiple_images(self, files: Iterable[UploadFile], category: str = 'uploads',
                               on_progress: Optional[Callable[[Dict[str, Any]], None]] = None
                               ) -> Tuple[List[UploadedImage], List[Dict[str, str]]]:
        """
        여러 이미지를 순서대로 업로드합니다.
        실패한 파일은 중단하지 않고 errors 목록에 모아 반환합니다.
        """
        files = list(files)
        results: List[UploadedImage] = []
        errors: List[Dict[str, str]] = []

        for index, file in enumerate(files):
            try:
                result = self.upload_image(file, category)
            except BlogError as e:
                errors.append({'file': file.filename if file else '', 'error': e.message})
                continue
            results.append(result)
            if on_progress:
                on_progress({'completed': index + 1, 'total': len(files), 'current': result})

        return results, errors

    # =====================================================================================
    # 변환 URL (네트워크 요청 없음)
    # =====================================================================================
    def generate_transform_url(self, derived_id: str, width=None, height=None,
                               crop: Optional[str] = None, quality=None, format: Optional[str] = None) -> str:
        """
        Cloudinary 변환 URL을 만듭니다. 옵션이 없으면 자동 품질/형식(q_auto,f_auto)을 적용합니다.
        """
        if not derived_id or not self.cloud_name:
            return ''

        transforms = []
        if width:
            transforms.append(f"w_{width}")
        if height:
            transforms.append(f"h_{height}")
        if crop:
            transforms.append(f"c_{crop}")
        if quality:
            transforms.append(f"q_{quality}")
        if format:
            transforms.append(f"f_{format}")
        if not transforms:
            transforms = ['q_auto', 'f_auto']

        base_url = f"{self._delivery_base_url}/{self.cloud_name}/image/upload"
        return f"{base_url}/{','.join(transforms)}/{derived_id}"

    def get_thumbnail_url(self, url: str, size: int = 200) -> str:
        """Cloudinary URL이면 정사각형 썸네일 URL을, 아니면 원래 URL을 반환합니다."""
        if not url or 'cloudinary.com' not in url:
            return url

        match = _upload_path.search(url)
        if not match:
            return url

        return self.generate_transform_url(
            match.group(1), width=size, height=size, crop='fill', quality='auto', format='auto'
        )
