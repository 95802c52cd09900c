# app/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app
from marshmallow import Schema, fields, validate

from app.core.exceptions import InvalidFile, NotFound
from app.services.image_service import UploadFile

# 이 블루프린트에 속한 모든 API는 '/api/uploads' 라는 접두사 URL을 갖게 됩니다.
uploads_bp = Blueprint('uploads', __name__)

UPLOAD_CATEGORIES = ('uploads', 'avatars', 'backgrounds', 'posts', 'covers')


class UploadFormSchema(Schema):
    """multipart 폼 필드 유효성 검사를 위한 스키마"""
    category = fields.Str(load_default='uploads', validate=validate.OneOf(UPLOAD_CATEGORIES))


class UploadedImageSchema(Schema):
    url = fields.Str()
    derived_id = fields.Str(data_key='publicId')
    width = fields.Int(allow_none=True)
    height = fields.Int(allow_none=True)
    format = fields.Str(allow_none=True)
    byte_size = fields.Int(data_key='bytes', allow_none=True)
    thumbnail_url = fields.Method('get_thumbnail_url', data_key='thumbnailUrl')

    def get_thumbnail_url(self, image):
        return current_app.services['images'].get_thumbnail_url(image.url)


def _form_category() -> str:
    return UploadFormSchema().load({k: v for k, v in request.form.items() if k == 'category'})['category']


def _form_file():
    storage = request.files.get('file')
    return UploadFile.from_storage(storage) if storage else None


@uploads_bp.route('/images', methods=['POST'])
def upload_image():
    """
    이미지 한 장을 업로드합니다.
    - 폼 필드: file (이미지), category (저장 폴더)
    - 형식/크기 검사는 이미지 호스트로 요청을 보내기 전에 수행됩니다.
    """
    category = _form_category()
    image = current_app.services['images'].upload_image(_form_file(), category)
    return jsonify(UploadedImageSchema().dump(image)), 201


@uploads_bp.route('/images/batch', methods=['POST'])
def upload_images():
    """
    여러 이미지를 순서대로 업로드합니다.
    실패한 파일이 있어도 나머지는 계속 업로드하고, 실패 목록을 함께 반환합니다.
    """
    category = _form_category()
    storages = request.files.getlist('files')
    max_files = current_app.config['MAX_BATCH_FILES']
    if len(storages) > max_files:
        raise InvalidFile(f"한 번에 최대 {max_files}개까지 업로드할 수 있습니다.")
    files = [UploadFile.from_storage(storage) for storage in storages]

    def log_progress(progress):
        logging.info(f"일괄 업로드 진행: {progress['completed']}/{progress['total']}")

    results, errors = current_app.services['images'].upload_multiple_images(files, category, log_progress)
    status_code = 201 if results else 400
    return jsonify({
        "images": UploadedImageSchema(many=True).dump(results),
        "errors": errors
    }), status_code


@uploads_bp.route('/<string:kind>', methods=['POST'])
def upload_for_kind(kind: str):
    """
    용도별 업로드 단축 경로: avatar, background, post-image, cover
    - 폼 필드: file (이미지). 저장 폴더는 용도에 따라 정해집니다.
    """
    images = current_app.services['images']
    uploaders = {
        'avatar': images.upload_avatar,
        'background': images.upload_background,
        'post-image': images.upload_post_image,
        'cover': images.upload_cover,
    }
    if kind not in uploaders:
        raise NotFound("지원하지 않는 업로드 용도입니다.")

    image = uploaders[kind](_form_file())
    return jsonify(UploadedImageSchema().dump(image)), 201
