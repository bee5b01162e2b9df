# cityscope/services/storage_service.py
import uuid
import logging
from dataclasses import dataclass
from typing import Optional, Tuple
from flask import Flask
from firebase_admin import storage

from cityscope.core.exceptions import UploadError


@dataclass
class ImageUpload:
    """multipart 요청에서 읽어낸 이미지 파일."""
    data: bytes
    filename: str
    content_type: str


class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 Blob 스토어 서비스 클래스입니다.
    이미지 바이트를 받아 공개 URL과 식별자(스토리지 경로)를 반환합니다.
    """

    def __init__(self, bucket=None, upload_folder: str = "cityscope/posts"):
        """
        실제 버킷 객체는 생성자 또는 init_app 메서드를 통해 주입됩니다.
        """
        self.bucket = bucket
        self.upload_folder = upload_folder

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        self.upload_folder = app.config.get('IMAGE_UPLOAD_FOLDER', self.upload_folder)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def upload_image(self, user_id: str, image: ImageUpload) -> Tuple[str, str]:
        """
        이미지를 '<upload_folder>/<user_id>/<uuid>.<확장자>' 경로에 업로드하고 공개로 전환합니다.

        :param user_id: 업로드하는 사용자의 ID
        :param image: 업로드할 이미지
        :return: (공개 URL, 이미지 식별자(스토리지 경로))
        :raises UploadError: 스토리지 설정이 없거나 업로드/공개 전환이 실패한 경우
        """
        if not self.bucket:
            raise UploadError("Image storage is not configured")

        extension = image.filename.rsplit('.', 1)[-1].lower() if '.' in image.filename else ''
        unique_filename = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        destination_blob_name = f"{self.upload_folder}/{user_id}/{unique_filename}"

        try:
            blob = self.bucket.blob(destination_blob_name)
            blob.upload_from_string(image.data, content_type=image.content_type)
            blob.make_public()
            logging.info(f"이미지 업로드 완료 (path: {destination_blob_name}, size: {len(image.data)})")
            return blob.public_url, destination_blob_name
        except Exception as e:
            logging.error(f"이미지 업로드 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise UploadError("Image upload failed") from e

    def delete_image(self, image_id: Optional[str]) -> None:
        """
        업로드된 이미지를 삭제합니다. 게시글 저장 실패 시 고아 파일 정리에 사용됩니다.
        삭제 실패는 로그만 남기고 원래 오류의 전파를 막지 않습니다.
        """
        if not image_id or not self.bucket:
            return
        try:
            blob = self.bucket.blob(image_id)
            if blob.exists():
                blob.delete()
        except Exception as e:
            logging.error(f"Storage 이미지 삭제 실패 (image_id: {image_id}): {e}")
