from __future__ import annotations
import logging
import random
import string
import time
from typing import Any, Callable, List, Literal, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from .errors import DeleteFailure, UploadFailure
from .settings import settings

logger = logging.getLogger(__name__)

Bucket = Literal["submissions", "materials", "avatars"]
BUCKETS = ("submissions", "materials", "avatars")

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
SUBMISSION_TYPES = [
	"application/pdf",
	"image/png",
	"image/jpeg",
	"image/jpg",
	"image/gif",
	"image/webp",
	"image/avif",
]
SUBMISSION_EXTENSIONS = ["pdf", "png", "jpg", "jpeg", "gif", "webp", "avif"]
MATERIAL_EXTENSIONS = ["pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "txt", "png", "jpg", "jpeg", "gif", "webp", "avif", "zip"]

_ID_ALPHABET = string.digits + string.ascii_lowercase


class FilePayload(BaseModel):
	data: bytes
	filename: str
	content_type: str = "application/octet-stream"

	@property
	def size(self) -> int:
		return len(self.data)


class UploadResult(BaseModel):
	url: str
	path: str
	file_name: str
	file_type: str
	file_size: int


class UploadProgress(BaseModel):
	loaded: int
	total: int
	percentage: int


class FileValidation(BaseModel):
	valid: bool
	error: Optional[str] = None


class BatchUploadResult(BaseModel):
	results: List[UploadResult]
	errors: List[str]


def create_s3_client():
	"""S3 client for the configured endpoint; path-style addressing for S3-compatible stores."""
	return boto3.client(
		"s3",
		region_name=settings.storage_region,
		endpoint_url=settings.storage_endpoint_url,
		aws_access_key_id=settings.storage_access_key_id,
		aws_secret_access_key=settings.storage_secret_access_key,
		config=Config(
			signature_version="s3v4",
			s3={"addressing_style": "path" if settings.storage_endpoint_url else "virtual"},
		),
	)


def file_extension(filename: str) -> str:
	return filename.split(".")[-1]


def build_object_path(user_id: str, filename: str, folder: Optional[str] = None, *, timestamp_ms: Optional[int] = None, random_id: Optional[str] = None) -> str:
	"""`{user}/[{folder}/]{timestamp}_{random}.{ext}`"""
	if timestamp_ms is None:
		timestamp_ms = int(time.time() * 1000)
	if random_id is None:
		random_id = "".join(random.choices(_ID_ALPHABET, k=6))
	name = f"{timestamp_ms}_{random_id}.{file_extension(filename)}"
	return f"{user_id}/{folder}/{name}" if folder else f"{user_id}/{name}"


def validate_submission_file(filename: str, content_type: str, size: int) -> FileValidation:
	if size > MAX_UPLOAD_BYTES:
		return FileValidation(valid=False, error="File size exceeds 10MB limit")
	ext = file_extension(filename).lower() if "." in filename else ""
	if content_type not in SUBMISSION_TYPES and ext not in SUBMISSION_EXTENSIONS:
		return FileValidation(valid=False, error="File type not supported. Use PDF or images.")
	return FileValidation(valid=True)


def validate_material_file(filename: str, size: int) -> FileValidation:
	if size > MAX_UPLOAD_BYTES:
		return FileValidation(valid=False, error="File size exceeds 10MB limit")
	ext = file_extension(filename).lower() if "." in filename else ""
	if not ext or ext not in MATERIAL_EXTENSIONS:
		return FileValidation(valid=False, error=f"File type not supported. Allowed: {', '.join(MATERIAL_EXTENSIONS)}")
	return FileValidation(valid=True)


class StorageService:
	def __init__(self, client: Any = None, *, bucket_prefix: Optional[str] = None, public_base_url: Optional[str] = None) -> None:
		self.client = client if client is not None else create_s3_client()
		self.bucket_prefix = settings.storage_bucket_prefix if bucket_prefix is None else bucket_prefix
		self.public_base_url = public_base_url or settings.storage_public_base_url

	def bucket_name(self, bucket: Bucket) -> str:
		if bucket not in BUCKETS:
			raise ValueError(f"Unknown bucket: {bucket}")
		return f"{self.bucket_prefix}{bucket}"

	def get_file_url(self, bucket: Bucket, path: str) -> str:
		name = self.bucket_name(bucket)
		key = quote(path)
		if self.public_base_url:
			return f"{self.public_base_url.rstrip('/')}/{name}/{key}"
		if settings.storage_endpoint_url:
			return f"{settings.storage_endpoint_url.rstrip('/')}/{name}/{key}"
		return f"https://{name}.s3.{settings.storage_region}.amazonaws.com/{key}"

	def upload_file(self, file: FilePayload, bucket: Bucket, user_id: Optional[str], folder: Optional[str] = None) -> UploadResult:
		if not user_id:
			raise UploadFailure("Must be logged in to upload files")
		path = build_object_path(user_id, file.filename, folder)
		logger.info("Uploading to storage: bucket=%s path=%s size=%d", bucket, path, file.size)
		try:
			self.client.put_object(
				Bucket=self.bucket_name(bucket),
				Key=path,
				Body=file.data,
				ContentType=file.content_type,
				CacheControl="max-age=3600",
				IfNoneMatch="*",
			)
		except (ClientError, BotoCoreError) as e:
			logger.error("Upload error: %s", e)
			raise UploadFailure(f"Upload failed: {e}") from e
		return UploadResult(
			url=self.get_file_url(bucket, path),
			path=path,
			file_name=file.filename,
			file_type=file.content_type,
			file_size=file.size,
		)

	def upload_submission(self, file: FilePayload, user_id: Optional[str], assignment_id: str) -> UploadResult:
		return self.upload_file(file, "submissions", user_id, assignment_id)

	def upload_material(self, file: FilePayload, user_id: Optional[str], class_id: str) -> UploadResult:
		return self.upload_file(file, "materials", user_id, class_id)

	def upload_avatar(self, file: FilePayload, user_id: Optional[str]) -> UploadResult:
		return self.upload_file(file, "avatars", user_id)

	def upload_materials(
		self,
		files: List[FilePayload],
		user_id: Optional[str],
		class_id: str,
		on_progress: Optional[Callable[[int, UploadProgress], None]] = None,
	) -> BatchUploadResult:
		results: List[UploadResult] = []
		errors: List[str] = []
		for index, file in enumerate(files):
			if on_progress:
				on_progress(index, UploadProgress(loaded=0, total=file.size, percentage=0))
			try:
				results.append(self.upload_material(file, user_id, class_id))
			except UploadFailure as e:
				errors.append(f"{file.filename}: {e}")
				continue
			if on_progress:
				on_progress(index, UploadProgress(loaded=file.size, total=file.size, percentage=100))
		return BatchUploadResult(results=results, errors=errors)

	def delete_file(self, bucket: Bucket, path: str) -> None:
		try:
			self.client.delete_object(Bucket=self.bucket_name(bucket), Key=path)
		except (ClientError, BotoCoreError) as e:
			logger.error("Delete error: %s", e)
			raise DeleteFailure(f"Delete failed: {e}") from e
