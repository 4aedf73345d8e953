import re

import pytest

from classroom.errors import DeleteFailure, UploadFailure
from classroom.storage import (
	FilePayload,
	StorageService,
	build_object_path,
	validate_material_file,
	validate_submission_file,
)

from conftest import FakeS3

MiB = 1024 * 1024


@pytest.fixture
def s3():
	return FakeS3(fail_keys_containing="x-fail")


@pytest.fixture
def storage(s3):
	return StorageService(s3, bucket_prefix="class-", public_base_url="https://files.example.com")


def test_object_path_layout():
	assert build_object_path("u1", "essay.pdf", "a7", timestamp_ms=1700000000000, random_id="ab12cd") == "u1/a7/1700000000000_ab12cd.pdf"
	assert build_object_path("u1", "me.png", timestamp_ms=5, random_id="zzzzzz") == "u1/5_zzzzzz.png"
	assert re.fullmatch(r"u1/\d{13}_[0-9a-z]{6}\.jpeg", build_object_path("u1", "photo.final.jpeg"))


def test_submission_size_limit():
	assert validate_submission_file("scan.png", "image/png", 11 * MiB).valid is False
	assert validate_submission_file("scan.png", "image/png", 9 * MiB).valid is True


def test_submission_type_or_extension_accepted():
	assert validate_submission_file("scan.avif", "application/octet-stream", 100).valid is True
	assert validate_submission_file("blob", "application/pdf", 100).valid is True
	result = validate_submission_file("notes.docx", "application/msword", 100)
	assert result.valid is False
	assert result.error == "File type not supported. Use PDF or images."


def test_material_extensions():
	assert validate_material_file("slides.PPTX", 2 * MiB).valid is True
	assert validate_material_file("archive.zip", 2 * MiB).valid is True
	assert validate_material_file("run.exe", 10).valid is False
	assert validate_material_file("README", 10).valid is False
	assert validate_material_file("big.pdf", 11 * MiB).error == "File size exceeds 10MB limit"


def test_upload_file_puts_object_without_overwrite(storage, s3):
	result = storage.upload_submission(FilePayload(data=b"%PDF", filename="essay.pdf", content_type="application/pdf"), "alice", "42")

	(bucket, key), kwargs = next(iter(s3.objects.items()))
	assert bucket == "class-submissions"
	assert key.startswith("alice/42/") and key.endswith(".pdf")
	assert kwargs["CacheControl"] == "max-age=3600"
	assert kwargs["IfNoneMatch"] == "*"
	assert result.path == key
	assert result.url == f"https://files.example.com/class-submissions/{key}"
	assert result.file_name == "essay.pdf"
	assert result.file_size == 4


def test_upload_requires_user(storage):
	with pytest.raises(UploadFailure, match="Must be logged in"):
		storage.upload_avatar(FilePayload(data=b"x", filename="me.png"), None)


def test_upload_failure_is_wrapped(storage):
	with pytest.raises(UploadFailure, match="^Upload failed: "):
		storage.upload_avatar(FilePayload(data=b"x", filename="me.png", content_type="application/x-fail"), "alice")


def test_upload_materials_collects_errors_and_progress(storage):
	progress = []
	files = [
		FilePayload(data=b"abc", filename="week1.pdf", content_type="application/pdf"),
		FilePayload(data=b"zz", filename="broken.pdf", content_type="application/x-fail"),
	]

	batch = storage.upload_materials(files, "teacher1", "7", on_progress=lambda i, p: progress.append((i, p.percentage)))

	assert [r.file_name for r in batch.results] == ["week1.pdf"]
	assert len(batch.errors) == 1 and batch.errors[0].startswith("broken.pdf: Upload failed:")
	assert progress == [(0, 0), (0, 100), (1, 0)]


def test_delete_file(storage, s3):
	storage.delete_file("materials", "teacher1/7/1_abcdef.pdf")
	assert s3.deleted == [("class-materials", "teacher1/7/1_abcdef.pdf")]


def test_delete_failure_is_wrapped(storage, s3):
	from botocore.exceptions import ClientError

	def boom(**kwargs):
		raise ClientError({"Error": {"Code": "NoSuchBucket", "Message": "missing"}}, "DeleteObject")

	s3.delete_object = boom
	with pytest.raises(DeleteFailure, match="^Delete failed: "):
		storage.delete_file("avatars", "alice/1_abcdef.png")


def test_unknown_bucket_rejected(storage):
	with pytest.raises(ValueError):
		storage.get_file_url("secrets", "x")
