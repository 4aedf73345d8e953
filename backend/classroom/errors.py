from __future__ import annotations
from enum import Enum
from typing import Optional


class ClassroomError(Exception):
	"""Base class for failures surfaced to API callers."""


class ErrorKind(str, Enum):
	QUOTA = "quota"
	RATE_LIMIT = "rate_limit"
	NOT_FOUND = "not_found"
	UNKNOWN = "unknown"


class ProviderFailure(ClassroomError):
	"""A generative-text provider call failed (network, auth, quota, bad payload).

	`kind` is decided by the provider client from the HTTP status and error
	body; `UNKNOWN` means the client could not tell.
	"""

	def __init__(self, message: str, *, kind: ErrorKind = ErrorKind.UNKNOWN, provider: Optional[str] = None) -> None:
		super().__init__(message)
		self.kind = kind
		self.provider = provider


class UnsupportedFileType(ClassroomError):
	pass


class FileTooLarge(ClassroomError):
	pass


class EmptyExtraction(ClassroomError):
	pass


class InvalidDocument(ClassroomError):
	pass


class OcrFailure(ClassroomError):
	pass


class UploadFailure(ClassroomError):
	pass


class DeleteFailure(ClassroomError):
	pass
