from __future__ import annotations
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import DeleteFailure, UploadFailure
from ..storage import (
	Bucket,
	BatchUploadResult,
	FilePayload,
	StorageService,
	UploadResult,
	validate_material_file,
	validate_submission_file,
)
from .auth import get_current_user, require_teacher, User

router = APIRouter(prefix="/files", tags=["files"])


@lru_cache(maxsize=1)
def get_storage() -> StorageService:
	return StorageService()


async def read_payload(file: UploadFile) -> FilePayload:
	return FilePayload(
		data=await file.read(),
		filename=file.filename or "upload",
		content_type=file.content_type or "application/octet-stream",
	)


def check_upload(bucket: str, payload: FilePayload) -> None:
	if bucket == "submissions":
		result = validate_submission_file(payload.filename, payload.content_type, payload.size)
	elif bucket == "materials":
		result = validate_material_file(payload.filename, payload.size)
	else:
		return
	if not result.valid:
		raise HTTPException(status_code=400, detail=result.error)


@router.post("/materials/{class_id}/batch", response_model=BatchUploadResult)
async def upload_materials(
	class_id: int,
	files: List[UploadFile] = File(...),
	user: User = Depends(require_teacher),
	db: Session = Depends(get_db),
	storage: StorageService = Depends(get_storage),
):
	# deferred: the classes router imports from this module
	from .classes import get_owned_class
	get_owned_class(db, class_id, user)
	accepted: List[FilePayload] = []
	rejected: List[str] = []
	for upload in files:
		payload = await read_payload(upload)
		check = validate_material_file(payload.filename, payload.size)
		if check.valid:
			accepted.append(payload)
		else:
			rejected.append(f"{payload.filename}: {check.error}")
	batch = await run_in_threadpool(storage.upload_materials, accepted, user.username, str(class_id))
	return BatchUploadResult(results=batch.results, errors=rejected + batch.errors)


@router.post("/{bucket}", response_model=UploadResult, status_code=201)
async def upload(
	bucket: Bucket,
	file: UploadFile = File(...),
	folder: Optional[str] = Form(default=None),
	user: User = Depends(get_current_user),
	storage: StorageService = Depends(get_storage),
):
	payload = await read_payload(file)
	check_upload(bucket, payload)
	try:
		return await run_in_threadpool(storage.upload_file, payload, bucket, user.username, folder)
	except UploadFailure as e:
		raise HTTPException(status_code=502, detail=str(e))


@router.delete("/{bucket}", status_code=204)
async def delete(bucket: Bucket, path: str, user: User = Depends(get_current_user), storage: StorageService = Depends(get_storage)):
	if not path.startswith(f"{user.username}/"):
		raise HTTPException(status_code=403, detail="cannot delete another user's file")
	try:
		await run_in_threadpool(storage.delete_file, bucket, path)
	except DeleteFailure as e:
		raise HTTPException(status_code=502, detail=str(e))


@router.get("/{bucket}/url")
async def file_url(bucket: Bucket, path: str, user: User = Depends(get_current_user), storage: StorageService = Depends(get_storage)):
	return {"url": storage.get_file_url(bucket, path)}
