from __future__ import annotations
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from typing import Any, Optional
from sqlalchemy.orm import Session

from ..db import get_db
from ..documents import (
	GeneratedAnswers,
	GeneratedDocument,
	GradingResult,
	check_health,
	generate_answers,
	generate_document,
	grade_submission,
	run_connection_test,
)
from ..errors import EmptyExtraction, FileTooLarge, InvalidDocument, OcrFailure, ProviderFailure, UnsupportedFileType
from ..fallback import build_generator
from ..models import AuthUser
from ..ocr import ExtractionResult, extract_text
from .auth import get_current_user, User

router = APIRouter(prefix="/ai", tags=["ai"])


async def get_generator():
	generator = build_generator()
	try:
		yield generator
	finally:
		await generator.aclose()


def enforce_request_limit(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
	row = db.query(AuthUser).filter(AuthUser.username == user.username).first()
	if row:
		if row.requests_used >= row.requests_limit:
			raise HTTPException(status_code=429, detail="request limit reached")
		row.requests_used += 1
		db.add(row)
		db.commit()
	return user


class GenerateDocumentRequest(BaseModel):
	prompt: str
	max_marks: float = 100
	days_until_due: int = 7


class GenerateAnswersRequest(BaseModel):
	assignment_content: str
	max_marks: float = 100


class GradeRequest(BaseModel):
	grading_mode: str = "auto"
	ocr_text: Optional[str] = None
	generated_content: Any = None
	grading_criteria: Optional[str] = None
	custom_instructions: Optional[str] = None


@router.post("/generate-document", response_model=GeneratedDocument)
async def generate_document_route(req: GenerateDocumentRequest, user: User = Depends(enforce_request_limit), generator=Depends(get_generator)):
	try:
		return await generate_document(generator, req.prompt, req.max_marks, req.days_until_due)
	except ProviderFailure as e:
		raise HTTPException(status_code=502, detail=str(e))


@router.post("/generate-answers", response_model=GeneratedAnswers)
async def generate_answers_route(req: GenerateAnswersRequest, user: User = Depends(enforce_request_limit), generator=Depends(get_generator)):
	try:
		return await generate_answers(generator, req.assignment_content, req.max_marks)
	except ProviderFailure as e:
		raise HTTPException(status_code=502, detail=str(e))


@router.post("/grade", response_model=GradingResult)
async def grade_route(req: GradeRequest, user: User = Depends(enforce_request_limit), generator=Depends(get_generator)):
	try:
		return await grade_submission(
			generator,
			req.grading_mode,
			req.ocr_text,
			req.generated_content,
			req.grading_criteria,
			req.custom_instructions,
		)
	except ProviderFailure as e:
		raise HTTPException(status_code=502, detail=str(e))


async def run_ocr(file: UploadFile) -> ExtractionResult:
	content = await file.read()
	try:
		return await run_in_threadpool(
			extract_text,
			content,
			file.filename or "upload",
			file.content_type or "application/octet-stream",
		)
	except UnsupportedFileType as e:
		raise HTTPException(status_code=415, detail=str(e))
	except FileTooLarge as e:
		raise HTTPException(status_code=413, detail=str(e))
	except (EmptyExtraction, InvalidDocument) as e:
		raise HTTPException(status_code=422, detail=str(e))
	except OcrFailure as e:
		raise HTTPException(status_code=500, detail=str(e))


@router.post("/ocr", response_model=ExtractionResult)
async def ocr_route(file: UploadFile = File(...), user: User = Depends(get_current_user)):
	return await run_ocr(file)


@router.get("/health")
async def health_route(user: User = Depends(get_current_user), generator=Depends(get_generator)):
	return await check_health(generator)


@router.get("/test-connection")
async def test_connection_route(user: User = Depends(get_current_user), generator=Depends(get_generator)):
	return await run_connection_test(
		generator,
		gemini_configured=bool(getattr(generator.primary, "configured", False)),
		groq_configured=bool(getattr(generator.secondary, "configured", False)),
	)
