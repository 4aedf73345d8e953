from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import UploadFailure
from ..models import Assignment, AuthUser, ClassMember, Classroom, Submission
from ..storage import StorageService, validate_submission_file
from .auth import get_current_user, require_teacher, User
from .files import get_storage, read_payload

router = APIRouter(tags=["classes"])


class ClassIn(BaseModel):
	name: str
	subject: str = ""
	description: str = ""
	color_scheme: str = "blue"


class ClassOut(ClassIn):
	model_config = ConfigDict(from_attributes=True)

	id: int
	teacher: str


class MemberIn(BaseModel):
	username: str


class AssignmentIn(BaseModel):
	class_id: int
	title: str
	content: str = ""
	max_marks: float = 100
	due_date: Optional[str] = None


class AssignmentOut(AssignmentIn):
	model_config = ConfigDict(from_attributes=True)

	id: int
	created_at: datetime


class GradeOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: int
	assignment_id: int
	student: str
	file_url: Optional[str] = None
	grade: Optional[float] = None
	feedback: Optional[str] = None
	graded_at: Optional[datetime] = None
	graded_by: Optional[str] = None
	submitted_at: datetime


class GradeUpdate(BaseModel):
	marks: float
	feedback: Optional[str] = None


def is_member(db: Session, class_id: int, username: str) -> bool:
	row = db.query(ClassMember).filter(ClassMember.class_id == class_id, ClassMember.username == username).first()
	return row is not None


def get_class_for_user(db: Session, class_id: int, user: User) -> Classroom:
	"""Class visible to the user (its teacher or a member), else 404."""
	classroom = db.get(Classroom, class_id)
	if classroom is None:
		raise HTTPException(status_code=404, detail="Class not found")
	if classroom.teacher != user.username and not is_member(db, class_id, user.username):
		raise HTTPException(status_code=404, detail="Class not found")
	return classroom


def get_owned_class(db: Session, class_id: int, user: User) -> Classroom:
	classroom = db.get(Classroom, class_id)
	if classroom is None:
		raise HTTPException(status_code=404, detail="Class not found")
	if classroom.teacher != user.username:
		raise HTTPException(status_code=403, detail="Only the class teacher can do this")
	return classroom


def _assignment_for_user(db: Session, assignment_id: int, user: User) -> Assignment:
	assignment = db.get(Assignment, assignment_id)
	if assignment is None:
		raise HTTPException(status_code=404, detail="Assignment not found")
	get_class_for_user(db, assignment.class_id, user)
	return assignment


@router.get("/classes", response_model=List[ClassOut])
def list_classes(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	member_of = db.query(ClassMember.class_id).filter(ClassMember.username == user.username)
	return (
		db.query(Classroom)
		.filter(or_(Classroom.teacher == user.username, Classroom.id.in_(member_of)))
		.order_by(Classroom.id)
		.all()
	)


@router.post("/classes", response_model=ClassOut, status_code=201)
def create_class(req: ClassIn, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	row = Classroom(**req.model_dump(), teacher=user.username)
	db.add(row)
	db.commit()
	db.refresh(row)
	return row


@router.post("/classes/{class_id}/members", status_code=201)
def add_member(class_id: int, req: MemberIn, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	get_owned_class(db, class_id, user)
	if db.get(AuthUser, req.username) is None:
		raise HTTPException(status_code=404, detail="User not found")
	if not is_member(db, class_id, req.username):
		db.add(ClassMember(class_id=class_id, username=req.username))
		db.commit()
	return {"ok": True}


@router.get("/classes/{class_id}/assignments", response_model=List[AssignmentOut])
def list_assignments(class_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	get_class_for_user(db, class_id, user)
	return db.query(Assignment).filter(Assignment.class_id == class_id).order_by(Assignment.id).all()


@router.post("/assignments", response_model=AssignmentOut, status_code=201)
def create_assignment(req: AssignmentIn, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	get_owned_class(db, req.class_id, user)
	row = Assignment(**req.model_dump())
	db.add(row)
	db.commit()
	db.refresh(row)
	return row


@router.post("/assignments/{assignment_id}/submissions", response_model=GradeOut, status_code=201)
async def submit(
	assignment_id: int,
	file: UploadFile = File(...),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	storage: StorageService = Depends(get_storage),
):
	_assignment_for_user(db, assignment_id, user)
	payload = await read_payload(file)
	check = validate_submission_file(payload.filename, payload.content_type, payload.size)
	if not check.valid:
		raise HTTPException(status_code=400, detail=check.error)
	try:
		uploaded = await run_in_threadpool(storage.upload_submission, payload, user.username, str(assignment_id))
	except UploadFailure as e:
		raise HTTPException(status_code=502, detail=str(e))
	row = Submission(assignment_id=assignment_id, student=user.username, file_url=uploaded.url, file_path=uploaded.path)
	db.add(row)
	db.commit()
	db.refresh(row)
	return row


@router.get("/assignments/{assignment_id}/grades", response_model=List[GradeOut])
def list_grades(assignment_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	assignment = _assignment_for_user(db, assignment_id, user)
	query = db.query(Submission).filter(Submission.assignment_id == assignment.id)
	classroom = db.get(Classroom, assignment.class_id)
	# Students only see their own submissions
	if classroom.teacher != user.username:
		query = query.filter(Submission.student == user.username)
	return query.order_by(Submission.id).all()


@router.patch("/grades/{submission_id}", response_model=GradeOut)
def update_grade(submission_id: int, req: GradeUpdate, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	row = db.get(Submission, submission_id)
	if row is None:
		raise HTTPException(status_code=404, detail="Submission not found")
	assignment = db.get(Assignment, row.assignment_id)
	get_owned_class(db, assignment.class_id, user)
	row.grade = req.marks
	if req.feedback is not None:
		row.feedback = req.feedback
	row.graded_at = datetime.utcnow()
	row.graded_by = user.username
	db.add(row)
	db.commit()
	db.refresh(row)
	return row
