from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..db import get_db
from ..meetings import MEETING_ENDED, MeetingOut, MeetingService, build_embed_url, build_meeting_url
from ..models import ClassMeeting
from .auth import get_current_user, require_teacher, User
from .classes import get_class_for_user, get_owned_class

router = APIRouter(prefix="/meetings", tags=["meetings"])


class MeetingState(BaseModel):
	meeting: Optional[MeetingOut] = None
	embed_url: Optional[str] = None
	open_url: Optional[str] = None
	notified: Optional[int] = None


class MeetingSignal(BaseModel):
	type: str


class NotificationOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: int
	title: str
	message: str
	link: Optional[str] = None
	read: bool
	created_at: datetime


def _state_for(row: Optional[ClassMeeting], user: User) -> MeetingState:
	if row is None:
		return MeetingState()
	is_host = row.host_id == user.username
	return MeetingState(
		meeting=MeetingOut.model_validate(row),
		embed_url=build_embed_url(row.code, is_host=is_host, name=user.username, class_id=row.class_id),
		open_url=build_meeting_url(row.code, is_host=is_host, name=user.username),
	)


@router.get("/notifications", response_model=List[NotificationOut])
def notifications(unread_only: bool = False, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return MeetingService(db).notifications_for(user.username, unread_only=unread_only)


@router.get("/{class_id}/active", response_model=MeetingState)
def active_meeting(class_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	get_class_for_user(db, class_id, user)
	return _state_for(MeetingService(db).get_active_meeting(class_id), user)


@router.post("/{class_id}/start", response_model=MeetingState, status_code=201)
def start_meeting(class_id: int, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	classroom = get_owned_class(db, class_id, user)
	service = MeetingService(db)
	if service.get_active_meeting(class_id) is not None:
		raise HTTPException(status_code=409, detail="A meeting is already in progress")
	row = service.create_meeting(title=f"{classroom.name} - Live Class", host_id=user.username, class_id=class_id)
	state = _state_for(row, user)
	state.notified = service.notify_class(class_id, row.code, row.title, user.username)
	return state


@router.post("/{meeting_id}/end", response_model=MeetingState)
def end_meeting(meeting_id: int, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	row = db.get(ClassMeeting, meeting_id)
	if row is None:
		raise HTTPException(status_code=404, detail="Meeting not found")
	get_owned_class(db, row.class_id, user)
	row = MeetingService(db).end_meeting(meeting_id)
	return MeetingState(meeting=MeetingOut.model_validate(row))


@router.post("/{class_id}/signal", response_model=MeetingState)
def meeting_signal(class_id: int, signal: MeetingSignal, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
	"""Signal relayed from the embedded meeting UI; MEETING_ENDED ends the class meeting."""
	get_owned_class(db, class_id, user)
	if signal.type != MEETING_ENDED:
		raise HTTPException(status_code=400, detail=f"Unsupported signal: {signal.type}")
	service = MeetingService(db)
	row = service.get_active_meeting(class_id)
	if row is None:
		return MeetingState()
	return MeetingState(meeting=MeetingOut.model_validate(service.end_meeting(row.id)))
