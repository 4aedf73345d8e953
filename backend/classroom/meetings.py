from __future__ import annotations
import logging
import secrets
import string
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from .models import ClassMeeting, ClassMember, Classroom, Notification
from .settings import settings

logger = logging.getLogger(__name__)

MEETING_ENDED = "MEETING_ENDED"


class MeetingOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: int
	code: str
	title: str
	host_id: str
	class_id: int
	status: str
	started_at: datetime
	ended_at: Optional[datetime] = None


def generate_meeting_code() -> str:
	"""Join code in the form `abc-defg-hij`."""
	letters = string.ascii_lowercase
	return "-".join("".join(secrets.choice(letters) for _ in range(n)) for n in (3, 4, 3))


def _flag(value: bool) -> str:
	return "true" if value else "false"


def build_meeting_url(code: str, *, is_host: bool, name: str, base_url: Optional[str] = None) -> str:
	base = (base_url or settings.meeting_url).rstrip("/")
	return f"{base}/meeting/{code}?host={_flag(is_host)}&name={quote(name or '', safe='')}"


def build_embed_url(code: str, *, is_host: bool, name: str, class_id: int, base_url: Optional[str] = None) -> str:
	base = (base_url or settings.meeting_url).rstrip("/")
	return f"{base}/embed/{code}?host={_flag(is_host)}&name={quote(name or '', safe='')}&classId={class_id}"


class MeetingService:
	def __init__(self, db: Session) -> None:
		self.db = db

	def get_active_meeting(self, class_id: int) -> Optional[ClassMeeting]:
		return (
			self.db.query(ClassMeeting)
			.filter(ClassMeeting.class_id == class_id, ClassMeeting.status == "active")
			.order_by(ClassMeeting.started_at.desc(), ClassMeeting.id.desc())
			.first()
		)

	def create_meeting(self, *, title: str, host_id: str, class_id: int) -> ClassMeeting:
		code = generate_meeting_code()
		while self.db.query(ClassMeeting).filter(ClassMeeting.code == code).first() is not None:
			code = generate_meeting_code()
		row = ClassMeeting(code=code, title=title, host_id=host_id, class_id=class_id, status="active")
		self.db.add(row)
		self.db.commit()
		self.db.refresh(row)
		logger.info("Meeting %s started for class %s by %s", row.code, class_id, host_id)
		return row

	def end_meeting(self, meeting_id: int) -> Optional[ClassMeeting]:
		row = self.db.get(ClassMeeting, meeting_id)
		if row is None:
			return None
		if row.status != "ended":
			row.status = "ended"
			row.ended_at = datetime.utcnow()
			self.db.add(row)
			self.db.commit()
			self.db.refresh(row)
			logger.info("Meeting %s ended", row.code)
		return row

	def notify_class(self, class_id: int, code: str, title: str, host_name: str) -> int:
		"""Create one notification per class member other than the host."""
		members: List[str] = [
			m.username for m in self.db.query(ClassMember).filter(ClassMember.class_id == class_id).all()
		]
		classroom = self.db.get(Classroom, class_id)
		if classroom is not None and classroom.teacher not in members:
			members.append(classroom.teacher)
		count = 0
		for username in members:
			if username == host_name:
				continue
			self.db.add(Notification(
				username=username,
				title="Live class started",
				message=f"{host_name} started \"{title}\". Join with code {code}.",
				link=build_meeting_url(code, is_host=False, name=username),
			))
			count += 1
		self.db.commit()
		return count

	def notifications_for(self, username: str, *, unread_only: bool = False) -> List[Notification]:
		query = self.db.query(Notification).filter(Notification.username == username)
		if unread_only:
			query = query.filter(Notification.read.is_(False))
		return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
