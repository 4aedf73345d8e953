from __future__ import annotations
from datetime import datetime, timedelta
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession, ClassMeeting, Notification


def purge_older_than_one_week(db: Session) -> int:
	threshold = datetime.utcnow() - timedelta(days=7)
	removed = 0

	# Ended meetings only; an active meeting is never purged however old
	res = db.execute(
		delete(ClassMeeting).where(ClassMeeting.status == "ended", ClassMeeting.ended_at < threshold)
	)
	removed += res.rowcount or 0

	res = db.execute(delete(Notification).where(Notification.read.is_(True), Notification.created_at < threshold))
	removed += res.rowcount or 0

	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	removed += res.rowcount or 0

	db.commit()
	return removed
