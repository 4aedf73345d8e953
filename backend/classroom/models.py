from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from .db import Base


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	phone = Column(String(32), nullable=True)
	# "teacher" or "student"
	role = Column(String(16), default="student", nullable=False)
	requests_used = Column(Integer, default=0, nullable=False)
	requests_limit = Column(Integer, default=1000, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), ForeignKey("auth_users.username"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Classroom(Base):
	__tablename__ = "classes"
	id = Column(Integer, primary_key=True, autoincrement=True)
	name = Column(String(256), nullable=False)
	subject = Column(String(128), nullable=False, default="")
	description = Column(Text, nullable=False, default="")
	color_scheme = Column(String(32), nullable=False, default="blue")
	teacher = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ClassMember(Base):
	__tablename__ = "class_members"
	__table_args__ = (UniqueConstraint("class_id", "username", name="uq_class_member"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
	username = Column(String(128), nullable=False, index=True)
	joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Assignment(Base):
	__tablename__ = "assignments"
	id = Column(Integer, primary_key=True, autoincrement=True)
	class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
	title = Column(String(256), nullable=False)
	content = Column(Text, nullable=False, default="")
	max_marks = Column(Float, nullable=False, default=100)
	due_date = Column(String(32), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Submission(Base):
	__tablename__ = "submissions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	assignment_id = Column(Integer, ForeignKey("assignments.id"), nullable=False, index=True)
	student = Column(String(128), nullable=False, index=True)
	file_url = Column(Text, nullable=True)
	file_path = Column(Text, nullable=True)
	ocr_text = Column(Text, nullable=True)
	grade = Column(Float, nullable=True)
	feedback = Column(Text, nullable=True)
	graded_at = Column(DateTime, nullable=True)
	graded_by = Column(String(128), nullable=True)
	submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ClassMeeting(Base):
	__tablename__ = "class_meetings"
	id = Column(Integer, primary_key=True, autoincrement=True)
	code = Column(String(32), nullable=False, unique=True, index=True)
	title = Column(String(256), nullable=False)
	host_id = Column(String(128), nullable=False)
	class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
	# "active" or "ended"
	status = Column(String(16), nullable=False, default="active")
	started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	ended_at = Column(DateTime, nullable=True)


class Notification(Base):
	__tablename__ = "notifications"
	id = Column(Integer, primary_key=True, autoincrement=True)
	username = Column(String(128), nullable=False, index=True)
	title = Column(String(256), nullable=False)
	message = Column(Text, nullable=False)
	link = Column(Text, nullable=True)
	read = Column(Boolean, nullable=False, default=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
