import os

# Must be set before the classroom package reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from classroom.db import Base, SessionLocal, engine
from classroom.main import app
from classroom.models import AuthUser, ClassMember, Classroom
from classroom.routers.auth import User, get_current_user


class FakeProvider:
	"""Provider double returning queued replies; exceptions in the queue are raised."""

	def __init__(self, name: str, *replies: Any) -> None:
		self.name = name
		self.replies: List[Any] = list(replies)
		self.prompts: List[str] = []
		self.closed = False
		self.configured = True

	async def generate(self, prompt: str) -> str:
		self.prompts.append(prompt)
		reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
		if isinstance(reply, BaseException):
			raise reply
		return reply

	async def aclose(self) -> None:
		self.closed = True


class FakeS3:
	def __init__(self, fail_keys_containing: Optional[str] = None) -> None:
		self.objects: Dict[tuple, Dict[str, Any]] = {}
		self.deleted: List[tuple] = []
		self.fail_keys_containing = fail_keys_containing

	def put_object(self, **kwargs):
		from botocore.exceptions import ClientError
		if self.fail_keys_containing and self.fail_keys_containing in kwargs.get("ContentType", ""):
			raise ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")
		self.objects[(kwargs["Bucket"], kwargs["Key"])] = kwargs
		return {"ETag": '"abc"'}

	def delete_object(self, **kwargs):
		self.deleted.append((kwargs["Bucket"], kwargs["Key"]))
		return {}


@pytest.fixture
def db():
	Base.metadata.create_all(bind=engine)
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()
		Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
	yield TestClient(app)
	app.dependency_overrides.clear()


@pytest.fixture
def login_as():
	def _login(username: str, role: str = "student") -> User:
		user = User(username=username, role=role)
		app.dependency_overrides[get_current_user] = lambda: user
		return user
	return _login


def add_user(db, username: str, role: str = "student", **kwargs) -> AuthUser:
	row = AuthUser(username=username, password_hash="x", email=f"{username}@example.com", role=role, **kwargs)
	db.add(row)
	db.commit()
	return row


def add_class(db, teacher: str, *members: str, name: str = "Mathematics 101") -> Classroom:
	row = Classroom(name=name, subject="Mathematics", description="Algebra", teacher=teacher)
	db.add(row)
	db.commit()
	db.refresh(row)
	for username in members:
		db.add(ClassMember(class_id=row.id, username=username))
	db.commit()
	return row
