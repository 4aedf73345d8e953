from datetime import datetime, timedelta

from classroom.cleanup import purge_older_than_one_week
from classroom.models import AuthSession, ClassMeeting, Notification

from conftest import add_class, add_user


def test_register_login_and_me(client):
	r = client.post("/auth/register", json={"username": "ms_lee", "password": "s3cret!", "email": "lee@example.com", "role": "teacher"})
	assert r.status_code == 201
	assert client.post("/auth/register", json={"username": "ms_lee", "password": "x", "email": "x@example.com"}).status_code == 409

	assert client.post("/auth/token", data={"username": "ms_lee", "password": "wrong"}).status_code == 401
	token = client.post("/auth/token", data={"username": "ms_lee", "password": "s3cret!"}).json()["access_token"]

	me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
	assert me.status_code == 200
	assert me.json() == {"username": "ms_lee", "role": "teacher"}


def test_revoked_session_is_rejected(client, db):
	client.post("/auth/register", json={"username": "sam", "password": "pw", "email": "sam@example.com"})
	token = client.post("/auth/token", data={"username": "sam", "password": "pw"}).json()["access_token"]
	db.query(AuthSession).delete()
	db.commit()

	assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_register_validation(client):
	assert client.post("/auth/register", json={"username": "ab", "password": "pw", "email": "a@b.c"}).status_code == 400
	assert client.post("/auth/register", json={"username": "abc", "password": "pw", "email": " "}).status_code == 400
	assert client.post("/auth/register", json={"username": "abc", "password": "pw", "email": "a@b.c", "role": "admin"}).status_code == 422


def test_cleanup_keeps_active_meetings(db):
	add_user(db, "ms_lee", role="teacher")
	classroom = add_class(db, "ms_lee")
	old = datetime.utcnow() - timedelta(days=30)
	db.add_all([
		ClassMeeting(code="old-ended-one", title="t", host_id="ms_lee", class_id=classroom.id, status="ended", started_at=old, ended_at=old),
		ClassMeeting(code="old-activ-one", title="t", host_id="ms_lee", class_id=classroom.id, status="active", started_at=old),
		Notification(username="sam", title="t", message="m", read=True, created_at=old),
		Notification(username="sam", title="t", message="m", read=False, created_at=old),
	])
	db.commit()

	assert purge_older_than_one_week(db) == 2
	assert [m.code for m in db.query(ClassMeeting).all()] == ["old-activ-one"]
	assert db.query(Notification).count() == 1


def test_health_and_info(client):
	assert client.get("/health").json() == {"status": "ok", "database": "ok"}
	info = client.get("/info").json()
	assert info["status"] == "ok"
	assert "gemini_configured" in info
