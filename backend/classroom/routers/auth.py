from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Tuple
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthUser, AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

Role = Literal["teacher", "student"]


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	username: str
	role: str = "student"

	@property
	def is_teacher(self) -> bool:
		return self.role == "teacher"

	@classmethod
	def from_row(cls, row: AuthUser) -> "User":
		return cls(username=row.username, role=row.role or "student")


def _bcrypt_input(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	return password.encode('utf-8')[:72].decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_input(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
	row = db.get(AuthUser, username)
	if row is None or not verify_password(password, row.password_hash):
		return None
	return User.from_row(row)


def token_lifetime() -> timedelta:
	minutes = settings.access_token_expire_minutes
	return timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)


def create_access_token(username: str, session_id: str, expires_delta: Optional[timedelta] = None) -> str:
	claims = {
		"sub": username,
		"jti": session_id,
		"exp": datetime.now(timezone.utc) + (expires_delta or token_lifetime()),
	}
	return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def open_session(db: Session, username: str) -> str:
	"""Store a server-side session row and return its id (the token's jti)."""
	session_id = uuid.uuid4().hex
	try:
		db.add(AuthSession(session_id=session_id, username=username))
		db.commit()
	except Exception:
		db.rollback()
		raise HTTPException(status_code=500, detail="Could not create session")
	return session_id


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if user is None:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	session_id = open_session(db, user.username)
	return Token(access_token=create_access_token(user.username, session_id))


_unauthorized = HTTPException(status_code=401, detail="Could not validate credentials")


def _read_claims(token: str) -> Tuple[str, str]:
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise _unauthorized
	username, jti = payload.get("sub"), payload.get("jti")
	if not username or not jti:
		raise _unauthorized
	return username, jti


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	username, jti = _read_claims(token)
	# Revoked sessions (deleted rows) invalidate their tokens
	session = db.get(AuthSession, jti)
	if session is None or session.username != username:
		raise _unauthorized
	row = db.get(AuthUser, username)
	if row is None:
		raise _unauthorized
	session.last_activity_at = datetime.utcnow()
	db.commit()
	return User.from_row(row)


def require_teacher(user: User = Depends(get_current_user)) -> User:
	if not user.is_teacher:
		raise HTTPException(status_code=403, detail="teacher role required")
	return user


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


class RegisterRequest(BaseModel):
	username: str
	password: str
	email: str
	phone: str = ""
	role: Role = "student"


def _registration_problem(username: str, password: str, email: str) -> Optional[str]:
	if not username or not password:
		return "username and password are required"
	if not email:
		return "email is required"
	if not 3 <= len(username) <= 128:
		return "username must be 3-128 characters"
	return None


@router.post("/register", response_model=User, status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	username = req.username.strip()
	email = req.email.strip()
	problem = _registration_problem(username, req.password, email)
	if problem:
		raise HTTPException(status_code=400, detail=problem)
	if db.get(AuthUser, username) is not None:
		raise HTTPException(status_code=409, detail="username already exists")
	row = AuthUser(
		username=username,
		password_hash=hash_password(req.password),
		email=email,
		phone=req.phone.strip(),
		role=req.role,
		requests_limit=settings.default_requests_limit,
	)
	db.add(row)
	db.commit()
	return User.from_row(row)
