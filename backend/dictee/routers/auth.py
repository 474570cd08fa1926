from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthSession, User
from .. import repository

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class LoginRequest(BaseModel):
	# Signed assertion handed out by the identity provider after its own login flow
	identity_token: str


class UserOut(BaseModel):
	id: int
	open_id: str
	name: Optional[str] = None
	email: Optional[str] = None
	role: str

	@classmethod
	def from_row(cls, row: User) -> "UserOut":
		return cls(id=row.id, open_id=row.open_id, name=row.name, email=row.email, role=row.role)


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = getattr(settings, "access_token_expire_minutes", None)
		if isinstance(minutes, int) and minutes > 0:
			delta = timedelta(minutes=minutes)
		else:
			delta = timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta)
	to_encode.update({"exp": expire})
	encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
	return encoded_jwt


def open_session(db: Session, user: User) -> str:
	"""Persist a server-side session and return a bearer token bound to it."""
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return create_access_token({"sub": user.open_id, "jti": session_id})


@router.post("/login", response_model=Token)
async def login(req: LoginRequest, db: Session = Depends(get_db)):
	try:
		claims = jwt.decode(req.identity_token, settings.identity_secret, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise HTTPException(status_code=401, detail="Invalid identity token")
	open_id = claims.get("sub")
	if not open_id:
		raise HTTPException(status_code=401, detail="Identity token has no subject")
	user = repository.upsert_user(
		db,
		str(open_id),
		name=claims.get("name"),
		email=claims.get("email"),
		login_method=claims.get("login_method"),
	)
	logger.info("User %s signed in (role=%s)", user.id, user.role)
	return Token(access_token=open_session(db, user))


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		open_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if open_id is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The session row must still exist (logout deletes it)
	user = repository.get_user_by_open_id(db, open_id)
	row = db.get(AuthSession, jti)
	if user is None or row is None or row.user_id != user.id:
		raise credentials_exception
	row.last_activity_at = datetime.utcnow()
	db.commit()
	return user


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
	return UserOut.from_row(user)


@router.post("/logout")
async def logout(token: str = Depends(oauth2_scheme), user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	payload = jwt.get_unverified_claims(token)
	row = db.get(AuthSession, payload.get("jti"))
	if row is not None:
		db.delete(row)
		db.commit()
	return {"success": True}
