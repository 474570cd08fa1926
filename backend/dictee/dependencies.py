from typing import Optional

import httpx
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .db import get_db
from .gemini_client import GeminiClient
from .models import User
from .routers.auth import get_current_user
from .services.settings_resolver import require_admin, make_resolver
from .storage import LocalObjectStorage


def get_resolver(request: Request, db: Session = Depends(get_db)):
	"""Settings resolver for the deployment mode the app was built with."""
	return make_resolver(db, request.app.state.settings_mode)


def get_transport(request: Request) -> Optional[httpx.AsyncBaseTransport]:
	# None means a real network transport; tests install a MockTransport here
	return getattr(request.app.state, "http_transport", None)


def get_storage(request: Request) -> LocalObjectStorage:
	return request.app.state.storage


def get_admin_user(user: User = Depends(get_current_user)) -> User:
	require_admin(user)
	return user


def gemini_for(api_key: str, transport: Optional[httpx.AsyncBaseTransport]) -> GeminiClient:
	return GeminiClient(api_key, transport=transport)
