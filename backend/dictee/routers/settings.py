from __future__ import annotations
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import repository
from ..db import get_db
from ..dependencies import get_admin_user, get_resolver, get_transport
from ..models import User
from ..schemas import CamelModel
from ..services.settings_resolver import (
	ELEVENLABS_API_KEY, ELEVENLABS_VOICE_ID, ENABLE_PAUSES, GEMINI_API_KEY,
	PROMPT_ANALYSIS, PROMPT_DICTATION, PROMPT_EXTRACTION, WORD_INTERVAL,
	PublicSettings,
)
from ..services.speech import ElevenLabsClient, Voice
from .auth import get_current_user

# Readable by every signed-in user, whatever the deployment mode
router = APIRouter(prefix="/settings", tags=["settings"])
# per_user mode only
api_key_router = APIRouter(prefix="/settings", tags=["settings"])
# global mode only
admin_router = APIRouter(prefix="/admin", tags=["admin"])


class ApiKeyRequest(CamelModel):
	gemini_api_key: str = Field(min_length=1)
	word_interval: Optional[int] = Field(default=None, ge=1, le=60)
	elevenlabs_api_key: Optional[str] = None
	elevenlabs_voice_id: Optional[str] = None
	enable_pauses: Optional[bool] = None


class ApiKeyOut(CamelModel):
	gemini_api_key: str
	word_interval: int
	elevenlabs_api_key: Optional[str] = None
	elevenlabs_voice_id: Optional[str] = None
	enable_pauses: bool


class GlobalSettingsRequest(CamelModel):
	gemini_api_key: Optional[str] = None
	word_interval: Optional[int] = Field(default=None, ge=1, le=60)
	elevenlabs_api_key: Optional[str] = None
	elevenlabs_voice_id: Optional[str] = None
	enable_pauses: Optional[bool] = None
	prompt_extraction: Optional[str] = None
	prompt_dictation: Optional[str] = None
	prompt_analysis: Optional[str] = None

	def as_mapping(self) -> Dict[str, Optional[str]]:
		return {
			GEMINI_API_KEY: self.gemini_api_key,
			WORD_INTERVAL: str(self.word_interval) if self.word_interval is not None else None,
			ELEVENLABS_API_KEY: self.elevenlabs_api_key,
			ELEVENLABS_VOICE_ID: self.elevenlabs_voice_id,
			ENABLE_PAUSES: ("true" if self.enable_pauses else "false") if self.enable_pauses is not None else None,
			PROMPT_EXTRACTION: self.prompt_extraction,
			PROMPT_DICTATION: self.prompt_dictation,
			PROMPT_ANALYSIS: self.prompt_analysis,
		}


class VoicesResponse(BaseModel):
	voices: List[Voice]


@router.get("/public", response_model=PublicSettings)
async def public_settings(user: User = Depends(get_current_user), resolver=Depends(get_resolver)):
	return PublicSettings.from_config(resolver.resolve_optional(user))


@router.get("/voices", response_model=VoicesResponse)
async def list_voices(
	user: User = Depends(get_current_user),
	resolver=Depends(get_resolver),
	transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
	config = resolver.resolve_optional(user)
	if not config.tts_enabled:
		return VoicesResponse(voices=[])
	client = ElevenLabsClient(config.elevenlabs_api_key, transport=transport)
	try:
		return VoicesResponse(voices=await client.list_voices())
	finally:
		await client.aclose()


@api_key_router.get("/api-key", response_model=Optional[ApiKeyOut])
async def get_api_key(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = repository.get_api_key(db, user.id)
	if row is None:
		return None
	return ApiKeyOut(
		gemini_api_key=row.gemini_api_key,
		word_interval=row.word_interval,
		elevenlabs_api_key=row.elevenlabs_api_key,
		elevenlabs_voice_id=row.elevenlabs_voice_id,
		enable_pauses=bool(row.enable_pauses),
	)


@api_key_router.put("/api-key")
async def save_api_key(req: ApiKeyRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	repository.upsert_api_key(
		db,
		user.id,
		req.gemini_api_key,
		word_interval=req.word_interval,
		elevenlabs_api_key=req.elevenlabs_api_key,
		elevenlabs_voice_id=req.elevenlabs_voice_id,
		enable_pauses=req.enable_pauses,
	)
	return {"success": True}


@admin_router.get("/is-admin")
async def is_admin(user: User = Depends(get_current_user)):
	return {"isAdmin": user.role == "admin"}


@admin_router.get("/settings")
async def get_global_settings(user: User = Depends(get_admin_user), resolver=Depends(get_resolver)) -> Dict[str, Any]:
	return resolver.read_all(user)


@admin_router.put("/settings")
async def save_global_settings(req: GlobalSettingsRequest, user: User = Depends(get_admin_user), resolver=Depends(get_resolver)):
	resolver.write(user, req.as_mapping())
	return {"success": True}
