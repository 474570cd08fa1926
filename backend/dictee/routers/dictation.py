from __future__ import annotations
import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends
from pydantic import AnyHttpUrl, BaseModel, Field
from sqlalchemy.orm import Session

from .. import repository
from ..db import get_db
from ..dependencies import gemini_for, get_resolver, get_storage, get_transport
from ..models import User
from ..schemas import CamelModel, DictationSessionOut
from ..services.composer import MAX_LENGTH, MIN_LENGTH, compose_dictation
from ..services.extraction import extract_words
from ..services.speech import ElevenLabsClient
from ..storage import LocalObjectStorage, audio_key
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dictation", tags=["dictation"])


class ExtractWordsRequest(CamelModel):
	image_url: AnyHttpUrl


class ExtractWordsResponse(CamelModel):
	words: List[str]
	session_id: Optional[int] = None


class GenerateRequest(CamelModel):
	words: List[str] = Field(min_length=1)
	session_id: Optional[int] = None
	target_length: Optional[int] = Field(default=None, ge=MIN_LENGTH, le=MAX_LENGTH)


class GenerateResponse(CamelModel):
	dictation_text: str


class UpdateTextRequest(CamelModel):
	dictation_text: str = Field(min_length=1)


class AudioRequest(CamelModel):
	text: str = Field(min_length=1)
	session_id: Optional[int] = None


class AudioResponse(CamelModel):
	audio_url: Optional[str] = None


class TagsRequest(BaseModel):
	tags: List[str]


@router.post("/extract-words", response_model=ExtractWordsResponse)
async def extract(
	req: ExtractWordsRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	resolver=Depends(get_resolver),
	transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
	config = resolver.resolve(user)
	image_url = str(req.image_url)
	client = gemini_for(config.require_gemini_key(), transport)
	try:
		words = await extract_words(image_url, gemini=client, prompt=config.prompt_extraction, transport=transport)
	finally:
		await client.aclose()
	if not words:
		# Nothing usable on the picture: no session is created
		return ExtractWordsResponse(words=[], session_id=None)
	row = repository.create_session(db, user.id, image_url, words)
	return ExtractWordsResponse(words=words, session_id=row.id)


@router.get("/sessions", response_model=List[DictationSessionOut])
async def list_sessions(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return [DictationSessionOut.from_row(r) for r in repository.list_sessions(db, user.id)]


@router.get("/sessions/{session_id}", response_model=DictationSessionOut)
async def get_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return DictationSessionOut.from_row(repository.get_session(db, session_id, user.id))


@router.post("/generate", response_model=GenerateResponse)
async def generate(
	req: GenerateRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	resolver=Depends(get_resolver),
	transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
	config = resolver.resolve(user)
	if req.session_id is not None:
		# Fail before spending a model call on a session we could not save to
		repository.get_session(db, req.session_id, user.id)
	client = gemini_for(config.require_gemini_key(), transport)
	try:
		text = await compose_dictation(
			req.words,
			gemini=client,
			target_length=req.target_length,
			prompt=config.prompt_dictation,
		)
	finally:
		await client.aclose()
	if req.session_id is not None:
		repository.update_session_text(db, req.session_id, user.id, text)
	return GenerateResponse(dictation_text=text)


@router.put("/sessions/{session_id}/text")
async def update_text(session_id: int, req: UpdateTextRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	repository.update_session_text(db, session_id, user.id, req.dictation_text)
	return {"success": True}


@router.post("/audio", response_model=AudioResponse)
async def generate_audio(
	req: AudioRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	resolver=Depends(get_resolver),
	transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
	storage: LocalObjectStorage = Depends(get_storage),
):
	config = resolver.resolve_optional(user)
	if not config.tts_enabled:
		# The client falls back to its own speech synthesis
		return AudioResponse(audio_url=None)
	if req.session_id is not None:
		repository.get_session(db, req.session_id, user.id)
	client = ElevenLabsClient(config.elevenlabs_api_key, transport=transport)
	try:
		audio = await client.synthesize(req.text, voice_id=config.elevenlabs_voice_id, enable_pauses=config.enable_pauses)
	finally:
		await client.aclose()
	stored = storage.put(audio_key(user.id), audio, "audio/mpeg")
	if req.session_id is not None:
		repository.update_session_audio(db, req.session_id, user.id, stored.url)
	return AudioResponse(audio_url=stored.url)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	repository.delete_session(db, session_id, user.id)
	return {"success": True}


@router.post("/sessions/{session_id}/favorite", response_model=DictationSessionOut)
async def toggle_favorite(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return DictationSessionOut.from_row(repository.toggle_favorite(db, session_id, user.id))


@router.put("/sessions/{session_id}/tags", response_model=DictationSessionOut)
async def update_tags(session_id: int, req: TagsRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	tags = [t.strip() for t in req.tags if t.strip()]
	return DictationSessionOut.from_row(repository.update_tags(db, session_id, user.id, tags))
