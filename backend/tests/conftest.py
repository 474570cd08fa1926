"""
Test Configuration

Shared fixtures: an in-memory database, a fake upstream (Gemini, ElevenLabs
and an image host behind one httpx.MockTransport) and app/client builders.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dictee import repository
from dictee.db import Base, get_db
from dictee.main import create_app
from dictee.routers.auth import open_session
from dictee.storage import LocalObjectStorage

IMAGE_URL = "http://images.test/word-list.jpg"
ATTEMPT_URL = "http://images.test/attempt.png"


def gemini_reply(text: str, finish_reason: str = "STOP") -> Dict[str, Any]:
	return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}]}


class FakeUpstream:
	"""Routes every outbound request by host and records it."""

	def __init__(self) -> None:
		self.calls: List[httpx.Request] = []
		self.gemini_replies: List[Any] = []
		self.tts_audio = b"ID3-fake-mp3"
		self.tts_status = 200
		self.voices: List[Dict[str, Any]] = [
			{"voice_id": "v1", "name": "Rachel", "labels": {"accent": "american"}},
			{"voice_id": "v2", "name": "Thomas", "labels": None},
		]

	def queue_gemini(self, *replies: Any) -> None:
		self.gemini_replies.extend(replies)

	def calls_to(self, host: str) -> List[httpx.Request]:
		return [r for r in self.calls if r.url.host == host]

	@property
	def gemini_calls(self) -> List[httpx.Request]:
		return self.calls_to("generativelanguage.googleapis.com")

	def gemini_prompt(self, index: int) -> str:
		body = json.loads(self.gemini_calls[index].content)
		return body["contents"][0]["parts"][0]["text"]

	def handler(self, request: httpx.Request) -> httpx.Response:
		self.calls.append(request)
		host = request.url.host
		if host == "images.test":
			if request.url.path.endswith("missing.jpg"):
				return httpx.Response(404, text="not found")
			return httpx.Response(200, content=b"\x89PNG fake", headers={"content-type": "image/png"})
		if host == "generativelanguage.googleapis.com":
			reply = self.gemini_replies.pop(0)
			if isinstance(reply, httpx.Response):
				return reply
			return httpx.Response(200, json=reply)
		if host == "api.elevenlabs.io":
			if request.url.path.endswith("/voices"):
				return httpx.Response(200, json={"voices": self.voices})
			if self.tts_status != 200:
				return httpx.Response(self.tts_status, json={"detail": {"message": "quota exceeded"}})
			return httpx.Response(200, content=self.tts_audio, headers={"content-type": "audio/mpeg"})
		return httpx.Response(599, text=f"unexpected host {host}")

	@property
	def transport(self) -> httpx.MockTransport:
		return httpx.MockTransport(self.handler)


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
	session = session_factory()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture
def upstream() -> FakeUpstream:
	return FakeUpstream()


@pytest.fixture
def make_client(session_factory, upstream, tmp_path) -> Callable[..., TestClient]:
	def _make(mode: str = "global") -> TestClient:
		app = create_app(
			settings_mode=mode,
			storage=LocalObjectStorage(str(tmp_path / "files"), "http://testserver"),
			http_transport=upstream.transport,
		)

		def _get_db():
			session = session_factory()
			try:
				yield session
			finally:
				session.close()

		app.dependency_overrides[get_db] = _get_db
		return TestClient(app)

	return _make


@pytest.fixture
def auth_headers(session_factory) -> Callable[..., Dict[str, str]]:
	"""Create (or reuse) a user and return bearer headers for it."""

	def _headers(open_id: str = "user-1", role: Optional[str] = None) -> Dict[str, str]:
		session = session_factory()
		try:
			user = repository.upsert_user(session, open_id, name=open_id, role=role)
			token = open_session(session, user)
		finally:
			session.close()
		return {"Authorization": f"Bearer {token}"}

	return _headers


@pytest.fixture
def global_keys(db):
	"""Global-mode deployment with both API keys configured."""
	repository.set_global_settings(db, {
		"geminiApiKey": "gemini-key",
		"elevenlabsApiKey": "eleven-key",
		"elevenlabsVoiceId": "v1",
		"enablePauses": "true",
		"wordInterval": "4",
	})
