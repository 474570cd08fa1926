from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigurationError, UpstreamServiceError
from ..gemini_client import upstream_message
from ..settings import settings

logger = logging.getLogger(__name__)

SHORT_PAUSE = '<break time="1s" />'
LONG_PAUSE = '<break time="1.5s" />'

VOICE_SETTINGS = {
	"stability": 0.5,
	"similarity_boost": 0.75,
	"style": 0.0,
	"use_speaker_boost": True,
}


class Voice(BaseModel):
	id: str
	name: str
	labels: Dict[str, str] = Field(default_factory=dict)


class _VoiceEntry(BaseModel):
	model_config = ConfigDict(extra="ignore")
	voice_id: str
	name: str = ""
	labels: Optional[Dict[str, Any]] = None


class _VoicesResponse(BaseModel):
	model_config = ConfigDict(extra="ignore")
	voices: List[_VoiceEntry] = Field(default_factory=list)


def insert_pauses(text: str) -> str:
	"""Short break after every comma, a longer one after every period."""
	return text.replace(",", "," + SHORT_PAUSE).replace(".", "." + LONG_PAUSE)


class ElevenLabsClient:
	def __init__(
		self,
		api_key: Optional[str],
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		if not api_key:
			raise ConfigurationError("ElevenLabs API key is not configured")
		self.api_key = api_key
		self.base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")
		self.model = model or settings.elevenlabs_model
		self._client = httpx.AsyncClient(timeout=settings.http_timeout, transport=transport)

	async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
		headers = {"xi-api-key": self.api_key, **kwargs.pop("headers", {})}
		try:
			r = await self._client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
		except httpx.RequestError as err:
			logger.error("ElevenLabs request failed: %s", err)
			raise UpstreamServiceError("ElevenLabs", str(err) or err.__class__.__name__) from err
		if r.is_error:
			message = upstream_message(r)
			logger.error("ElevenLabs returned %s: %s", r.status_code, message)
			raise UpstreamServiceError("ElevenLabs", message, upstream_status=r.status_code)
		return r

	async def synthesize(self, text: str, *, voice_id: Optional[str] = None, enable_pauses: bool = True) -> bytes:
		voice = voice_id or settings.elevenlabs_default_voice_id
		payload_text = insert_pauses(text) if enable_pauses else text
		logger.info("Synthesizing %d chars with voice %s (pauses=%s)", len(text), voice, enable_pauses)
		r = await self._request(
			"POST",
			f"/text-to-speech/{voice}",
			headers={"Accept": "audio/mpeg"},
			json={"text": payload_text, "model_id": self.model, "voice_settings": VOICE_SETTINGS},
		)
		logger.debug("Received %d bytes of audio", len(r.content))
		return r.content

	async def list_voices(self) -> List[Voice]:
		r = await self._request("GET", "/voices")
		try:
			data = _VoicesResponse.model_validate(r.json())
		except (ValueError, ValidationError) as err:
			raise UpstreamServiceError("ElevenLabs", f"Unexpected voices response: {r.text[:300]}") from err
		return [
			Voice(id=v.voice_id, name=v.name, labels={k: str(val) for k, val in (v.labels or {}).items()})
			for v in data.voices
		]

	async def aclose(self) -> None:
		await self._client.aclose()
