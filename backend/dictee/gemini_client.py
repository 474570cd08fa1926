from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from .errors import ConfigurationError, ContentBlockedError, UpstreamServiceError
from .settings import settings

logger = logging.getLogger(__name__)

# Finish/block reasons that mean the content filters stopped the generation
BLOCKED_REASONS = frozenset({"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"})


# Typed view of the generateContent reply; nothing past this module sees raw JSON.
class _Part(BaseModel):
	model_config = ConfigDict(extra="ignore")
	text: Optional[str] = None


class _Content(BaseModel):
	model_config = ConfigDict(extra="ignore")
	parts: List[_Part] = Field(default_factory=list)


class _Candidate(BaseModel):
	model_config = ConfigDict(extra="ignore")
	content: Optional[_Content] = None
	finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class _PromptFeedback(BaseModel):
	model_config = ConfigDict(extra="ignore")
	block_reason: Optional[str] = Field(default=None, alias="blockReason")


class GenerateContentResponse(BaseModel):
	model_config = ConfigDict(extra="ignore")
	candidates: List[_Candidate] = Field(default_factory=list)
	prompt_feedback: Optional[_PromptFeedback] = Field(default=None, alias="promptFeedback")


class GenerationResult(BaseModel):
	text: str = ""
	finish_reason: Optional[str] = None
	block_reason: Optional[str] = None

	@property
	def blocked(self) -> bool:
		if self.block_reason:
			return True
		return (self.finish_reason or "").upper() in BLOCKED_REASONS

	def raise_if_blocked(self, what: str) -> None:
		if self.blocked:
			reason = self.block_reason or self.finish_reason or "SAFETY"
			logger.warning("%s blocked by content filters (%s)", what, reason)
			raise ContentBlockedError(reason)

	@classmethod
	def from_response(cls, data: GenerateContentResponse) -> "GenerationResult":
		block_reason = data.prompt_feedback.block_reason if data.prompt_feedback else None
		if not data.candidates:
			return cls(text="", finish_reason=None, block_reason=block_reason)
		first = data.candidates[0]
		parts = first.content.parts if first.content else []
		text = "".join(p.text or "" for p in parts)
		return cls(text=text, finish_reason=first.finish_reason, block_reason=block_reason)


def upstream_message(response: httpx.Response) -> str:
	"""Best-effort human message out of an error response body."""
	try:
		body = response.json()
	except ValueError:
		return response.text[:300] or f"HTTP {response.status_code}"
	if isinstance(body, dict):
		err = body.get("error")
		if isinstance(err, dict) and err.get("message"):
			return str(err["message"])
		detail = body.get("detail")
		if isinstance(detail, dict) and detail.get("message"):
			return str(detail["message"])
		if isinstance(detail, str):
			return detail
	return response.text[:300] or f"HTTP {response.status_code}"


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str],
		*,
		model: Optional[str] = None,
		base_url: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		if not api_key:
			raise ConfigurationError("Gemini API key is not configured")
		self.api_key = api_key
		self.model = model or settings.gemini_model
		root = (base_url or settings.gemini_base_url).rstrip("/")
		self.base_url = f"{root}/models/{self.model}:generateContent"
		self._client = httpx.AsyncClient(timeout=settings.http_timeout, transport=transport)

	async def generate(self, prompt: str, *, generation_config: Optional[Dict[str, Any]] = None) -> GenerationResult:
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		return await self._post_payload(payload, generation_config=generation_config)

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		generation_config: Optional[Dict[str, Any]] = None,
	) -> GenerationResult:
		payload: Dict[str, Any] = {"contents": [{"role": role, "parts": parts}]}
		return await self._post_payload(payload, generation_config=generation_config)

	async def _post_payload(self, payload: Dict[str, Any], *, generation_config: Optional[Dict[str, Any]] = None) -> GenerationResult:
		if generation_config:
			payload = {**payload, "generationConfig": generation_config}
		params = {"key": self.api_key}
		try:
			r = await self._client.post(self.base_url, params=params, json=payload)
		except httpx.RequestError as net_err:
			logger.error("Gemini request failed: %s", net_err)
			raise UpstreamServiceError("Gemini", str(net_err) or net_err.__class__.__name__) from net_err
		if r.is_error:
			message = upstream_message(r)
			logger.error("Gemini returned %s: %s", r.status_code, message)
			raise UpstreamServiceError("Gemini", message, upstream_status=r.status_code)
		try:
			data = GenerateContentResponse.model_validate(r.json())
		except (ValueError, ValidationError) as err:
			raise UpstreamServiceError("Gemini", f"Unexpected Gemini response: {r.text[:300]}") from err
		result = GenerationResult.from_response(data)
		logger.debug("Gemini finish_reason=%s chars=%d", result.finish_reason, len(result.text))
		return result

	async def aclose(self) -> None:
		await self._client.aclose()
