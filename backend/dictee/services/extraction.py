from __future__ import annotations
import base64
import logging
import re
from typing import List, Optional

import httpx

from ..errors import UpstreamServiceError
from ..gemini_client import GeminiClient
from ..prompts import DEFAULT_EXTRACTION_PROMPT
from ..settings import settings

logger = logging.getLogger(__name__)

EXTRACTION_CONFIG = {"temperature": 0.1, "maxOutputTokens": 2048}

_SEPARATORS = re.compile(r"[,\n]+")


def split_words(text: str) -> List[str]:
	"""Split a comma/newline separated model answer, keeping order and duplicates."""
	return [w.strip() for w in _SEPARATORS.split(text or "") if w.strip()]


async def fetch_image(image_url: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> tuple[bytes, str]:
	async with httpx.AsyncClient(timeout=settings.http_timeout, transport=transport, follow_redirects=True) as client:
		try:
			r = await client.get(image_url)
			r.raise_for_status()
		except httpx.HTTPStatusError as err:
			raise UpstreamServiceError("Image", f"could not download {image_url}", upstream_status=err.response.status_code) from err
		except httpx.RequestError as err:
			raise UpstreamServiceError("Image", f"could not download {image_url}: {err}") from err
	mime_type = r.headers.get("content-type", "").split(";")[0].strip() or "image/jpeg"
	return r.content, mime_type


async def extract_words(
	image_url: str,
	*,
	gemini: GeminiClient,
	prompt: Optional[str] = None,
	transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[str]:
	image_bytes, mime_type = await fetch_image(image_url, transport=transport)
	parts = [
		{"text": prompt or DEFAULT_EXTRACTION_PROMPT},
		{"inline_data": {"mime_type": mime_type, "data": base64.b64encode(image_bytes).decode("ascii")}},
	]
	result = await gemini.generate_multimodal(parts, generation_config=EXTRACTION_CONFIG)
	# A filtered reply is not an empty word list
	result.raise_if_blocked("Word extraction")
	words = split_words(result.text)
	logger.info("Extracted %d words from %s", len(words), image_url)
	return words
