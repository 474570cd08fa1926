"""
Correction engine: photographed attempt -> extracted text -> model diff -> score.

One run walks PENDING -> EXTRACTED -> ANALYZED -> SCORED and never goes back.
Persisting the outcome (the PERSISTED state) is the caller's job so that a
failed run leaves no row behind. There are no retries here.
"""

from __future__ import annotations
import enum
import json
import logging
import re
import string
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..errors import ResponseFormatError
from ..gemini_client import GeminiClient
from ..prompts import DEFAULT_ANALYSIS_PROMPT, build_analysis_prompt
from ..schemas import AnalysisPayload, CorrectionError, CorrectionOutcome
from .extraction import extract_words

logger = logging.getLogger(__name__)

ANALYSIS_CONFIG = {"temperature": 0.2, "maxOutputTokens": 4096}

# Greedy on purpose: from the first "{" to the last "}"
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

_STRIP = string.punctuation + "«»“”‘’…–—"


class CorrectionState(str, enum.Enum):
	PENDING = "pending"
	EXTRACTED = "extracted"
	ANALYZED = "analyzed"
	SCORED = "scored"


def compute_score(correct_words: int, total_words: int) -> int:
	"""round(100 * correct / total) with halves rounded up; 0 when there are no words."""
	if total_words <= 0:
		return 0
	correct_words = max(0, min(correct_words, total_words))
	return (200 * correct_words + total_words) // (2 * total_words)


def parse_analysis(text: str) -> AnalysisPayload:
	match = _JSON_BLOCK.search(text or "")
	if not match:
		raise ResponseFormatError("invalid response format", {"reason": "no JSON object in model output"})
	try:
		data: Dict[str, Any] = json.loads(match.group(0))
	except json.JSONDecodeError as err:
		raise ResponseFormatError("invalid response format", {"reason": f"JSON decode failed: {err.msg}"}) from err
	try:
		return AnalysisPayload.model_validate(data)
	except ValidationError as err:
		raise ResponseFormatError("invalid response format", {"reason": "unexpected JSON shape"}) from err


def _normalize(token: str) -> str:
	return token.strip(_STRIP).lower()


def anchor_position(reference_words: List[str], original: str, position: int) -> int:
	"""
	Pin an error to a 1-based word index of the reference text.

	The model's position is kept when the reference word there matches the
	first token of ``original``; otherwise the nearest matching index wins
	(the earlier one on a tie). Without any match the model's position is
	clamped into range.
	"""
	if not reference_words:
		return max(1, position)
	pos = max(1, min(position, len(reference_words)))
	tokens = original.split()
	target = _normalize(tokens[0]) if tokens else ""
	if not target or _normalize(reference_words[pos - 1]) == target:
		return pos
	matches = [i for i, word in enumerate(reference_words, start=1) if _normalize(word) == target]
	if not matches:
		return pos
	return min(matches, key=lambda i: (abs(i - pos), i))


class CorrectionEngine:
	def __init__(self, gemini: GeminiClient, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.gemini = gemini
		self.transport = transport
		self.state = CorrectionState.PENDING

	async def extract(self, image_url: str, prompt: Optional[str] = None) -> str:
		words = await extract_words(image_url, gemini=self.gemini, prompt=prompt, transport=self.transport)
		self.state = CorrectionState.EXTRACTED
		# Line breaks and spacing from the photo are not preserved
		return " ".join(words)

	async def analyze(self, reference_text: str, user_text: str, prompt: Optional[str] = None) -> AnalysisPayload:
		full_prompt = build_analysis_prompt(prompt or DEFAULT_ANALYSIS_PROMPT, reference_text, user_text)
		result = await self.gemini.generate(full_prompt, generation_config=ANALYSIS_CONFIG)
		result.raise_if_blocked("Correction analysis")
		payload = parse_analysis(result.text)
		self.state = CorrectionState.ANALYZED
		return payload

	def score(self, reference_text: str, user_text: str, payload: AnalysisPayload) -> CorrectionOutcome:
		reference_words = reference_text.split()
		errors = [
			CorrectionError(
				type=e.type,
				original=e.original,
				user=e.user,
				explanation=e.explanation,
				position=anchor_position(reference_words, e.original, e.position),
			)
			for e in payload.errors
		]
		outcome = CorrectionOutcome(
			extracted_user_text=user_text,
			errors=errors,
			total_words=payload.total_words,
			correct_words=payload.correct_words,
			score=compute_score(payload.correct_words, payload.total_words),
			feedback=payload.feedback,
		)
		self.state = CorrectionState.SCORED
		return outcome

	async def run(
		self,
		reference_text: str,
		image_url: str,
		*,
		extraction_prompt: Optional[str] = None,
		analysis_prompt: Optional[str] = None,
	) -> CorrectionOutcome:
		if self.state is not CorrectionState.PENDING:
			raise RuntimeError(f"correction run already in state {self.state.value}")
		user_text = await self.extract(image_url, extraction_prompt)
		payload = await self.analyze(reference_text, user_text, analysis_prompt)
		outcome = self.score(reference_text, user_text, payload)
		logger.info(
			"Correction scored %d/100 (%d/%d words, %d errors)",
			outcome.score, outcome.correct_words, outcome.total_words, len(outcome.errors),
		)
		return outcome
