"""
Dictation composition.

Generation runs as a fixed two-attempt machine:

    PRIMARY  --blocked-->  ContentBlockedError
             --text---->   done
             --empty--->   FALLBACK
    FALLBACK --blocked-->  ContentBlockedError
             --text---->   done
             --empty--->   EmptyGenerationError
"""

from __future__ import annotations
import enum
import logging
import re
from typing import List, Optional

from ..errors import EmptyGenerationError
from ..gemini_client import GeminiClient, GenerationResult
from ..prompts import DEFAULT_DICTATION_PROMPT, build_dictation_prompt, build_fallback_prompt

logger = logging.getLogger(__name__)

MIN_LENGTH = 50
MAX_LENGTH = 300
DEFAULT_LENGTH = 150

COMPOSE_CONFIG = {"temperature": 0.7, "maxOutputTokens": 2048}

_EMPHASIS = re.compile(r"(\*\*|__)")


class Attempt(str, enum.Enum):
	PRIMARY = "primary"
	FALLBACK = "fallback"


def clamp_length(target_length: Optional[int]) -> int:
	if target_length is None:
		return DEFAULT_LENGTH
	return max(MIN_LENGTH, min(MAX_LENGTH, int(target_length)))


def fallback_length(target_length: int) -> int:
	return max(MIN_LENGTH, target_length // 2)


def _clean(text: str) -> str:
	return _EMPHASIS.sub("", text or "").strip()


def _check(result: GenerationResult, attempt: Attempt) -> str:
	result.raise_if_blocked(f"Dictation generation ({attempt.value} attempt)")
	return _clean(result.text)


async def compose_dictation(
	words: List[str],
	*,
	gemini: GeminiClient,
	target_length: Optional[int] = None,
	prompt: Optional[str] = None,
) -> str:
	if not words:
		raise ValueError("at least one word is required")
	length = clamp_length(target_length)

	primary = build_dictation_prompt(prompt or DEFAULT_DICTATION_PROMPT, words, length)
	text = _check(await gemini.generate(primary, generation_config=COMPOSE_CONFIG), Attempt.PRIMARY)
	if text:
		return text

	short = fallback_length(length)
	logger.info("Empty dictation on primary attempt; retrying with a %d-word simplified prompt", short)
	text = _check(await gemini.generate(build_fallback_prompt(words, short), generation_config=COMPOSE_CONFIG), Attempt.FALLBACK)
	if text:
		return text
	raise EmptyGenerationError(
		"Le modèle a renvoyé une dictée vide après deux tentatives.",
		{"attempts": [Attempt.PRIMARY.value, Attempt.FALLBACK.value]},
	)
