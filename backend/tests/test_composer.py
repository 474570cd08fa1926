import pytest

from dictee.errors import ContentBlockedError, EmptyGenerationError
from dictee.gemini_client import GeminiClient
from dictee.services.composer import clamp_length, compose_dictation, fallback_length

from conftest import gemini_reply

WORDS = ["tapisserie", "siècle", "document"]


async def _compose(upstream, **kwargs):
	client = GeminiClient("k", transport=upstream.transport)
	try:
		return await compose_dictation(WORDS, gemini=client, **kwargs)
	finally:
		await client.aclose()


@pytest.mark.asyncio
async def test_happy_path_returns_trimmed_text(upstream):
	upstream.queue_gemini(gemini_reply("  Au **siècle** dernier, une tapisserie ornait le document.  \n"))
	text = await _compose(upstream)
	assert text == "Au siècle dernier, une tapisserie ornait le document."
	assert len(upstream.gemini_calls) == 1


@pytest.mark.asyncio
async def test_prompt_fills_placeholders(upstream):
	upstream.queue_gemini(gemini_reply("Texte."))
	await _compose(upstream, target_length=120)
	prompt = upstream.gemini_prompt(0)
	assert "tapisserie, siècle, document" in prompt
	assert "environ 120 mots" in prompt
	assert "utilisant 3 mots" in prompt
	assert "[liste des mots]" not in prompt
	assert "pas de formatage markdown" in prompt


@pytest.mark.asyncio
async def test_custom_template_without_placeholder_gets_word_list(upstream):
	upstream.queue_gemini(gemini_reply("Texte."))
	await _compose(upstream, prompt="Écris une histoire de pirates.")
	prompt = upstream.gemini_prompt(0)
	assert prompt.startswith("Écris une histoire de pirates.")
	assert "MOTS À UTILISER : tapisserie, siècle, document" in prompt


@pytest.mark.asyncio
async def test_blocked_first_attempt_fails_without_retry(upstream):
	upstream.queue_gemini(gemini_reply("", finish_reason="RECITATION"))
	with pytest.raises(ContentBlockedError) as info:
		await _compose(upstream)
	assert info.value.finish_reason == "RECITATION"
	assert len(upstream.gemini_calls) == 1


@pytest.mark.asyncio
async def test_prompt_level_block_counts_as_blocked(upstream):
	upstream.queue_gemini({"candidates": [], "promptFeedback": {"blockReason": "SAFETY"}})
	with pytest.raises(ContentBlockedError):
		await _compose(upstream)
	assert len(upstream.gemini_calls) == 1


@pytest.mark.asyncio
async def test_empty_first_attempt_retries_with_shorter_prompt(upstream):
	upstream.queue_gemini(gemini_reply("   "), gemini_reply("Le document du siècle."))
	text = await _compose(upstream, target_length=200)
	assert text == "Le document du siècle."
	assert len(upstream.gemini_calls) == 2
	fallback = upstream.gemini_prompt(1)
	assert "environ 100 mots" in fallback
	assert len(fallback) < len(upstream.gemini_prompt(0))


@pytest.mark.asyncio
async def test_empty_twice_raises(upstream):
	upstream.queue_gemini(gemini_reply(""), gemini_reply(""))
	with pytest.raises(EmptyGenerationError):
		await _compose(upstream)
	assert len(upstream.gemini_calls) == 2


@pytest.mark.asyncio
async def test_blocked_fallback_is_reported_as_blocked(upstream):
	upstream.queue_gemini(gemini_reply(""), gemini_reply("", finish_reason="SAFETY"))
	with pytest.raises(ContentBlockedError):
		await _compose(upstream)


@pytest.mark.asyncio
async def test_requires_words(upstream):
	client = GeminiClient("k", transport=upstream.transport)
	try:
		with pytest.raises(ValueError):
			await compose_dictation([], gemini=client)
	finally:
		await client.aclose()
	assert upstream.calls == []


def test_length_bounds():
	assert clamp_length(None) == 150
	assert clamp_length(10) == 50
	assert clamp_length(1000) == 300
	assert fallback_length(60) == 50
	assert fallback_length(300) == 150
