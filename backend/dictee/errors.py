"""
Application exceptions.

Services raise these; ``main.py`` registers a single handler that turns any
``DicteeError`` into a JSON response with the matching status code.
"""

from __future__ import annotations
from typing import Any, Dict, Optional


class DicteeError(Exception):
	status_code: int = 500

	def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None) -> None:
		self.message = message
		self.details = details or {}
		if status_code is not None:
			self.status_code = status_code
		super().__init__(message)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"error": self.__class__.__name__,
			"message": self.message,
			"details": self.details,
		}


class ConfigurationError(DicteeError):
	"""No usable credentials were resolved for the caller."""
	status_code = 412


class UpstreamServiceError(DicteeError):
	"""Gemini, ElevenLabs or the image host answered with an error or was unreachable."""
	status_code = 502

	def __init__(self, service: str, message: str, *, upstream_status: Optional[int] = None) -> None:
		details: Dict[str, Any] = {"service": service}
		if upstream_status is not None:
			details["upstream_status"] = upstream_status
		super().__init__(f"{service} API error: {message}", details)
		self.service = service
		self.upstream_status = upstream_status


class ContentBlockedError(DicteeError):
	"""Generation stopped by a safety/recitation filter. Retrying the same input is pointless."""
	status_code = 422

	def __init__(self, finish_reason: str) -> None:
		super().__init__(
			"La génération a été bloquée par les filtres de contenu. "
			"Essayez avec moins de mots ou des mots différents.",
			{"finish_reason": finish_reason},
		)
		self.finish_reason = finish_reason


class ResponseFormatError(DicteeError):
	"""The model answered, but not in the shape we asked for."""
	status_code = 502


class EmptyGenerationError(ResponseFormatError):
	pass


class AuthorizationError(DicteeError):
	status_code = 403


class NotFoundError(DicteeError):
	status_code = 404
