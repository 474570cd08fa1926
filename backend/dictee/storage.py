from __future__ import annotations
import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from .settings import settings

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "dictation-images"
ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "heic"}
IMAGE_EXTENSIONS = {
	"image/jpeg": "jpg",
	"image/png": "png",
	"image/gif": "gif",
	"image/webp": "webp",
	"image/heic": "heic",
}


@dataclass(frozen=True)
class StoredObject:
	key: str
	url: str


class LocalObjectStorage:
	"""Writes objects under a directory that the app serves at ``/files``."""

	def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None) -> None:
		self.root = Path(root or settings.storage_dir)
		self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

	def _path_for(self, key: str) -> Path:
		pure = PurePosixPath(key)
		if not key or pure.is_absolute() or ".." in pure.parts:
			raise ValueError(f"invalid storage key: {key!r}")
		return self.root.joinpath(*pure.parts)

	def ensure_root(self) -> None:
		self.root.mkdir(parents=True, exist_ok=True)

	def put(self, key: str, data: bytes, content_type: str) -> StoredObject:
		# No metadata is kept; /files derives Content-Type from the key's extension
		path = self._path_for(key)
		path.parent.mkdir(parents=True, exist_ok=True)
		with open(path, "wb") as f:
			f.write(data)
		logger.info("Stored %s (%s, %d bytes)", key, content_type, len(data))
		return StoredObject(key=key, url=f"{self.public_base_url}/files/{key}")


def image_key(filename: Optional[str], content_type: Optional[str] = None) -> str:
	ext = IMAGE_EXTENSIONS.get((content_type or "").lower())
	if ext is None:
		ext = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else "jpg"
		if ext not in ALLOWED_IMAGE_EXTENSIONS:
			ext = "jpg"
	return f"{IMAGE_PREFIX}/{uuid.uuid4().hex}.{ext}"


def audio_key(user_id: int) -> str:
	return f"{user_id}-dictations/audio-{int(time.time() * 1000)}-{secrets.token_hex(3)}.mp3"
