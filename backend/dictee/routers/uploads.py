from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..dependencies import get_storage
from ..models import User
from ..settings import settings
from ..storage import LocalObjectStorage, image_key
from .auth import get_current_user

router = APIRouter(tags=["uploads"])

UPLOAD_CHUNK_BYTES = 64 * 1024


async def _read_limited(file: UploadFile, limit: int) -> bytes:
	if file.size is not None and file.size > limit:
		raise HTTPException(status_code=413, detail="File too large")
	chunks = []
	received = 0
	while True:
		chunk = await file.read(UPLOAD_CHUNK_BYTES)
		if not chunk:
			break
		received += len(chunk)
		if received > limit:
			raise HTTPException(status_code=413, detail="File too large")
		chunks.append(chunk)
	return b"".join(chunks)


@router.post("/uploads")
async def upload_image(
	file: UploadFile = File(...),
	user: User = Depends(get_current_user),
	storage: LocalObjectStorage = Depends(get_storage),
):
	content_type = file.content_type or "image/jpeg"
	if not content_type.startswith("image/"):
		raise HTTPException(status_code=415, detail="Only images can be uploaded")
	content = await _read_limited(file, settings.max_upload_bytes)
	if not content:
		raise HTTPException(status_code=400, detail="No file uploaded")
	stored = storage.put(image_key(file.filename, content_type), content, content_type)
	return {"url": stored.url}
