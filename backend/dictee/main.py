from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .db import Base, engine, ensure_schema
from .errors import DicteeError
from .settings import settings
from .storage import LocalObjectStorage
from .routers import auth, correction, dictation, uploads
from .routers import settings as settings_routes
from .services.settings_resolver import MODE_GLOBAL, MODE_PER_USER

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
	logging.basicConfig(
		level=getattr(logging, level.upper(), logging.INFO),
		format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
	)
	# httpx logs every request URL at INFO, which would include the Gemini key
	logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
	"""Prepare the database and the storage directory on startup."""
	Base.metadata.create_all(bind=engine)
	ensure_schema()
	app.state.storage.ensure_root()
	yield


def create_app(
	settings_mode: Optional[str] = None,
	storage: Optional[LocalObjectStorage] = None,
	http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
	mode = settings_mode or settings.settings_mode
	if mode not in (MODE_GLOBAL, MODE_PER_USER):
		raise ValueError(f"SETTINGS_MODE must be '{MODE_GLOBAL}' or '{MODE_PER_USER}', got {mode!r}")

	app = FastAPI(title="Dictée API", version="0.1.0", lifespan=lifespan)
	app.state.settings_mode = mode
	app.state.storage = storage or LocalObjectStorage()
	app.state.http_transport = http_transport

	@app.exception_handler(DicteeError)
	async def dictee_error_handler(request: Request, exc: DicteeError):
		if exc.status_code >= 500:
			logger.error("%s on %s: %s", exc.__class__.__name__, request.url.path, exc.message)
		else:
			logger.info("%s on %s: %s", exc.__class__.__name__, request.url.path, exc.message)
		return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

	app.include_router(auth.router)
	app.include_router(uploads.router)
	app.include_router(settings_routes.router)
	if mode == MODE_PER_USER:
		app.include_router(settings_routes.api_key_router)
	else:
		app.include_router(settings_routes.admin_router)
	app.include_router(dictation.router)
	app.include_router(correction.router)

	# Root is created by the lifespan
	app.mount("/files", StaticFiles(directory=app.state.storage.root, check_dir=False), name="files")

	@app.get("/info")
	def info():
		return {"status": "ok", "settings_mode": mode}

	return app


configure_logging(settings.log_level)
app = create_app()
