from __future__ import annotations
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends
from pydantic import AnyHttpUrl, Field
from sqlalchemy.orm import Session

from .. import repository
from ..db import get_db
from ..dependencies import gemini_for, get_resolver, get_transport
from ..models import User
from ..schemas import CamelModel, CorrectionError, CorrectionOut
from ..services.correction import CorrectionEngine
from .auth import get_current_user

router = APIRouter(prefix="/correction", tags=["correction"])


class AnalyzeRequest(CamelModel):
	original_text: str = Field(min_length=1)
	user_image_url: AnyHttpUrl
	session_id: Optional[int] = None


class AnalyzeResponse(CamelModel):
	id: int
	extracted_user_text: str
	errors: List[CorrectionError]
	total_words: int
	correct_words: int
	score: int
	feedback: str


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
	req: AnalyzeRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	resolver=Depends(get_resolver),
	transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
):
	config = resolver.resolve(user)
	if req.session_id is not None:
		repository.get_session(db, req.session_id, user.id)
	image_url = str(req.user_image_url)
	client = gemini_for(config.require_gemini_key(), transport)
	try:
		outcome = await CorrectionEngine(client, transport=transport).run(
			req.original_text,
			image_url,
			extraction_prompt=config.prompt_extraction,
			analysis_prompt=config.prompt_analysis,
		)
	finally:
		await client.aclose()
	row = repository.create_correction(
		db,
		user.id,
		original_text=req.original_text,
		user_image_url=image_url,
		outcome=outcome,
		session_id=req.session_id,
	)
	return AnalyzeResponse(id=row.id, **outcome.model_dump())


@router.get("/history", response_model=List[CorrectionOut])
async def history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return [CorrectionOut.from_row(r) for r in repository.list_corrections(db, user.id)]


@router.get("/{correction_id}", response_model=CorrectionOut)
async def get_correction(correction_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return CorrectionOut.from_row(repository.get_correction(db, correction_id, user.id))
