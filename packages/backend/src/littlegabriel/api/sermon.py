"""Sermon generation endpoint."""

from fastapi import APIRouter, Depends, HTTPException

from littlegabriel.api.deps import get_llm
from littlegabriel.schemas.llm import Sermon, SermonRequest
from littlegabriel.services.llm_service import LLMConfigurationError, LLMGateway
from littlegabriel.services.sermon_service import generate_sermon

router = APIRouter()


@router.post("/sermon", response_model=Sermon)
async def create_sermon(body: SermonRequest, llm: LLMGateway = Depends(get_llm)):
    """Generate a structured sermon. Nothing is stored."""
    if not body.bible_passage or not body.theme:
        raise HTTPException(status_code=400, detail="Bible passage and theme are required")
    if not llm.configured:
        raise LLMConfigurationError(
            "OpenAI API key is not configured. Please contact the administrator."
        )
    return await generate_sermon(llm, body)
