"""Diagnostic endpoints.

Learn: These replace a pile of one-off debug routes. They are open so a
broken deployment can still be inspected, which is why they only ever
report whether a secret is set and how long it is.
"""

from fastapi import APIRouter, Depends

from littlegabriel.api.deps import get_llm
from littlegabriel.config import settings
from littlegabriel.services.diagnostics import env_report, missing_required
from littlegabriel.services.llm_service import LLMGateway

router = APIRouter(prefix="/debug")


@router.get("/env")
async def debug_env():
    report = env_report(settings)
    report["missing"] = missing_required(settings)
    return report


@router.get("/openai")
async def debug_openai(llm: LLMGateway = Depends(get_llm)):
    """Live OpenAI probe: list models, and look up the assistant in assistant mode."""
    result = {
        "mode": "assistant" if llm.use_assistant_mode() else "completion",
        "connection": await llm.check_connection(),
    }
    if llm.use_assistant_mode():
        result["assistant"] = await llm.check_assistant()
    return result
