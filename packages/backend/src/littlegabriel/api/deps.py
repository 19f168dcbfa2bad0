"""Shared route dependencies for app-scoped clients.

Learn: The Bible client and the LLM gateway are built once in create_app()
and kept on app.state. Routes get them through these functions, which is
also the seam tests override with app.dependency_overrides.
"""

from fastapi import Request

from littlegabriel.services.bible_service import BibleClient
from littlegabriel.services.llm_service import LLMGateway


def get_bible_client(request: Request) -> BibleClient:
    return request.app.state.bible_client


def get_llm(request: Request) -> LLMGateway:
    return request.app.state.llm
