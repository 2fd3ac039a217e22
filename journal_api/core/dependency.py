# journal_api/core/dependency.py
from fastapi import Request

from journal_api.analysis.ai_providers.base import AIService
from journal_api.analysis.ai_providers.openai import OpenAIAIService
from journal_api.core.config import OPENAI_API_KEY, OPENAI_CHAT_MODEL, OPENAI_INSIGHT_MODEL


def build_ai_service() -> AIService:
    """Construct the process-wide AI service. Called once at startup."""
    return OpenAIAIService(
        api_key=OPENAI_API_KEY,
        chat_model=OPENAI_CHAT_MODEL,
        insight_model=OPENAI_INSIGHT_MODEL,
    )


def get_ai_service(request: Request) -> AIService:
    service = getattr(request.app.state, "ai_service", None)
    if service is None:
        raise RuntimeError("AI service not initialised; build_ai_service() runs at startup")
    return service
