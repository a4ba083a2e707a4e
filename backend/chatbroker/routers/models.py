"""
Models Router

Exposes the models of every initialized provider to the frontend.
"""

from fastapi import APIRouter, Depends

from chatbroker.services.llm.orchestrator import LLMOrchestrator, get_orchestrator


router = APIRouter()


@router.get("", response_model=dict[str, list[str]])
async def get_available_models(
    orchestrator: LLMOrchestrator = Depends(get_orchestrator),
):
    """Return available models grouped by provider."""
    return {
        provider.value: models
        for provider, models in orchestrator.get_available_models().items()
    }
