"""
Available models endpoint.

Returns the list of selectable AI models for the configured upstream provider.
"""

from fastapi import APIRouter

from app.api.deps import CurrentUser, LLMProvider, SettingsDep
from app.models.chat import ModelInfo

router = APIRouter()


@router.get("")
async def list_available_models(
    user: CurrentUser,
    llm_provider: LLMProvider,
    settings: SettingsDep,
):
    """List available AI models for model selection."""
    default_model_id = settings.LLM_MODEL
    models = [
        ModelInfo(id=m, name=m, is_default=(m == default_model_id))
        for m in llm_provider.get_available_models()
    ]

    return {
        "provider": llm_provider.get_model_name(),
        "default_model_id": default_model_id,
        "models": models,
    }
