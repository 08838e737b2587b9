"""
Unit tests for settings.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.config import DEFAULT_SYSTEM_PROMPT, Settings
from app.core.exceptions import ConfigurationError
from app.models.chat_session import MESSAGE_CONTENT_MAX_LENGTH


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.FEATURE_CHAT_ENABLED is False
    assert settings.chat_enabled is False
    assert settings.LLM_API_BASE == "https://api.sambanova.ai/v1"
    assert settings.LLM_MODEL == "Meta-Llama-3.1-8B-Instruct"
    assert settings.CHAT_MAX_CONTEXT_MESSAGES == 20
    assert settings.CHAT_MAX_TOKENS == 2048
    assert settings.CHAT_MAX_MESSAGE_LENGTH == 4000
    assert settings.CHAT_RATE_LIMIT_PER_MINUTE == 20
    assert settings.CHAT_DAILY_MESSAGE_QUOTA == 100
    assert settings.CHAT_SYSTEM_PROMPT == DEFAULT_SYSTEM_PROMPT


def test_chat_enabled_requires_api_key():
    with pytest.raises(ConfigurationError):
        Settings(_env_file=None, FEATURE_CHAT_ENABLED=True, LLM_API_KEY="  ").validate_chat_config()


def test_chat_disabled_does_not_need_api_key():
    Settings(_env_file=None, FEATURE_CHAT_ENABLED=False, LLM_API_KEY="").validate_chat_config()


def test_chat_enabled_with_api_key():
    Settings(_env_file=None, FEATURE_CHAT_ENABLED=True, LLM_API_KEY="key").validate_chat_config()


def test_message_length_cannot_exceed_storage_cap():
    Settings(_env_file=None, CHAT_MAX_MESSAGE_LENGTH=MESSAGE_CONTENT_MAX_LENGTH)
    with pytest.raises(PydanticValidationError):
        Settings(_env_file=None, CHAT_MAX_MESSAGE_LENGTH=MESSAGE_CONTENT_MAX_LENGTH + 1)


def test_llm_models_lists_default_first():
    assert Settings(_env_file=None).llm_models == ["Meta-Llama-3.1-8B-Instruct"]

    settings = Settings(
        _env_file=None,
        LLM_MODEL="small",
        LLM_MODELS=" big, small ,,huge ",
    )
    assert settings.llm_models == ["small", "big", "huge"]
