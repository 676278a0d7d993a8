"""LLM utilities for creating and configuring AI agents."""


import logging
from typing import Optional, Dict, Any, Union

from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIResponsesModel, OpenAIResponsesModelSettings
from pydantic_ai.providers.openai import OpenAIProvider

from sanchalaak.errors import UpstreamReason, UpstreamUnavailable
from sanchalaak.libs.config_loader import ConfigType, get_config


# Fix up logging level for httpx to WARNING to reduce noise
logging.getLogger("httpx").setLevel(logging.WARNING)

LOG = logging.getLogger(__name__)


def create_openai_model(configs: ConfigType, model: Optional[str] = None) -> OpenAIResponsesModel:
    """
    Build an OpenAI model bound to the credentials in the config.

    The key is handed to the client directly rather than exported through the
    environment, so two configs can coexist in one process.

    Raises:
        UpstreamUnavailable: If no API key is configured
    """
    api_key = get_config("openai.api_key", configs, default=None)
    if not api_key:
        raise UpstreamUnavailable(UpstreamReason.CONFIGURATION_MISSING, "openai.api_key is not set")
    organization = get_config("openai.organization", configs, default=None)
    base_url = get_config("openai.base_url", configs, default=None)
    model = model or get_config("openai.model", configs)

    client = AsyncOpenAI(api_key=api_key, organization=organization, base_url=base_url)
    return OpenAIResponsesModel(model, provider=OpenAIProvider(openai_client=client))


def create_agent(configs: ConfigType,
                 model: Optional[Union[str, Model]] = None,
                 settings_dict: Optional[Dict[str, Any]] = None,
                 system_prompt: Optional[str] = None) -> Agent:
    """
    Create a pydantic-ai Agent configured with OpenAI models.

    Args:
        configs: Configuration dictionary (required)
        model: Model name (overrides config value) or a ready pydantic-ai Model
        settings_dict: Pydantic AI settings dict (overrides config values)
        system_prompt: System prompt for the agent (optional)

    Returns:
        Configured Agent

    Raises:
        UpstreamUnavailable: If the OpenAI API key is not found in config
    """
    base_settings = get_config("openai.pydantic_ai_settings", configs, default=None) or {}
    settings_dict = base_settings | (settings_dict or {})
    model_settings = OpenAIResponsesModelSettings(**settings_dict) if settings_dict else None

    if isinstance(model, Model):
        agent_model = model
    else:
        agent_model = create_openai_model(configs, model)

    if system_prompt:
        agent = Agent(
            model=agent_model,
            model_settings=model_settings,
            system_prompt=system_prompt,
            retries=0,
        )
    else:
        agent = Agent(
            model=agent_model,
            model_settings=model_settings,
            retries=0,
        )
    return agent
