"""LLM collaborator: prompt in, unstructured text out."""

import logging
from typing import Any, Dict, Literal, Optional, Union

from openai import APIConnectionError
from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models import Model

from sanchalaak.errors import MalformedResponse, UpstreamReason, UpstreamUnavailable
from sanchalaak.libs.config_loader import ConfigType
from sanchalaak.libs.llm import create_agent
from .prompts import EVALUATION_SYSTEM_PROMPT, EXTRACTION_SYSTEM_PROMPT

LOG = logging.getLogger(__name__)

Role = Literal["extract", "evaluate"]

SYSTEM_PROMPTS: Dict[str, str] = {
    "extract": EXTRACTION_SYSTEM_PROMPT,
    "evaluate": EVALUATION_SYSTEM_PROMPT,
}


class LLMRequest(BaseModel):
    """One call to the LLM service."""
    role: Role = Field(description="Which task the prompt is for")
    prompt: str = Field(min_length=1, description="User prompt sent to the model")


def classify_http_error(status_code: int, body: Any = None) -> UpstreamReason:
    """Map an HTTP failure from the model provider to a reason code."""
    body_text = str(body or "").lower()
    if status_code == 402 or "insufficient_quota" in body_text:
        return UpstreamReason.QUOTA_EXHAUSTED
    if status_code == 429:
        return UpstreamReason.RATE_LIMIT
    if status_code in (401, 403):
        return UpstreamReason.AUTH_FAILURE
    return UpstreamReason.SERVER_ERROR


class LLMClient:
    """Run extraction and evaluation prompts through pydantic-ai agents."""

    def __init__(self, configs: ConfigType,
                 model: Optional[Union[str, Model]] = None,
                 settings: Optional[Dict[str, Any]] = None):
        """
        Initialize the client.

        Args:
            configs: Configuration dictionary (required)
            model: Model name or pydantic-ai Model (overrides config value)
            settings: Pydantic AI settings dict (overrides config values)

        Raises:
            UpstreamUnavailable: With reason configuration_missing if no API key is set
        """
        self.configs = configs
        self.model_name = model if isinstance(model, str) else None
        self.agents: Dict[str, Agent] = {
            role: create_agent(
                configs=configs,
                model=model,
                settings_dict=settings,
                system_prompt=system_prompt,
            )
            for role, system_prompt in SYSTEM_PROMPTS.items()
        }

    async def complete(self, request: LLMRequest) -> str:
        """
        Send a prompt and return the raw model text.

        Raises:
            UpstreamUnavailable: On HTTP or transport failure
            MalformedResponse: If the model produced no usable text
        """
        agent = self.agents[request.role]
        LOG.debug("Sending %s prompt (%d chars)", request.role, len(request.prompt))
        try:
            result = await agent.run(request.prompt)
        except ModelHTTPError as e:
            reason = classify_http_error(e.status_code, e.body)
            LOG.warning("LLM HTTP error %s (%s)", e.status_code, reason.value)
            raise UpstreamUnavailable(reason, f"HTTP {e.status_code}") from e
        except APIConnectionError as e:
            raise UpstreamUnavailable(UpstreamReason.NETWORK, str(e)) from e
        except UnexpectedModelBehavior as e:
            raise MalformedResponse(f"Unexpected model behavior: {e}", raw_text=str(e.body or "")) from e
        except AgentRunError as e:
            if isinstance(e.__cause__, APIConnectionError):
                raise UpstreamUnavailable(UpstreamReason.NETWORK, str(e)) from e
            raise UpstreamUnavailable(UpstreamReason.SERVER_ERROR, str(e)) from e

        text = result.output if hasattr(result, 'output') else str(result)
        if not isinstance(text, str) or not text.strip():
            raise MalformedResponse("No content in AI response", raw_text=str(text or ""))
        return text
