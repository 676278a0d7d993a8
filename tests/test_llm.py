"""Unit tests for agent creation and the LLM client."""

import httpx
import pytest
from openai import APIConnectionError
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import ModelResponse, SystemPromptPart, TextPart, UserPromptPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from sanchalaak.errors import MalformedResponse, UpstreamReason, UpstreamUnavailable
from sanchalaak.libs.llm import create_agent
from sanchalaak.tools.keyword_grading.llm_client import LLMClient, LLMRequest, classify_http_error


def model_returning(text):
    def respond(messages, info: AgentInfo) -> ModelResponse:
        return ModelResponse(parts=[TextPart(content=text)])
    return FunctionModel(respond)


def model_raising(error):
    def respond(messages, info: AgentInfo) -> ModelResponse:
        raise error
    return FunctionModel(respond)


class TestCreateAgent:
    """Test the create_agent function."""

    def test_create_agent_with_defaults(self):
        config_map = {
            "openai": {
                "api_key": "test-key",
                "organization": "test-org",
                "model": "gpt-4o-mini",
                "pydantic_ai_settings": {"temperature": 0.1}
            }
        }

        agent = create_agent(config_map)

        assert isinstance(agent, Agent)

    def test_create_agent_with_model_override_and_base_url(self):
        configs = {
            "openai": {
                "api_key": "custom-key",
                "base_url": "http://localhost:8000/v1",
                "model": "gpt-4o-mini"
            }
        }

        agent = create_agent(configs=configs, model="gpt-4.1", settings_dict={"max_tokens": 500})

        assert agent is not None

    def test_create_agent_missing_api_key(self):
        """A missing key is a configuration error, not a KeyError."""
        with pytest.raises(UpstreamUnavailable) as exc_info:
            create_agent({"openai": {"model": "gpt-4o-mini"}})
        assert exc_info.value.reason == UpstreamReason.CONFIGURATION_MISSING
        assert exc_info.value.action.value == "contact_support"

    def test_create_agent_with_model_instance_needs_no_key(self):
        agent = create_agent({}, model=model_returning("hi"), system_prompt="Be brief.")
        assert agent.run_sync("hello").output == "hi"


@pytest.mark.parametrize("status,body,expected", [
    (429, None, UpstreamReason.RATE_LIMIT),
    (429, {"error": {"code": "insufficient_quota"}}, UpstreamReason.QUOTA_EXHAUSTED),
    (402, None, UpstreamReason.QUOTA_EXHAUSTED),
    (401, None, UpstreamReason.AUTH_FAILURE),
    (403, "forbidden", UpstreamReason.AUTH_FAILURE),
    (500, None, UpstreamReason.SERVER_ERROR),
    (503, "overloaded", UpstreamReason.SERVER_ERROR),
])
def test_classify_http_error(status, body, expected):
    assert classify_http_error(status, body) == expected


class TestLLMClient:

    def test_missing_key_fails_at_construction(self):
        with pytest.raises(UpstreamUnavailable) as exc_info:
            LLMClient({"openai": {"model": "gpt-4o-mini"}})
        assert exc_info.value.reason == UpstreamReason.CONFIGURATION_MISSING

    def test_agents_per_role(self, sample_config):
        client = LLMClient(sample_config, model="gpt-4.1")
        assert set(client.agents) == {"extract", "evaluate"}
        assert client.model_name == "gpt-4.1"

    @pytest.mark.asyncio
    async def test_complete_returns_text_and_sends_role_prompt(self, sample_config):
        seen = {}

        def respond(messages, info: AgentInfo) -> ModelResponse:
            parts = [part for message in messages for part in message.parts]
            seen['system'] = [p.content for p in parts if isinstance(p, SystemPromptPart)]
            seen['user'] = [p.content for p in parts if isinstance(p, UserPromptPart)]
            return ModelResponse(parts=[TextPart(content='["entropy"]')])

        client = LLMClient(sample_config, model=FunctionModel(respond))

        text = await client.complete(LLMRequest(role="extract", prompt="List keywords"))

        assert text == '["entropy"]'
        assert seen['user'] == ["List keywords"]
        assert "keyword extraction" in seen['system'][0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,reason", [
        (429, None, UpstreamReason.RATE_LIMIT),
        (429, {"code": "insufficient_quota"}, UpstreamReason.QUOTA_EXHAUSTED),
        (401, None, UpstreamReason.AUTH_FAILURE),
        (502, None, UpstreamReason.SERVER_ERROR),
    ])
    async def test_http_errors_mapped(self, sample_config, status, body, reason):
        error = ModelHTTPError(status_code=status, model_name="function", body=body)
        client = LLMClient(sample_config, model=model_raising(error))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.complete(LLMRequest(role="evaluate", prompt="Evaluate this"))

        assert exc_info.value.reason == reason
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_connection_error_is_network(self, sample_config):
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        client = LLMClient(sample_config, model=model_raising(APIConnectionError(request=request)))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.complete(LLMRequest(role="evaluate", prompt="Evaluate this"))

        assert exc_info.value.reason == UpstreamReason.NETWORK
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_blank_output_is_malformed(self, sample_config):
        client = LLMClient(sample_config, model=model_returning("   "))

        with pytest.raises(MalformedResponse):
            await client.complete(LLMRequest(role="evaluate", prompt="Evaluate this"))

    def test_empty_prompt_rejected(self):
        with pytest.raises(ValueError):
            LLMRequest(role="extract", prompt="")
        with pytest.raises(ValueError):
            LLMRequest(role="summarize", prompt="hello")
