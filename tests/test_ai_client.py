# tests/test_ai_client.py
#
# Requires pytest, pytest-mock and pytest-asyncio installed.

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

import httpx

from termwise.ai_client import AICommandClient, DEFAULT_USER_TEMPLATE


@pytest.fixture
def fake_ollama():
    client = MagicMock()
    client.chat = AsyncMock(return_value={'message': {'content': 'df -h'}})
    client.list = AsyncMock(return_value={'models': []})
    return client


def test_build_messages_uses_configured_prompts(base_config, fake_ollama):
    ai = AICommandClient(base_config, client=fake_ollama)
    assert ai.build_messages("show disk usage") == [
        {'role': 'system', 'content': 'sys'},
        {'role': 'user', 'content': 'Q: show disk usage'},
    ]


def test_defaults_when_sections_missing(fake_ollama):
    ai = AICommandClient({}, client=fake_ollama)
    assert ai.model == "llama3.2"
    assert ai.timeout_seconds == 10
    assert ai.user_template == DEFAULT_USER_TEMPLATE


def test_builds_async_client_from_config(base_config, mocker):
    mock_cls = mocker.patch('termwise.ai_client.ollama.AsyncClient')
    AICommandClient(base_config)
    mock_cls.assert_called_once_with(host="http://localhost:11434", timeout=10)


@pytest.mark.asyncio
async def test_request_command_passes_model_and_options(base_config, fake_ollama):
    ai = AICommandClient(base_config, client=fake_ollama)

    answer = await ai.request_command("show disk usage")

    assert answer == "df -h"
    fake_ollama.chat.assert_awaited_once_with(
        model="test-model",
        messages=ai.build_messages("show disk usage"),
        options={'num_predict': 100, 'temperature': 0.1},
    )


@pytest.mark.asyncio
async def test_request_command_empty_content(base_config, fake_ollama):
    fake_ollama.chat.return_value = {'message': {'content': None}}
    ai = AICommandClient(base_config, client=fake_ollama)
    assert await ai.request_command("anything") == ""


@pytest.mark.asyncio
async def test_request_command_propagates_provider_errors(base_config, fake_ollama):
    fake_ollama.chat.side_effect = httpx.ConnectError("refused")
    ai = AICommandClient(base_config, client=fake_ollama)
    with pytest.raises(httpx.ConnectError):
        await ai.request_command("show disk usage")


@pytest.mark.asyncio
async def test_is_available(base_config, fake_ollama):
    ai = AICommandClient(base_config, client=fake_ollama)
    assert await ai.is_available() is True

    fake_ollama.list.side_effect = ConnectionError("down")
    assert await ai.is_available() is False


@pytest.mark.asyncio
async def test_is_available_times_out(base_config, fake_ollama):
    base_config["ai"]["timeout_seconds"] = 0.05

    async def hang():
        await asyncio.sleep(10)

    fake_ollama.list = hang
    ai = AICommandClient(base_config, client=fake_ollama)
    assert await ai.is_available() is False
