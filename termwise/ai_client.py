# termwise/ai_client.py

import asyncio
import logging
from typing import Optional

import httpx
import ollama

logger = logging.getLogger(__name__)

AI_CONFIG_SECTION = "ai"
DEFAULT_HOST = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2"
DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_TOKENS = 100
DEFAULT_TEMPERATURE = 0.1

DEFAULT_SYSTEM_PROMPT = (
    "You are a Linux terminal command generator. Convert the user's request into exactly one "
    "valid Linux shell command. Respond ONLY with the command itself: no explanations, no markdown, "
    "no quotes. If the request cannot be expressed as a single command, respond with exactly: I_DONT_UNDERSTAND"
)
DEFAULT_USER_TEMPLATE = "Natural language: {phrase}\nCommand:"


class AICommandClient:
    """Thin async wrapper over the Ollama chat API for phrase -> command translation.

    Raises the provider's exceptions unchanged; mapping them onto resolution
    errors is the resolver's job.
    """

    def __init__(self, config: dict, client: Optional[ollama.AsyncClient] = None):
        section = config.get(AI_CONFIG_SECTION, {})
        prompts = config.get("prompts", {}).get("translator", {})
        self.enabled = section.get("enabled", True)
        self.host = section.get("host", DEFAULT_HOST)
        self.model = section.get("model", DEFAULT_MODEL)
        self.timeout_seconds = section.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
        self.max_tokens = section.get("max_tokens", DEFAULT_MAX_TOKENS)
        self.temperature = section.get("temperature", DEFAULT_TEMPERATURE)
        self.system_prompt = prompts.get("system", DEFAULT_SYSTEM_PROMPT)
        self.user_template = prompts.get("user_template", DEFAULT_USER_TEMPLATE)
        self._client = client or ollama.AsyncClient(host=self.host, timeout=self.timeout_seconds)
        logger.info(f"AICommandClient configured: model={self.model}, host={self.host}, enabled={self.enabled}")

    def build_messages(self, phrase: str) -> list:
        return [
            {'role': 'system', 'content': self.system_prompt},
            {'role': 'user', 'content': self.user_template.format(phrase=phrase)},
        ]

    async def request_command(self, phrase: str) -> str:
        """Sends phrase to the model and returns its raw text answer."""
        logger.info(f"Requesting AI translation for: '{phrase}' (model: {self.model})")
        response = await self._client.chat(
            model=self.model,
            messages=self.build_messages(phrase),
            options={'num_predict': self.max_tokens, 'temperature': self.temperature},
        )
        content = response['message']['content'] or ""
        logger.debug(f"Raw AI response for '{phrase}': {content!r}")
        return content

    async def is_available(self) -> bool:
        """Checks if the Ollama server is running and responsive by trying to list models."""
        try:
            await asyncio.wait_for(self._client.list(), timeout=self.timeout_seconds)
            logger.info("Ollama server is running and responsive.")
            return True
        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError, ConnectionError, asyncio.TimeoutError) as e:
            logger.info(f"Ollama server appears to be down or unreachable: {e}")
            return False
