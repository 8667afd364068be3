import time
from typing import Dict, List, Optional
from abc import ABC, abstractmethod

import aiohttp
from loguru import logger

from karetek.config import Settings
from karetek.utils.prometheus_metrics import metrics

ChatMessage = Dict[str, str]

class LLMError(Exception):
    """The completion collaborator failed or returned an unusable reply"""

class LLMClient(ABC):
    provider = "unknown"

    @abstractmethod
    async def complete(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatMessage:
        """Return the single assistant message for ``messages``"""

class OpenAIClient(LLMClient):
    provider = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", base_url: str = "https://api.openai.com/v1"):
        self.api_key = api_key
        self.model = model
        self.base_url = f"{base_url.rstrip('/')}/chat/completions"

    async def complete(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatMessage:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens
        }

        start_time = time.time()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.base_url, headers=headers, json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"OpenAI API error {response.status}: {error_text}")
                        raise LLMError(f"OpenAI API returned status {response.status}")

                    result = await response.json()
                    message = result["choices"][0]["message"]
                    reply = {"role": message.get("role", "assistant"), "content": message.get("content") or ""}

            metrics.record_llm_request(self.provider, time.time() - start_time, success=True)
            return reply

        except LLMError:
            metrics.record_llm_request(self.provider, time.time() - start_time, success=False)
            raise
        except (aiohttp.ClientError, KeyError, IndexError, ValueError) as e:
            metrics.record_llm_request(self.provider, time.time() - start_time, success=False)
            logger.error(f"OpenAI client error: {e}")
            raise LLMError(str(e)) from e

class MockLLMClient(LLMClient):
    """Offline stand-in used when no provider key is configured"""

    provider = "mock"

    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        self.calls: List[List[ChatMessage]] = []

    async def complete(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatMessage:
        self.calls.append(messages)
        metrics.record_llm_request(self.provider, 0.0, success=True)

        if self.reply is not None:
            return {"role": "assistant", "content": self.reply}

        last_user = next(
            (m["content"] for m in reversed(messages) if m.get("role") == "user"),
            ""
        )
        system = messages[0]["content"] if messages and messages[0].get("role") == "system" else ""

        if "translator" in system.lower():
            return {"role": "assistant", "content": last_user}

        if any(word in last_user.lower() for word in ("chest pain", "emergency", "can't breathe")):
            content = (
                "Chest pain or trouble breathing can be serious. If the pain is severe, "
                "spreading to your arm or jaw, or you feel faint, call emergency services now. "
                "Otherwise, how long have you had it and does it change with movement?"
            )
        else:
            content = (
                "Thank you for sharing. How long have you had these symptoms, and how severe "
                "are they on a scale of 1 to 10? Please consult a healthcare professional "
                "for a proper evaluation."
            )
        return {"role": "assistant", "content": content}

class LLMClientFactory:
    @staticmethod
    def create_client(settings: Settings) -> LLMClient:
        provider = settings.llm_provider.lower()

        if provider == "openai" and settings.openai_api_key:
            logger.info(f"Using OpenAI LLM client ({settings.openai_model})")
            return OpenAIClient(
                settings.openai_api_key,
                model=settings.openai_model,
                base_url=settings.openai_base_url,
            )
        elif provider == "openai":
            logger.warning("OPENAI_API_KEY not configured, falling back to mock")
            return MockLLMClient()
        else:
            logger.info("Using mock LLM client")
            return MockLLMClient()
