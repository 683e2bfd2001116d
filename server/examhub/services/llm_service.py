"""
LLM Service.

Sends one prompt to the configured text-generation provider and returns the
raw generated text. Two providers are supported:
- gemini: generateContent REST endpoint over the shared httpx client
- openai: chat completions through the OpenAI SDK
"""
import logging
from typing import Any, Dict, Optional

import httpx
import openai
from openai import AsyncOpenAI

from examhub.config import Settings
from examhub.errors import AppError

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "openai")


class LLMService:
    """Text generation client used by the option generators."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        openai_client: Optional[AsyncOpenAI] = None,
    ):
        if settings.llm_provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")
        self.provider = settings.llm_provider
        self.http_client = http_client
        self.url = settings.text_generation_url
        self.temperature = settings.llm_temperature
        self.candidate_count = settings.llm_candidate_count
        self.openai_model = settings.openai_model
        if self.provider == "openai" and openai_client is None:
            openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.openai_client = openai_client

    @staticmethod
    def build_request_body(prompt: str, candidate_count: int, temperature: float) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "candidateCount": candidate_count,
                "temperature": temperature,
            },
        }

    @staticmethod
    def extract_text(payload: Any) -> str:
        """Pull candidates[0].content.parts[0].text out of a generateContent response."""
        try:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AppError.upstream("No valid text in LLM response") from exc
        if not isinstance(text, str):
            raise AppError.upstream("No valid text in LLM response")
        return text

    async def generate_text(self, prompt: str, candidate_count: Optional[int] = None) -> str:
        count = candidate_count or self.candidate_count
        if self.provider == "openai":
            return await self._generate_openai(prompt, count)
        return await self._generate_gemini(prompt, count)

    async def _generate_gemini(self, prompt: str, candidate_count: int) -> str:
        body = self.build_request_body(prompt, candidate_count, self.temperature)
        try:
            response = await self.http_client.post(self.url, json=body)
        except httpx.HTTPError as exc:
            raise AppError.upstream("Failed to send request to LLM API", str(exc)) from exc

        if not response.is_success:
            raise AppError.upstream(f"LLM API error: {response.status_code}", response.text[:500])

        try:
            payload = response.json()
        except ValueError as exc:
            raise AppError.upstream("Failed to parse LLM API JSON", str(exc)) from exc

        return self.extract_text(payload)

    async def _generate_openai(self, prompt: str, candidate_count: int) -> str:
        try:
            completion = await self.openai_client.chat.completions.create(
                model=self.openai_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                n=candidate_count,
            )
        except openai.OpenAIError as exc:
            raise AppError.upstream("OpenAI request failed", str(exc)) from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise AppError.upstream("No valid text in LLM response")
        return content

    async def close(self) -> None:
        if self.openai_client is not None:
            await self.openai_client.close()
