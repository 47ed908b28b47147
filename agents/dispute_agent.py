"""
DisputeAgent: asks the model for a structured opinion on one consultation form.

Required env:
  - OPENAI_API_KEY
  - OPENAI_API_BASE_URL (optional)
  - DISPUTE_MODEL_NAME (optional, defaults to gpt-5-nano)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import Any, Iterable, Optional

from autogen_agentchat.agents import AssistantAgent
from autogen_agentchat.messages import BaseChatMessage
from autogen_core import CancellationToken
from autogen_core.models import ChatCompletionClient, ModelInfo
from autogen_ext.models.openai import OpenAIChatCompletionClient
from pydantic import ValidationError

from consultation_state import AnalysisResult, DisputeForm

from .dispute_prompts import SYSTEM_PROMPT, analysis_prompt

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AnalysisError(RuntimeError):
    """Raised when the model could not produce a usable analysis."""

    def __init__(self, message: str = "An error occurred during analysis. Please try again shortly.") -> None:
        super().__init__(message)
        self.user_message = message


def parse_analysis(text: str) -> AnalysisResult:
    """Parse the model's JSON reply, tolerating a surrounding code fence."""
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    if not cleaned:
        raise AnalysisError("The AI response was empty.")
    try:
        return AnalysisResult.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.debug("Unparseable analysis output: %s", cleaned)
        raise AnalysisError() from exc


class DisputeAgent:
    """Single-turn AutoGen assistant that returns an `AnalysisResult`."""

    def __init__(
        self,
        *,
        openai_model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        model_client: Optional[ChatCompletionClient] = None,
    ) -> None:
        if model_client is None:
            if not os.getenv("OPENAI_API_KEY"):
                raise EnvironmentError("OPENAI_API_KEY is not set.")
            model_client = self._build_openai_client(
                openai_model_name=openai_model_name or os.getenv("DISPUTE_MODEL_NAME", "gpt-5-nano"),
                temperature=temperature,
            )
        self._model_client = model_client
        self._assistant = AssistantAgent(
            name="dispute_analyst",
            model_client=self._model_client,
            system_message=SYSTEM_PROMPT,
            description="Produces a technical and legal opinion on a plumbing dispute.",
            tools=[],
            max_tool_iterations=1,
        )

    def analyze(self, form: DisputeForm) -> AnalysisResult:
        return self._run_async(self.analyze_async(form))

    async def analyze_async(self, form: DisputeForm) -> AnalysisResult:
        form.validate()
        logger.info("DisputeAgent analysing %s / %s consultation", form.role, form.issue_type)
        try:
            await self._assistant.on_reset(CancellationToken())
            result = await self._assistant.run(task=analysis_prompt(form))
            text = self._extract_text(result.messages)
        except AnalysisError:
            raise
        except Exception as exc:
            logger.exception("Analysis request failed: %s", exc)
            raise AnalysisError() from exc
        logger.debug("DisputeAgent raw output: %s", text)
        analysis = parse_analysis(text)
        logger.info("Analysis finished (consultable=%s)", analysis.isConsultationPossible)
        return analysis

    def _extract_text(self, messages: Iterable[Any]) -> str:
        for message in reversed(list(messages)):
            if isinstance(message, BaseChatMessage):
                return message.to_text().strip()
        raise AnalysisError("The AI response was empty.")

    @staticmethod
    def _build_openai_client(*, openai_model_name: str, temperature: Optional[float]) -> ChatCompletionClient:
        model_info: ModelInfo = {
            "vision": False,
            "function_calling": False,
            "json_output": True,
            "structured_output": False,
            "family": "openai",
        }
        client_kwargs = {
            "model": openai_model_name,
            "api_key": os.environ["OPENAI_API_KEY"],
            "base_url": os.getenv("OPENAI_API_BASE_URL", "https://api.openai.com/v1"),
            "include_name_in_message": False,
            "model_info": model_info,
        }
        if temperature is not None:
            client_kwargs["temperature"] = temperature
        return OpenAIChatCompletionClient(**client_kwargs)

    @staticmethod
    def _run_async(coro: asyncio.Future[Any] | asyncio.coroutines.Coroutine[Any, Any, Any]) -> Any:
        try:
            return asyncio.run(coro)
        except RuntimeError as exc:
            if "event loop is running" in str(exc):
                loop = asyncio.get_event_loop()
                return loop.run_until_complete(coro)
            raise
