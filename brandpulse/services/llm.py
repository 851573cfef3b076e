from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from brandpulse import errors
from brandpulse.schemas import SENTIMENTS, SentimentResult, TagSuggestion
from brandpulse.utils.config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_MODEL,
    CLASSIFIER_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_MODEL,
)

logger = logging.getLogger(__name__)

SENTIMENT_SYSTEM = (
    "You are a sentiment analyst for brand monitoring. "
    "Classify the sentiment of the given text and reply with strict JSON: "
    '{"sentiment": "positive" | "negative" | "neutral", "confidence": <0-1>, "reasoning": "<short>"}. '
    "Take business context, irony and sarcasm, colloquial expressions and emoji into account."
)

SENTIMENT_USER = 'Analyze the sentiment of this text: "{text}"'

TAGS_SYSTEM = (
    "You classify content for brand monitoring. Suggest up to 3 relevant tags for the given text. "
    "Existing tags: {existing}. Prefer existing tags when appropriate. "
    'Reply with strict JSON: {{"tags": [{{"tag": "...", "confidence": <0-1>}}]}}. '
    "Focus on aspects such as product, service, delivery, support, quality, price."
)

TAGS_USER = 'Suggest tags for this text: "{text}"'


def _coerce_json(s: str) -> Dict[str, Any]:
    # try plain json first
    try:
        data = json.loads(s)
        if isinstance(data, dict):
            return data
    except (TypeError, ValueError):
        pass
    # try to extract the first {...} block
    m = re.search(r"\{.*\}", s or "", flags=re.S)
    if m:
        try:
            data = json.loads(m.group(0))
            if isinstance(data, dict):
                return data
        except ValueError:
            pass
    raise ValueError("LLM did not return valid JSON")


def _clamp(v: Any, default: float = 0.5) -> float:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return default
    if x != x:  # NaN
        return default
    return max(0.0, min(1.0, x))


def parse_sentiment(raw: str) -> SentimentResult:
    data = _coerce_json(raw)
    label = str(data.get("sentiment") or "").strip().lower()
    return SentimentResult(
        sentiment=label if label in SENTIMENTS else "neutral",
        confidence=_clamp(data.get("confidence")),
        reasoning=data.get("reasoning") or None,
    )


def parse_tags(raw: str) -> List[TagSuggestion]:
    data = _coerce_json(raw)
    out: List[TagSuggestion] = []
    for t in data.get("tags", []) or []:
        if not isinstance(t, dict) or not str(t.get("tag") or "").strip():
            continue
        out.append(TagSuggestion(tag=str(t["tag"]).strip(), confidence=_clamp(t.get("confidence"))))
    return out[:3]


class SentimentClassifier:
    """
    Sends text to an LLM and maps the reply onto a sentiment.

    Tries OpenAI, then Anthropic. Clients are created lazily so missing
    keys don't crash import.
    """

    def __init__(
        self,
        openai_api_key: str = OPENAI_API_KEY,
        anthropic_api_key: str = ANTHROPIC_API_KEY,
        timeout: float = CLASSIFIER_TIMEOUT,
    ):
        self.openai_api_key = openai_api_key
        self.anthropic_api_key = anthropic_api_key
        self.timeout = timeout
        self._openai_client = None
        self._anthropic_client = None

    def _get_openai(self):
        if self._openai_client is None and self.openai_api_key:
            from openai import OpenAI
            self._openai_client = OpenAI(api_key=self.openai_api_key)
        return self._openai_client

    def _get_anthropic(self):
        if self._anthropic_client is None and self.anthropic_api_key:
            from anthropic import Anthropic
            self._anthropic_client = Anthropic(api_key=self.anthropic_api_key)
        return self._anthropic_client

    def _complete(self, system: str, user: str) -> str:
        """Blocking call to the first configured provider that answers."""
        failures: List[str] = []

        # 1) OpenAI
        oai = self._get_openai()
        if oai:
            try:
                msg = oai.chat.completions.create(
                    model=OPENAI_MODEL,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    response_format={"type": "json_object"},
                    temperature=0.2,
                )
                return msg.choices[0].message.content or ""
            except Exception as e:
                logger.warning("OpenAI request failed: %s", e)
                failures.append(f"openai: {e}")

        # 2) Anthropic fallback
        claude = self._get_anthropic()
        if claude:
            try:
                msg = claude.messages.create(
                    model=ANTHROPIC_MODEL,
                    max_tokens=400,
                    temperature=0.2,
                    system=system,
                    messages=[{"role": "user", "content": user}],
                )
                # anthropic returns content as blocks
                return "".join(block.text for block in msg.content if getattr(block, "type", "") == "text")
            except Exception as e:
                logger.warning("Anthropic request failed: %s", e)
                failures.append(f"anthropic: {e}")

        if not failures:
            raise errors.ClassificationError("No sentiment provider configured")
        raise errors.ClassificationError("Sentiment analysis failed: " + "; ".join(failures))

    async def _ask(self, system: str, user: str) -> str:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._complete, system, user), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise errors.ClassificationError(f"Sentiment provider timed out after {self.timeout:g}s")

    async def classify(self, text: str) -> SentimentResult:
        raw = await self._ask(SENTIMENT_SYSTEM, SENTIMENT_USER.format(text=text[:8000]))
        try:
            return parse_sentiment(raw)
        except ValueError as e:
            raise errors.ClassificationError(f"Sentiment analysis failed: {e}") from e

    async def suggest_tags(self, text: str, existing_tags: Optional[Sequence[str]] = None) -> List[TagSuggestion]:
        """Best effort: any failure yields no suggestions."""
        system = TAGS_SYSTEM.format(existing=", ".join(existing_tags or []) or "none")
        try:
            raw = await self._ask(system, TAGS_USER.format(text=text[:8000]))
            return parse_tags(raw)
        except (errors.ClassificationError, ValueError) as e:
            logger.warning("tag suggestion failed: %s", e)
            return []
