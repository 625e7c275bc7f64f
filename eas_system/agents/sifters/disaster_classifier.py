"""Disaster classifier: language-model classification with keyword fallback.

Flow per post:
1. Pre-filter signal (computed here if the caller did not pass one).
2. If the signal does not warrant classification, return a non-disaster
   result without touching the model.
3. Otherwise prompt the model for one strict JSON object and parse the
   first JSON object found in the reply.
4. If the model is unavailable, throttled, times out, errors, or replies
   with nothing parseable, return the deterministic keyword fallback.

The fallback depends only on the KeywordSignal, so a network failure and
a malformed reply produce the same result for the same post.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Optional, TypeVar

from eas_system.agents.sifters.base_sifter import BaseSifter
from eas_system.agents.sifters.keyword_prefilter import KeywordPreFilter
from eas_system.config.disaster_keywords import CATEGORY_TO_DISASTER_TYPE
from eas_system.config.disaster_profiles import FALLBACK_RECOMMENDATIONS
from eas_system.config.prompts import DISASTER_CLASSIFICATION_PROMPT
from eas_system.config.settings import settings
from eas_system.data_management.schemas import (
    ClassificationResult,
    DisasterType,
    KeywordSignal,
    RawPost,
    Severity,
    Timeframe,
    Urgency,
)
from eas_system.llm.gemini_client import get_client

NO_DISASTER_SUMMARY = "No disaster indicators detected"
TOP_P = 0.9

E = TypeVar("E", bound=Enum)


def extract_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    First JSON object embedded in a model reply.

    Handles bare JSON, markdown code fences, and prose around the object.

    Args:
        text: Raw model reply

    Returns:
        Parsed dict, or None when no object can be decoded
    """
    if not text:
        return None

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)
    return None


def _parse_enum(enum_cls: type[E], value: Any, default: E) -> E:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _parse_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _parse_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "unknown"):
        return None
    return text


def _parse_population(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        population = int(float(value))
    except (TypeError, ValueError):
        return None
    return population if population >= 0 else None


class DisasterClassifier(BaseSifter):
    """
    Classifies posts as disasters using Gemini, falling back to keywords.

    Attributes:
        prefilter: Keyword pre-filter used when no signal is supplied
        temperature: Sampling temperature for the model
        max_output_tokens: Reply length budget
        timeout: Seconds allowed for one model call
        llm_calls: Number of model invocations attempted
        fallback_count: Number of results produced by the fallback
    """

    def __init__(
        self,
        prefilter: Optional[KeywordPreFilter] = None,
        llm_client: Optional[Any] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the classifier.

        Args:
            prefilter: Shared pre-filter (created if omitted)
            llm_client: Object with generate_content(prompt, **params) -> str.
                Lazily resolved from settings when omitted.
            temperature: Override for settings.llm_temperature
            max_output_tokens: Override for settings.llm_max_output_tokens
            timeout: Override for settings.llm_timeout_seconds
        """
        super().__init__(
            name="DisasterClassifier",
            description="LLM disaster classification with keyword fallback",
        )
        self.prefilter = prefilter or KeywordPreFilter()
        self._llm_client = llm_client
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or settings.llm_max_output_tokens
        self.timeout = timeout or settings.llm_timeout_seconds
        self.llm_calls = 0
        self.fallback_count = 0

    @property
    def llm_client(self):
        """Lazy-load the Gemini client on first access; None without a key."""
        if self._llm_client is None:
            try:
                self._llm_client = get_client()
            except ValueError as e:
                self.logger.warning(f"Gemini client unavailable: {e}")
                return None
        return self._llm_client

    async def classify(
        self,
        post: RawPost,
        signal: Optional[KeywordSignal] = None,
    ) -> ClassificationResult:
        """
        Classify one post.

        Never raises: every model-side failure degrades to the fallback.

        Args:
            post: Post to classify
            signal: Pre-filter output for the post (computed if omitted)

        Returns:
            ClassificationResult
        """
        signal = signal or self.prefilter.analyze_post(post)

        if not signal.warrants_classification:
            self.logger.debug(
                "Below pre-filter threshold, skipping model",
                post_id=post.post_id,
                score=signal.score,
            )
            return self.non_disaster(signal)

        client = self.llm_client
        if client is None:
            return self._fallback_with_log(post, signal, "llm_unavailable")

        prompt = self._build_prompt(post, signal)
        self.llm_calls += 1
        try:
            reply = await asyncio.wait_for(
                asyncio.to_thread(
                    client.generate_content,
                    prompt,
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                    top_p=TOP_P,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return self._fallback_with_log(post, signal, "llm_timeout")
        except Exception as e:
            return self._fallback_with_log(post, signal, f"llm_error: {e}")

        raw = extract_json_object(reply if isinstance(reply, str) else None)
        if raw is None:
            return self._fallback_with_log(post, signal, "unparsable_reply")

        result = self._from_model_output(raw, signal)
        self.logger.info(
            "Post classified",
            post_id=post.post_id,
            is_disaster=result.is_disaster,
            disaster_type=result.disaster_type.value,
            confidence=result.confidence,
        )
        return result

    def _build_prompt(self, post: RawPost, signal: KeywordSignal) -> str:
        return DISASTER_CLASSIFICATION_PROMPT.format(
            platform=post.platform or "unknown",
            community=post.community or "unknown",
            category=signal.dominant_category or "none",
            keywords=", ".join(signal.matched_keywords) or "none",
            title=post.title,
            body=post.body,
        )

    def _from_model_output(self, raw: dict[str, Any], signal: KeywordSignal) -> ClassificationResult:
        """Normalize the model's JSON: unknown enum values degrade, never raise."""
        return ClassificationResult(
            is_disaster=_parse_bool(raw.get("isDisaster", False)),
            disaster_type=DisasterType.parse(raw.get("disasterType")),
            severity=_parse_enum(Severity, raw.get("severity"), Severity.LOW),
            confidence=raw.get("confidence", 0),
            location=_parse_optional_str(raw.get("location")) or signal.location,
            urgency=_parse_enum(Urgency, raw.get("urgency"), Urgency.LOW),
            affected_population=_parse_population(raw.get("affectedPopulation")),
            timeframe=_parse_enum(Timeframe, raw.get("timeframe"), Timeframe.CURRENT),
            summary=str(raw.get("summary") or ""),
            key_indicators=_parse_str_list(raw.get("keyIndicators")) or list(signal.matched_keywords),
            recommendations=_parse_str_list(raw.get("recommendations")),
            used_fallback=False,
        )

    def _fallback_with_log(self, post: RawPost, signal: KeywordSignal, reason: str) -> ClassificationResult:
        self.fallback_count += 1
        self.logger.warning(
            "Classifier falling back to keyword analysis",
            post_id=post.post_id,
            reason=reason,
        )
        return self.fallback(signal)

    @staticmethod
    def fallback(signal: KeywordSignal) -> ClassificationResult:
        """Deterministic classification derived from the keyword signal alone."""
        category = signal.dominant_category
        type_name = CATEGORY_TO_DISASTER_TYPE.get(category or "", DisasterType.OTHER.value)
        return ClassificationResult(
            is_disaster=signal.warrants_classification,
            disaster_type=DisasterType(type_name),
            severity=Severity.MEDIUM if signal.confidence > 70 else Severity.LOW,
            confidence=signal.confidence,
            location=signal.location,
            urgency=Urgency.MEDIUM if signal.confidence > 80 else Urgency.LOW,
            timeframe=Timeframe.CURRENT,
            summary=f"Potential {category or 'unknown'} disaster detected based on keyword analysis",
            key_indicators=list(signal.matched_keywords),
            recommendations=list(FALLBACK_RECOMMENDATIONS),
            used_fallback=True,
        )

    @staticmethod
    def non_disaster(signal: KeywordSignal) -> ClassificationResult:
        """Short-circuit result for posts below the pre-filter threshold."""
        return ClassificationResult(
            is_disaster=False,
            disaster_type=DisasterType.NONE,
            severity=Severity.LOW,
            confidence=signal.confidence,
            urgency=Urgency.LOW,
            summary=NO_DISASTER_SUMMARY,
        )

    async def sift(self, content: dict) -> list[dict]:
        """Classify {'post': {...}} or bare {'title', 'body'} content."""
        post_data = content.get("post") or {
            "post_id": content.get("post_id", "adhoc"),
            "title": content.get("title", ""),
            "body": content.get("body", ""),
        }
        result = await self.classify(RawPost.model_validate(post_data))
        return [result.model_dump(mode="json")]

    def get_stats(self) -> dict:
        stats = super().get_stats()
        stats.update(llm_calls=self.llm_calls, fallback_count=self.fallback_count)
        return stats
