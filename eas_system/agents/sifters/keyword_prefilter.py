"""Keyword pre-filter gating the paid classification stage.

Scores post text against the categorized disaster lexicon:

- each distinct keyword found (case-insensitive substring) adds its
  category weight once, however often it occurs
- a quoted magnitude ("6.2 magnitude", "richter 7") adds a flat bonus
- an extractable location phrase adds a smaller bonus

A post warrants classification when the score reaches the threshold
(15 by default). That threshold bounds how many posts reach the model,
so it is the main cost control of the pipeline.

The filter never raises: text without matches yields a zero signal.
"""

import re
from typing import Optional

from eas_system.agents.sifters.base_sifter import BaseSifter
from eas_system.config.disaster_keywords import (
    CATEGORY_TO_DISASTER_TYPE,
    CATEGORY_WEIGHTS,
    CONFIDENCE_CAP,
    CONFIDENCE_MULTIPLIER,
    DEFAULT_CATEGORY_WEIGHT,
    DISASTER_KEYWORDS,
    LOCATION_BONUS,
    LOCATION_PATTERNS,
    MAGNITUDE_BONUS,
    MAGNITUDE_PATTERNS,
)
from eas_system.config.settings import settings
from eas_system.data_management.schemas import KeywordSignal, RawPost

_MAGNITUDE_RES = [re.compile(pattern, re.IGNORECASE) for pattern in MAGNITUDE_PATTERNS]
_LOCATION_RES = [re.compile(pattern) for pattern in LOCATION_PATTERNS]


def extract_location(text: str) -> Optional[str]:
    """First location phrase found by the capitalized-phrase heuristics."""
    for pattern in _LOCATION_RES:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def find_magnitudes(text: str) -> list[str]:
    mentions: list[str] = []
    for pattern in _MAGNITUDE_RES:
        for match in pattern.finditer(text):
            phrase = match.group(0).strip()
            if phrase not in mentions:
                mentions.append(phrase)
    return mentions


class KeywordPreFilter(BaseSifter):
    """
    Cheap, synchronous scoring of post text.

    Attributes:
        threshold: Score at or above which classification is warranted
    """

    def __init__(self, threshold: Optional[int] = None):
        """
        Initialize the pre-filter.

        Args:
            threshold: Override for settings.prefilter_threshold
        """
        super().__init__(
            name="KeywordPreFilter",
            description="Scores posts against the disaster keyword lexicon",
        )
        self.threshold = settings.prefilter_threshold if threshold is None else threshold

    def analyze(self, text: str) -> KeywordSignal:
        """
        Score a text.

        Args:
            text: Title and body, in original case

        Returns:
            KeywordSignal for the text
        """
        text = text or ""
        lowered = text.lower()

        score = 0
        matched_categories: list[str] = []
        matched_keywords: list[str] = []
        category_scores: dict[str, int] = {}

        for category, keywords in DISASTER_KEYWORDS.items():
            weight = CATEGORY_WEIGHTS.get(category, DEFAULT_CATEGORY_WEIGHT)
            hits = [kw for kw in dict.fromkeys(keywords) if kw.lower() in lowered]
            if not hits:
                continue
            contribution = weight * len(hits)
            score += contribution
            category_scores[category] = contribution
            matched_categories.append(category)
            for kw in hits:
                if kw not in matched_keywords:
                    matched_keywords.append(kw)

        magnitudes = find_magnitudes(text)
        if magnitudes:
            score += MAGNITUDE_BONUS

        location = extract_location(text)
        if location:
            score += LOCATION_BONUS

        signal = KeywordSignal(
            score=score,
            confidence=min(score * CONFIDENCE_MULTIPLIER, CONFIDENCE_CAP),
            matched_categories=matched_categories,
            matched_keywords=matched_keywords,
            category_scores=category_scores,
            dominant_category=self._dominant_category(category_scores),
            magnitude_mentions=magnitudes,
            location=location,
            warrants_classification=score >= self.threshold,
        )

        self.logger.debug(
            "Pre-filter scored text",
            score=signal.score,
            categories=signal.matched_categories,
            warrants=signal.warrants_classification,
        )
        return signal

    def analyze_post(self, post: RawPost) -> KeywordSignal:
        return self.analyze(post.text)

    @staticmethod
    def _dominant_category(category_scores: dict[str, int]) -> Optional[str]:
        """
        Category that decides the fallback disaster type.

        Prefers categories that name a disaster; impact/emergency/alerts
        only win when nothing else matched. Ties go to lexicon order
        (dicts keep insertion order and max() keeps the first maximum).
        """
        if not category_scores:
            return None
        typed = {
            category: contribution
            for category, contribution in category_scores.items()
            if category in CATEGORY_TO_DISASTER_TYPE
        }
        pool = typed or category_scores
        return max(pool, key=pool.get)

    async def sift(self, content: dict) -> list[dict]:
        """Score {'title', 'body'} or {'text'} content."""
        text = content.get("text")
        if text is None:
            text = f"{content.get('title', '')} {content.get('body', '')}".strip()
        return [self.analyze(text).model_dump()]
