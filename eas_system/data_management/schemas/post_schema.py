"""Schemas for ingested posts and the keyword signal derived from them.

RawPost is supplied by ingestion and never changes afterwards.
KeywordSignal is recomputed per post by the pre-filter, handed to the
classifier, and never persisted.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class RawPost(BaseModel):
    """A social-media post as delivered by ingestion."""

    post_id: str = Field(..., description="Platform-unique post identifier")
    title: str = Field(default="", description="Post title")
    body: str = Field(default="", description="Post body text")
    platform: str = Field(default="reddit", description="Source platform")
    community: str = Field(
        default="", description="Originating community or channel (e.g. subreddit)"
    )
    author: str = Field(default="", description="Author handle")
    score: int = Field(default=0, description="Popularity score (upvotes, likes)")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the post was created",
    )
    url: Optional[str] = Field(default=None, description="Permalink to the post")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "post_id": "t3_abc123",
                    "title": "7.2 magnitude earthquake near San Francisco",
                    "body": "Buildings shaking downtown, people evacuated.",
                    "platform": "reddit",
                    "community": "earthquake",
                    "author": "quakewatcher",
                    "score": 412,
                    "created_at": "2026-10-18T14:05:00Z",
                }
            ]
        },
    }

    @property
    def text(self) -> str:
        """Title and body joined for keyword scanning."""
        return f"{self.title} {self.body}".strip()


class KeywordSignal(BaseModel):
    """Output of the keyword pre-filter for a single post."""

    score: int = Field(default=0, ge=0, description="Aggregate keyword score")
    confidence: int = Field(
        default=0, ge=0, le=95, description="min(score * 5, 95)"
    )
    matched_categories: list[str] = Field(
        default_factory=list,
        description="Lexicon categories with at least one match, in lexicon order",
    )
    matched_keywords: list[str] = Field(
        default_factory=list, description="Distinct keywords that matched"
    )
    category_scores: dict[str, int] = Field(
        default_factory=dict, description="Score contributed by each category"
    )
    dominant_category: Optional[str] = Field(
        default=None, description="Category driving the fallback disaster type"
    )
    magnitude_mentions: list[str] = Field(
        default_factory=list, description="Magnitude phrases found in the text"
    )
    location: Optional[str] = Field(
        default=None, description="Candidate location phrase"
    )
    warrants_classification: bool = Field(
        default=False, description="True when score reaches the classification threshold"
    )

    model_config = {"frozen": True}
