"""Thread, tweet and media models for the base corpus."""

import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pearlarchive.core.text import split_ordinal

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_YEAR_RE = re.compile(r"^(\d{4})")


class MediaType(str, Enum):
    """Media kind, covering both corpus representations."""
    IMAGE = "image"
    VIDEO = "video"
    PHOTO = "photo"
    ANIMATED_GIF = "animated_gif"


class Category(str, Enum):
    """Fixed category labels. Threads may also carry free-form labels."""
    PEARL = "Pearl"
    TWEETORIAL = "Tweetorial"
    CASE_STUDY = "Case Study"
    ECHO = "Echo"
    HEMODYNAMICS = "Hemodynamics"
    TREATMENT = "Treatment"
    DIAGNOSIS = "Diagnosis"
    VIDEO = "Video"
    IMAGE = "Image"
    GENERAL = "General"


class Media(BaseModel):
    """A single image or video attached to a tweet."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: MediaType = MediaType.IMAGE
    path: str
    remote: bool | None = None
    video_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_rich_media(cls, data: Any) -> Any:
        # Richer export rows carry local_path/media_url instead of path
        if isinstance(data, dict) and "path" not in data:
            path = data.get("local_path") or data.get("media_url")
            if path:
                data = {**data, "path": path}
        return data

    @property
    def is_remote(self) -> bool:
        if self.remote is not None:
            return self.remote
        return bool(_SCHEME_RE.match(self.path))

    @property
    def is_video(self) -> bool:
        return self.type in (MediaType.VIDEO, MediaType.ANIMATED_GIF)

    @property
    def src(self) -> str:
        """Display path: remote URLs as-is, local paths rooted at /."""
        if self.is_remote:
            return self.path
        return self.path if self.path.startswith("/") else f"/{self.path}"

    @property
    def playback_url(self) -> str:
        return self.video_url or self.src


class Tweet(BaseModel):
    """One post inside a thread."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str | None = None
    timestamp: float | None = None
    text: str = ""
    media: list[Media] = []

    # Position in the original corpus sequence; the join key for overlays
    original_index: int | None = None

    @property
    def ordinal(self) -> int | None:
        """Leading thread marker, 3 for "3/ ...", None when absent."""
        return split_ordinal(self.text)[0]


class Answer(BaseModel):
    """Hidden answer revealed on demand by the UI."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    text: str | None = None
    media: list[Media] | None = None


class Thread(BaseModel):
    """A thread of tweets from the immutable corpus."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    type: Literal["thread", "single"] = "thread"
    date: str = ""
    year: int | None = None
    tweet_count: int = 0
    is_pearl: bool = False
    categories: list[str] = []
    media: list[Media] = []
    tweets: list[Tweet] = []
    answer: Answer | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        tweets = data.get("tweets")
        if isinstance(tweets, list):
            data["tweets"] = [_tag_index(tweet, i) for i, tweet in enumerate(tweets)]
            if data.get("tweet_count") is None:
                data["tweet_count"] = len(tweets)

        if data.get("year") is None and isinstance(data.get("date"), str):
            match = _YEAR_RE.match(data["date"])
            if match:
                data["year"] = int(match.group(1))

        if isinstance(data.get("id"), int):
            data["id"] = str(data["id"])
        return data

    @property
    def has_media(self) -> bool:
        return bool(self.media) or any(t.media for t in self.tweets)

    @property
    def original_indices(self) -> list[int]:
        return [t.original_index for t in self.tweets]


def _tag_index(tweet: Any, index: int) -> Any:
    """Stamp a tweet with its corpus position unless it already has one."""
    if isinstance(tweet, Tweet):
        if tweet.original_index is None:
            return tweet.model_copy(update={"original_index": index})
        return tweet
    if isinstance(tweet, dict) and tweet.get("original_index") is None:
        return {**tweet, "original_index": index}
    return tweet
