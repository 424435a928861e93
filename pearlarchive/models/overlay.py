"""Overlay record models: deletions, edits and favorites."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ItemType(str, Enum):
    """What a deletion record tombstones."""
    THREAD = "thread"
    TWEET = "tweet"


class OverlayModel(BaseModel):
    """Base for records that travel as camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class DeletionRecord(OverlayModel):
    """Tombstone for a whole thread or one tweet inside it."""

    id: int | None = None
    item_type: ItemType
    thread_id: str = Field(min_length=1)
    tweet_index: int | None = None
    deleted_at: datetime | None = None
    deleted_by: str | None = None

    @model_validator(mode="after")
    def _tweet_needs_index(self) -> "DeletionRecord":
        if self.item_type == ItemType.TWEET and self.tweet_index is None:
            raise ValueError("tweet deletion requires tweet_index")
        return self

    @property
    def is_thread(self) -> bool:
        return self.item_type == ItemType.THREAD


class EditRecord(OverlayModel):
    """Replacement text and/or hidden media for one tweet."""

    thread_id: str = Field(min_length=1)
    tweet_index: int
    edited_text: str | None = None
    hidden_media: list[str] | None = None
    edited_at: datetime | None = None
    edited_by: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.thread_id, self.tweet_index)


class FavoriteRecord(OverlayModel):
    """A user's bookmark on a thread."""

    user_id: str
    thread_id: str
    created_at: datetime | None = None


class OverlaySnapshot(BaseModel):
    """Point-in-time copy of the shared overlay state."""

    deletions: list[DeletionRecord] = []
    edits: list[EditRecord] = []
    version: int = 0
    fetched_at: datetime | None = None
    stale: bool = False
