from typing import Literal

from pydantic import BaseModel, Field

ROOT_PARENT_ID = "0"

MediaKind = Literal["image", "video", "audio"]


class Post(BaseModel):
    id: str
    parent_id: str = ROOT_PARENT_ID
    title: str
    message: str
    attachment: str | None = None
    last_activity: int = Field(ge=0, description="Milliseconds since epoch")

    @property
    def is_root(self) -> bool:
        return self.parent_id == ROOT_PARENT_ID


class StoredAttachment(BaseModel):
    name: str
    size: int


class ListingEntry(BaseModel):
    id: str
    title: str
    message: str
    truncated: bool = False
    read_more: str | None = None
    attachment: str | None = None
    media_kind: MediaKind | None = None
    reply_count: int = 0
    display_color: str


class ListingPage(BaseModel):
    page: int
    posts: list[ListingEntry] = Field(default_factory=list)
    has_next: bool = False
    has_prev: bool = False
    next_page: int | None = None
    prev_page: int | None = None


class ThreadEntry(BaseModel):
    label: str
    id: str
    title: str
    message: str
    attachment: str | None = None
    media_kind: MediaKind | None = None


class ThreadView(BaseModel):
    parent_id: str
    posts: list[ThreadEntry] = Field(default_factory=list)
