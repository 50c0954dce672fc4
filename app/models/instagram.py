from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, computed_field, field_validator


class MediaType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    CAROUSEL = "carousel"


class Profile(BaseModel):
    username: str
    full_name: str = ""
    biography: str = ""
    followers_count: int = Field(default=0, ge=0)
    following_count: int = Field(default=0, ge=0)
    posts_count: int = Field(default=0, ge=0)
    is_verified: bool = False
    is_private: bool = False
    profile_pic_url: str = ""
    external_url: Optional[str] = None
    category: Optional[str] = None
    business_email: Optional[str] = None
    business_phone: Optional[str] = None
    business_address: Optional[str] = None


class Post(BaseModel):
    id: str = ""
    shortcode: str = ""
    timestamp: datetime
    caption: str = ""
    likes_count: int = Field(default=0, ge=0)
    comments_count: int = Field(default=0, ge=0)
    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)
    media_type: MediaType = MediaType.PHOTO
    url: str = ""

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @computed_field
    @property
    def engagement(self) -> int:
        return self.likes_count + self.comments_count


class ProfileData(BaseModel):
    """A profile together with the posts fetched for it."""

    profile: Profile
    posts: List[Post] = Field(default_factory=list)


class HashtagSample(BaseModel):
    """Public volume of a hashtag plus a sample of posts carrying it."""

    hashtag: str
    total_posts: int = 0
    posts: List[Post] = Field(default_factory=list)
