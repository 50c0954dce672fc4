"""Turn raw scraper records into canonical :class:`Profile` and :class:`Post` models.

Nothing in here raises on bad input. Missing or malformed fields fall back
to empty values so one odd record never sinks a whole batch.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.models.instagram import MediaType, Post, Profile

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

HASHTAG_RE = re.compile(r"#(\w+)")
MENTION_RE = re.compile(r"@([\w.]+)")

_CAROUSEL_TYPES = {"sidecar", "carousel", "carousel_album", "graphsidecar"}
_VIDEO_TYPES = {"video", "reel", "clips", "graphvideo"}
_PHOTO_TYPES = {"image", "photo", "graphimage"}


def extract_hashtags(text: str) -> List[str]:
    """Lower-cased hashtags found in ``text``, without ``#``, first-seen order."""
    return _unique(tag.lower() for tag in HASHTAG_RE.findall(text or ""))


def extract_mentions(text: str) -> List[str]:
    return MENTION_RE.findall(text or "")


def normalize(
    raw_profile: Dict[str, Any], raw_posts: Iterable[Dict[str, Any]]
) -> Tuple[Profile, List[Post]]:
    profile = normalize_profile(raw_profile)
    posts = [normalize_post(raw) for raw in raw_posts if isinstance(raw, dict)]
    return profile, posts


def normalize_profile(raw: Dict[str, Any]) -> Profile:
    raw = raw if isinstance(raw, dict) else {}
    return Profile(
        username=_str(_first(raw, "username", "ownerUsername", "account")),
        full_name=_str(_first(raw, "fullName", "full_name", "ownerFullName")),
        biography=_str(_first(raw, "biography", "bio")),
        followers_count=_count(_first(raw, "followersCount", "followers")),
        following_count=_count(_first(raw, "followsCount", "followingCount", "following")),
        posts_count=_count(_first(raw, "postsCount", "posts_count")),
        is_verified=_bool(_first(raw, "verified", "isVerified", "is_verified")),
        is_private=_bool(_first(raw, "private", "isPrivate", "is_private")),
        profile_pic_url=_str(_first(raw, "profilePicUrlHD", "profilePicUrl", "profile_pic_url")),
        external_url=_optional_str(_first(raw, "externalUrl", "external_url")),
        category=_optional_str(_first(raw, "businessCategoryName", "category")),
        business_email=_optional_str(_first(raw, "businessEmail", "business_email")),
        business_phone=_optional_str(
            _first(raw, "businessPhoneNumber", "businessPhone", "business_phone")
        ),
        business_address=_address(
            _first(raw, "businessAddressJson", "businessAddress", "business_address")
        ),
    )


def normalize_post(raw: Dict[str, Any]) -> Post:
    raw = raw if isinstance(raw, dict) else {}
    caption = _str(raw.get("caption"))

    hashtags = raw.get("hashtags")
    if isinstance(hashtags, list) and hashtags:
        hashtags = _unique(_str(tag).lstrip("#").lower() for tag in hashtags if _str(tag))
    else:
        hashtags = extract_hashtags(caption)

    mentions = raw.get("mentions")
    if isinstance(mentions, list) and mentions:
        mentions = [_str(m).lstrip("@") for m in mentions if _str(m)]
    else:
        mentions = extract_mentions(caption)

    return Post(
        id=_str(raw.get("id")),
        shortcode=_str(_first(raw, "shortCode", "shortcode")),
        timestamp=_timestamp(_first(raw, "timestamp", "takenAt", "taken_at")),
        caption=caption,
        likes_count=_count(_first(raw, "likesCount", "likes")),
        comments_count=_count(_first(raw, "commentsCount", "comments")),
        hashtags=hashtags,
        mentions=mentions,
        media_type=_media_type(raw),
        url=_str(_first(raw, "url", "displayUrl")),
    )


def _media_type(raw: Dict[str, Any]) -> MediaType:
    explicit = _str(_first(raw, "type", "mediaType", "productType")).lower()
    if explicit in _CAROUSEL_TYPES:
        return MediaType.CAROUSEL
    if explicit in _VIDEO_TYPES:
        return MediaType.VIDEO
    if explicit in _PHOTO_TYPES:
        return MediaType.PHOTO
    children = raw.get("childPosts")
    if isinstance(children, list) and len(children) > 1:
        return MediaType.CAROUSEL
    return MediaType.VIDEO if _bool(raw.get("isVideo")) else MediaType.PHOTO


def _timestamp(value: Any) -> datetime:
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        elif isinstance(value, str) and value.strip():
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        else:
            logger.debug("Post without timestamp, using epoch")
            return EPOCH
    except (ValueError, OverflowError, OSError):
        logger.warning("Unparseable post timestamp %r, using epoch", value)
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _address(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("{"):
            try:
                value = json.loads(stripped)
            except ValueError:
                return stripped or None
        else:
            return stripped or None
    if isinstance(value, dict):
        parts = [_str(part) for part in value.values() if _str(part)]
        return ", ".join(parts) or None
    return None


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional_str(value: Any) -> Optional[str]:
    return _str(value) or None


def _count(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))
