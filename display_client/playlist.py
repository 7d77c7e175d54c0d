"""
Playlist building blocks
Turns a TV's broadcast records into an ordered, deduplicated list of
playable items
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional
import enum
import logging

from display_client.api import APIError

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 15  # seconds


class MediaKind(enum.Enum):
    VIDEO = 'video'
    IMAGE = 'image'
    DOCUMENT = 'document'
    NONE = 'none'


# Highest priority first
MEDIA_PRIORITY = (
    (MediaKind.VIDEO, 'videoUrl'),
    (MediaKind.IMAGE, 'imageUrl'),
    (MediaKind.DOCUMENT, 'docUrl'),
)


@dataclass(frozen=True)
class MediaRef:
    """What a playlist slot shows, decided once when the content is loaded"""
    kind: MediaKind
    url: Optional[str] = None

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> 'MediaRef':
        for kind, key in MEDIA_PRIORITY:
            url = content.get(key)
            if isinstance(url, str) and url.strip():
                return cls(kind, url.strip())
        return cls(MediaKind.NONE)

    @property
    def is_placeholder(self):
        return self.kind is MediaKind.NONE


@dataclass(frozen=True)
class PlaylistItem:
    content_id: str
    title: str
    duration: float
    media: MediaRef

    @classmethod
    def from_content(cls, content: Dict[str, Any], default_duration=DEFAULT_DURATION) -> 'PlaylistItem':
        return cls(
            content_id=str(content['id']),
            title=content.get('title') or '',
            duration=normalize_duration(content.get('duration'), default_duration),
            media=MediaRef.from_content(content)
        )


def normalize_duration(value, default=DEFAULT_DURATION):
    """Missing, non-numeric or sub-second durations fall back to the default"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value < 1:
        return default
    return value


def _content_ids(record):
    value = record.get('contentId')
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return [str(value)] if value is not None else []


def live_content_ids(records: Iterable[Dict[str, Any]]) -> List[str]:
    """
    Content ids referenced by active records, each once, first-seen order

    Paused and stopped records do not play.
    """
    seen = {}
    for record in records:
        if record.get('status') != 'active':
            continue
        for content_id in _content_ids(record):
            seen.setdefault(content_id, None)
    return list(seen)


def build_playlist(records: Iterable[Dict[str, Any]],
                   fetch_content: Callable[[str], Dict[str, Any]],
                   default_duration=DEFAULT_DURATION) -> List[PlaylistItem]:
    """
    Resolve every live content id into a playlist item

    Content that cannot be fetched is logged and skipped; the rest of the
    playlist is still built. Content without any media keeps its slot.
    """
    items = []
    for content_id in live_content_ids(records):
        try:
            content = fetch_content(content_id)
            items.append(PlaylistItem.from_content(content, default_duration))
        except (APIError, KeyError) as e:
            logger.warning(f'Skipping content {content_id}: {e}')
    return items
