"""
In-memory thumbnail registry.

A process-wide table from video id to (bytes, content type), served back by
``GET /api/thumbnails/{video_id}``. Entries are not durable: they are lost on
restart and the table is cleared at shutdown. All access goes through a lock
because concurrent uploads for different videos insert and remove entries at
the same time.
"""

import logging
import threading

from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredThumbnail:
    data: bytes
    media_type: str


class ThumbnailRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, StoredThumbnail] = {}

    def put(self, video_id: str, data: bytes, media_type: str) -> StoredThumbnail | None:
        """Store a thumbnail, returning the entry it replaced (if any)."""
        _, previous = self.insert(video_id, data, media_type)
        return previous

    def insert(
        self, video_id: str, data: bytes, media_type: str
    ) -> tuple[StoredThumbnail, StoredThumbnail | None]:
        """Store a thumbnail, returning ``(inserted, replaced)``."""
        inserted = StoredThumbnail(data=data, media_type=media_type)
        with self._lock:
            previous = self._entries.get(video_id)
            self._entries[video_id] = inserted
        logger.debug("Registry stored thumbnail for %s (%d bytes)", video_id, len(data))
        return inserted, previous

    def get(self, video_id: str) -> StoredThumbnail | None:
        with self._lock:
            return self._entries.get(video_id)

    def remove(self, video_id: str) -> StoredThumbnail | None:
        with self._lock:
            return self._entries.pop(video_id, None)

    def restore(
        self, video_id: str, inserted: StoredThumbnail, previous: StoredThumbnail | None
    ) -> bool:
        """
        Undo an ``insert``: put back ``previous``, or drop the key when it is None.

        Nothing changes unless ``inserted`` is still the current entry, so a
        later upload for the same video is never clobbered. Returns whether the
        entry was restored.
        """
        with self._lock:
            if self._entries.get(video_id) is not inserted:
                return False
            if previous is None:
                del self._entries[video_id]
            else:
                self._entries[video_id] = previous
        return True

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Thumbnail registry cleared (%d entries)", count)

    def __contains__(self, video_id: object) -> bool:
        with self._lock:
            return video_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
