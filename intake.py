"""Adding a link to a user's queue: parse, dedupe, resolve, store, search mirrors."""

import logging
from typing import Optional

from data.video_store import VideoStore
from matching.worker import AlternativeSearchJob, AlternativeSearchQueue
from platforms.parser import YOUTUBE, parse_video_url
from platforms.resolver import MetadataResolverProtocol

logger = logging.getLogger(__name__)


class IntakeError(Exception):
    """A link could not be added to the queue."""


class UnrecognizedLinkError(IntakeError):
    def __init__(self, text: str):
        super().__init__("Not a supported video link")
        self.text = text


class AlreadyQueuedError(IntakeError):
    def __init__(self, video: dict):
        super().__init__("Video is already in the queue")
        self.video = video


class VideoIntake:
    def __init__(self, store: VideoStore, resolver: MetadataResolverProtocol,
                 search_queue: Optional[AlternativeSearchQueue] = None):
        self.store = store
        self.resolver = resolver
        self.search_queue = search_queue

    async def add_link(self, user_id: int, text: str) -> dict:
        """Queue the first supported link in `text` for `user_id`. Returns the stored row.

        Raises UnrecognizedLinkError or AlreadyQueuedError.
        """
        parsed = parse_video_url(text)
        if parsed is None:
            raise UnrecognizedLinkError(text)

        existing = self.store.find_video(user_id, parsed.platform, parsed.external_id)
        if existing:
            raise AlreadyQueuedError(existing)

        metadata = await self.resolver.resolve(parsed.platform, parsed.external_id)
        video, created = self.store.insert_video(
            user_id=user_id,
            platform=parsed.platform,
            external_id=parsed.external_id,
            url=parsed.url,
            title=metadata.title,
            channel_name=metadata.channel_name,
            thumbnail_url=metadata.thumbnail_url,
            duration=metadata.duration,
        )
        if not created:
            # another request queued the same link while metadata was resolving
            raise AlreadyQueuedError(video)
        logger.info(f"User {user_id} queued {parsed.platform}:{parsed.external_id} "
                    f"({metadata.source}) {metadata.title!r}")

        # Mirrors are searched only for YouTube roots with real metadata
        if parsed.platform == YOUTUBE and not metadata.is_stub and self.search_queue is not None:
            self.search_queue.enqueue(AlternativeSearchJob(
                title=metadata.title,
                channel=metadata.channel_name,
                owner_id=user_id,
                root_video_id=video["id"],
            ))
        return video
