"""Capture publisher module for pub/sub lifecycle notifications."""

import logging

from pubsub import pub

from ..models.events import CaptureEvent

logger = logging.getLogger(__name__)

CAPTURE_TOPIC = "capture.lifecycle"


class CapturePublisher:
    """Publishes capture lifecycle events using pubsub.pub.

    Pass ``publish_capture_event`` as the capture session manager's listener;
    subscribers receive the event as the ``event`` keyword argument.
    """

    def __init__(self, topic: str = CAPTURE_TOPIC):
        """Initialize capture publisher.

        Args:
            topic: Pub/sub topic name for capture events
        """
        self.topic = topic
        logger.info(f"CapturePublisher initialized with topic: {topic}")

    def publish_capture_event(self, capture_event: CaptureEvent) -> None:
        """Publish a capture event to the pub/sub topic.

        Args:
            capture_event: CaptureEvent to publish
        """
        pub.sendMessage(self.topic, event=capture_event)
        logger.debug(f"Published capture event: {capture_event.event_type}")
