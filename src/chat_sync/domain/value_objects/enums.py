from __future__ import annotations

from enum import StrEnum


class DeliveryState(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    VIDEO = "video"
    POST_SHARE = "post_share"


class SubscriptionState(StrEnum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


class ChannelEventType(StrEnum):
    NEW_MESSAGE = "new_message"
    MESSAGE_READ = "messageRead"
