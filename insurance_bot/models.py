"""Data models used across the bot package."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from insurance_bot.states import Stage

UNKNOWN = "Unknown"

Choice = Tuple[str, str]


@dataclass(frozen=True, slots=True)
class ConversationState:
    """Snapshot of one conversation. Replaced as a whole, never mutated."""

    stage: Stage = Stage.waiting_passport
    passport_image: Optional[bytes] = field(default=None, repr=False)
    vehicle_doc_image: Optional[bytes] = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ExtractedData:
    """Fields recognised on the submitted documents."""

    name: str = UNKNOWN
    surname: str = UNKNOWN
    passport_id: str = UNKNOWN
    vehicle_id: str = UNKNOWN


# ---------- inbound events ----------
@dataclass(frozen=True, slots=True)
class Command:
    text: str


@dataclass(frozen=True, slots=True)
class TextMessage:
    text: str


@dataclass(frozen=True, slots=True)
class Photo:
    """A photo attachment. ``content`` is filled by the runner after download."""

    file_id: str
    content: bytes = field(default=b"", repr=False)


@dataclass(frozen=True, slots=True)
class CallbackAction:
    token: str
    query_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Unsupported:
    kind: str


InboundEvent = Union[Command, TextMessage, Photo, CallbackAction, Unsupported]


# ---------- actions ----------
@dataclass(frozen=True, slots=True)
class Reply:
    text: str


@dataclass(frozen=True, slots=True)
class ReplyWithChoice:
    text: str
    choices: Tuple[Choice, ...]


@dataclass(frozen=True, slots=True)
class RequestExtraction:
    """Extract data from ``image`` and ask the user to confirm it with ``choices``."""

    image: bytes = field(repr=False)
    vehicle_image: Optional[bytes] = field(default=None, repr=False)
    choices: Tuple[Choice, ...] = ()


@dataclass(frozen=True, slots=True)
class RequestGeneration:
    pass


@dataclass(frozen=True, slots=True)
class SendDocument:
    """Send a document; without ``content`` the last generated document is sent."""

    filename: str
    caption: str = ""
    content: Optional[bytes] = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class Delegate:
    text: str
    stage: Stage


Action = Union[Reply, ReplyWithChoice, RequestExtraction, RequestGeneration, SendDocument, Delegate]


__all__ = [
    "UNKNOWN",
    "Action",
    "CallbackAction",
    "Choice",
    "Command",
    "ConversationState",
    "Delegate",
    "ExtractedData",
    "InboundEvent",
    "Photo",
    "Reply",
    "ReplyWithChoice",
    "RequestExtraction",
    "RequestGeneration",
    "SendDocument",
    "TextMessage",
    "Unsupported",
]
