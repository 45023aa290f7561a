"""Interfaces of the services the conversation runner depends on."""

from __future__ import annotations

from typing import Hashable, Optional, Protocol, Sequence

from insurance_bot.models import Choice, ExtractedData
from insurance_bot.states import Stage


class CollaboratorError(Exception):
    """Base class for failures of an external service."""


class TransportError(CollaboratorError):
    """Raised when the chat transport fails to deliver or fetch something."""

    def __init__(self, message: str, *, transient: bool = True) -> None:
        super().__init__(message)
        self.transient = transient


class ExtractionError(CollaboratorError):
    """Raised when the document extraction service is unavailable."""


class GenerationError(CollaboratorError):
    """Raised when the policy document cannot be rendered."""


class ResponderError(CollaboratorError):
    """Raised when the free-text assistant does not produce an answer."""


class Transport(Protocol):
    async def send_text(
        self,
        chat_id: Hashable,
        text: str,
        choices: Optional[Sequence[Choice]] = None,
    ) -> None: ...

    async def send_document(
        self,
        chat_id: Hashable,
        content: bytes,
        filename: str,
        caption: str = "",
    ) -> None: ...

    async def acknowledge(self, query_id: str) -> None: ...

    async def download_attachment(self, file_id: str) -> bytes: ...


class Extractor(Protocol):
    async def extract(self, image: bytes, vehicle_image: Optional[bytes] = None) -> ExtractedData: ...


class Generator(Protocol):
    def generate(self) -> bytes: ...


class Responder(Protocol):
    async def respond(self, text: str, stage: Stage) -> str: ...


__all__ = [
    "CollaboratorError",
    "ExtractionError",
    "Extractor",
    "GenerationError",
    "Generator",
    "Responder",
    "ResponderError",
    "Transport",
    "TransportError",
]
