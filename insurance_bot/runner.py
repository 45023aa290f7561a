"""Runs the conversation flow: one worker per chat, events applied in order."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import replace
from typing import Deque, Dict, Hashable, Optional

from insurance_bot.collaborators import (
    CollaboratorError,
    ExtractionError,
    Extractor,
    GenerationError,
    Generator,
    Responder,
    ResponderError,
    Transport,
    TransportError,
)
from insurance_bot.dispatcher import decide
from insurance_bot.models import (
    Action,
    CallbackAction,
    Delegate,
    ExtractedData,
    InboundEvent,
    Photo,
    Reply,
    ReplyWithChoice,
    RequestExtraction,
    RequestGeneration,
    SendDocument,
)
from insurance_bot.store import ConversationStore

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "🚨 Sorry, something went wrong on our side. Please try again."
DOWNLOAD_FAILED_TEXT = "🚨 Sorry, I couldn't download your photo. Please send it again."
EXTRACTION_FAILED_TEXT = (
    "🚨 Sorry, I couldn't read your documents right now. "
    "Please send the photo of your vehicle document again."
)
GENERATION_FAILED_TEXT = "🚨 Sorry, we couldn't issue your policy right now. Reply Yes to try again."
RESPONDER_FAILED_TEXT = "🚨 Sorry, I’m having trouble answering right now."

_FAILURE_TEXTS = (
    (ExtractionError, EXTRACTION_FAILED_TEXT),
    (GenerationError, GENERATION_FAILED_TEXT),
    (TransportError, APOLOGY_TEXT),
)


def format_extraction_summary(data: ExtractedData) -> str:
    return (
        "✅ We extracted the following information:\n"
        f"- Name: {data.name}\n"
        f"- Surname: {data.surname}\n"
        f"- Passport IDs: {data.passport_id}\n"
        f"- Vehicle IDs: {data.vehicle_id}\n\n"
        "✨ Is this correct?"
    )


class ConversationRunner:
    """Applies dispatcher decisions and executes their actions against the collaborators.

    Every chat id gets its own FIFO queue drained by a single worker task, so events
    of one conversation never overlap while different conversations run concurrently.
    A failure while handling one event is reported to that chat and never stops the
    other workers.
    """

    def __init__(
        self,
        transport: Transport,
        store: ConversationStore,
        extractor: Extractor,
        generator: Generator,
        responder: Responder,
        *,
        drain_timeout: float = 10.0,
    ) -> None:
        self._transport = transport
        self._store = store
        self._extractor = extractor
        self._generator = generator
        self._responder = responder
        self._drain_timeout = drain_timeout
        self._queues: Dict[Hashable, Deque[InboundEvent]] = {}
        self._workers: Dict[Hashable, asyncio.Task] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True
        logger.info("Conversation runner started.")

    async def stop(self) -> None:
        """Stop accepting events, let in-flight work finish, then cancel the rest."""
        self._running = False
        workers = list(self._workers.values())
        if workers:
            _, pending = await asyncio.wait(workers, timeout=self._drain_timeout)
            for task in pending:
                task.cancel()
            if pending:
                logger.info("Cancelling %d conversation(s) still in progress.", len(pending))
                await asyncio.gather(*pending, return_exceptions=True)
        self._queues.clear()
        logger.info("Conversation runner stopped.")

    def submit(self, chat_id: Hashable, event: InboundEvent) -> Optional[asyncio.Task]:
        """Queue ``event`` for ``chat_id``. Returns the chat's worker task."""
        if not self._running:
            logger.debug("Runner stopped, dropping %s for chat %s", type(event).__name__, chat_id)
            return None

        self._queues.setdefault(chat_id, deque()).append(event)
        worker = self._workers.get(chat_id)
        if worker is None:
            worker = asyncio.create_task(self._drain(chat_id), name=f"conversation-{chat_id}")
            self._workers[chat_id] = worker
        return worker

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()), return_exceptions=True)

    async def _drain(self, chat_id: Hashable) -> None:
        queue = self._queues[chat_id]
        try:
            while queue and self._running:
                await self._process(chat_id, queue.popleft())
        finally:
            self._workers.pop(chat_id, None)
            self._queues.pop(chat_id, None)

    async def _process(self, chat_id: Hashable, event: InboundEvent) -> None:
        try:
            await self._handle(chat_id, event)
        except asyncio.CancelledError:
            logger.info("Handling of %s for chat %s was cancelled.", type(event).__name__, chat_id)
            raise
        except Exception:
            logger.exception("Unexpected error while handling %s for chat %s", type(event).__name__, chat_id)
            await self._safe_send(chat_id, APOLOGY_TEXT)

    async def _handle(self, chat_id: Hashable, event: InboundEvent) -> None:
        if isinstance(event, Photo) and not event.content:
            try:
                content = await self._transport.download_attachment(event.file_id)
            except TransportError as exc:
                logger.warning("Failed to download photo for chat %s: %s", chat_id, exc)
                await self._safe_send(chat_id, DOWNLOAD_FAILED_TEXT)
                return
            event = replace(event, content=content)

        if isinstance(event, CallbackAction) and event.query_id:
            await self._safe_acknowledge(event.query_id)

        state = self._store.get(chat_id)
        decision = decide(event, state)
        logger.debug("Chat %s at %s: %s -> %s", chat_id, state.stage.value, event, decision.actions)

        delivered = False
        document: Optional[bytes] = None
        try:
            for action in decision.actions:
                document = await self._execute(chat_id, action, document)
                if isinstance(action, SendDocument):
                    # a delivered policy cannot be taken back
                    self._store.save(chat_id, decision.state)
                    delivered = True
        except CollaboratorError as exc:
            if delivered:
                logger.warning("Chat %s got its document but a follow-up failed: %s", chat_id, exc)
            elif isinstance(exc, TransportError) and not exc.transient:
                logger.warning("Chat %s is unreachable, staying at %s: %s", chat_id, state.stage.value, exc)
                return
            else:
                logger.warning("Chat %s stays at %s after collaborator failure: %s", chat_id, state.stage.value, exc)
                await self._safe_send(chat_id, _failure_text(exc))
                return

        self._store.save(chat_id, decision.state)
        if decision.state.stage is not state.stage:
            logger.info("Chat %s moved from %s to %s", chat_id, state.stage.value, decision.state.stage.value)

    async def _execute(self, chat_id: Hashable, action: Action, document: Optional[bytes]) -> Optional[bytes]:
        """Run one action. Returns the document generated so far for the actions after it."""
        if isinstance(action, Reply):
            await self._transport.send_text(chat_id, action.text)
        elif isinstance(action, ReplyWithChoice):
            await self._transport.send_text(chat_id, action.text, action.choices)
        elif isinstance(action, RequestExtraction):
            data = await self._extractor.extract(action.image, action.vehicle_image)
            await self._transport.send_text(chat_id, format_extraction_summary(data), action.choices)
        elif isinstance(action, RequestGeneration):
            return await self._generate()
        elif isinstance(action, SendDocument):
            content = action.content if action.content is not None else document
            if content is None:
                raise GenerationError("No document was generated before sending")
            await self._transport.send_document(chat_id, content, action.filename, action.caption)
        elif isinstance(action, Delegate):
            await self._transport.send_text(chat_id, await self._ask(action))
        else:
            raise TypeError(f"Unsupported action: {action!r}")
        return document

    async def _generate(self) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._generator.generate)
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError("Policy generation failed") from exc

    async def _ask(self, action: Delegate) -> str:
        try:
            return await self._responder.respond(action.text, action.stage)
        except ResponderError as exc:
            logger.warning("Assistant failed to answer: %s", exc)
            return RESPONDER_FAILED_TEXT

    async def _safe_send(self, chat_id: Hashable, text: str) -> None:
        try:
            await self._transport.send_text(chat_id, text)
        except Exception as exc:
            logger.warning("Could not notify chat %s: %s", chat_id, exc)

    async def _safe_acknowledge(self, query_id: str) -> None:
        try:
            await self._transport.acknowledge(query_id)
        except TransportError as exc:
            logger.warning("Could not acknowledge callback %s: %s", query_id, exc)


def _failure_text(exc: CollaboratorError) -> str:
    for error_type, text in _FAILURE_TEXTS:
        if isinstance(exc, error_type):
            return text
    return APOLOGY_TEXT


__all__ = ["ConversationRunner", "format_extraction_summary"]
