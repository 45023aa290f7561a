"""
Pytest fixtures: in-memory fakes for every collaborator of the runner.
"""

import asyncio
from typing import List, Optional, Tuple

import pytest

from insurance_bot.collaborators import TransportError
from insurance_bot.models import ExtractedData
from insurance_bot.runner import ConversationRunner
from insurance_bot.store import ConversationStore


class FakeTransport:
    """Records everything the bot sends. Photos are served from ``files``.

    ``text_errors`` maps a message text to an error raised once when that text is sent.
    ``document_error`` is raised once by the next ``send_document``.
    """

    def __init__(self):
        self.sent: List[Tuple[object, str, Optional[tuple]]] = []
        self.documents: List[Tuple[object, bytes, str, str]] = []
        self.acknowledged: List[str] = []
        self.files = {}
        self.fail_downloads = False
        self.text_errors = {}
        self.document_error = None

    async def send_text(self, chat_id, text, choices=None):
        await asyncio.sleep(0)
        error = self.text_errors.pop(text, None)
        if error is not None:
            raise error
        self.sent.append((chat_id, text, tuple(choices) if choices else None))

    async def send_document(self, chat_id, content, filename, caption=""):
        await asyncio.sleep(0)
        error, self.document_error = self.document_error, None
        if error is not None:
            raise error
        self.documents.append((chat_id, content, filename, caption))

    async def acknowledge(self, query_id):
        self.acknowledged.append(query_id)

    async def download_attachment(self, file_id):
        await asyncio.sleep(0)
        if self.fail_downloads:
            raise TransportError("network down", transient=True)
        return self.files.get(file_id, file_id.encode())

    def texts(self, chat_id=None):
        return [text for cid, text, _ in self.sent if chat_id is None or cid == chat_id]


class FakeExtractor:
    def __init__(self, data=None, error=None):
        self.data = data or ExtractedData(
            name="Anna", surname="Eriksson", passport_id="L898902C3", vehicle_id="WVWZZZ1JZXW000000"
        )
        self.error = error
        self.calls = []

    async def extract(self, image, vehicle_image=None):
        self.calls.append((image, vehicle_image))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.data


class FakeGenerator:
    def __init__(self, content=b"%PDF-fake", error=None):
        self.content = content
        self.error = error
        self.calls = 0

    def generate(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.content


class FakeResponder:
    def __init__(self, answer="Happy to help!", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def respond(self, text, stage):
        self.calls.append((text, stage))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def responder():
    return FakeResponder()


@pytest.fixture
async def runner(transport, store, extractor, generator, responder):
    runner = ConversationRunner(
        transport=transport,
        store=store,
        extractor=extractor,
        generator=generator,
        responder=responder,
        drain_timeout=0.5,
    )
    await runner.start()
    yield runner
    await runner.stop()
