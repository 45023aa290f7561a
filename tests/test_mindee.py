"""
Tests for the Mindee passport extractor.
"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from insurance_bot.collaborators import ExtractionError
from insurance_bot.models import UNKNOWN, ExtractedData
from insurance_bot.services.mindee import MindeeExtractor, parse_prediction

PREDICTION = {
    "document": {
        "inference": {
            "prediction": {
                "given_names": [{"value": "ANNA"}, {"value": "MARIA"}],
                "surname": {"value": "ERIKSSON"},
                "id_number": {"value": "L898902C3"},
            }
        }
    }
}


async def start_server(handler):
    app = web.Application()
    app.router.add_post("/predict", handler)
    server = TestServer(app)
    await server.start_server()
    return server


class TestParsePrediction:

    def test_full_prediction(self):
        assert parse_prediction(PREDICTION) == {
            "name": "ANNA",
            "surname": "ERIKSSON",
            "passport_id": "L898902C3",
        }

    def test_missing_fields_become_unknown(self):
        payload = {"document": {"inference": {"prediction": {"surname": {"value": None}}}}}

        assert parse_prediction(payload) == {"name": UNKNOWN, "surname": UNKNOWN, "passport_id": UNKNOWN}

    @pytest.mark.parametrize("payload", [{}, [], {"document": None}])
    def test_malformed_payload(self, payload):
        assert parse_prediction(payload)["passport_id"] == UNKNOWN


class TestMindeeExtractor:

    @pytest.mark.asyncio
    async def test_extract_uploads_document(self):
        received = {}

        async def handler(request):
            received["auth"] = request.headers.get("Authorization")
            form = await request.post()
            received["document"] = form["document"].file.read()
            return web.json_response(PREDICTION)

        server = await start_server(handler)
        try:
            extractor = MindeeExtractor("secret", url=str(server.make_url("/predict")))
            data = await extractor.extract(b"jpeg-bytes")
        finally:
            await server.close()

        assert received == {"auth": "Token secret", "document": b"jpeg-bytes"}
        assert data == ExtractedData(name="ANNA", surname="ERIKSSON", passport_id="L898902C3", vehicle_id=UNKNOWN)

    @pytest.mark.asyncio
    async def test_unparseable_response_gives_sentinels(self):
        async def handler(request):
            return web.Response(text="not json")

        server = await start_server(handler)
        try:
            extractor = MindeeExtractor("secret", url=str(server.make_url("/predict")))
            data = await extractor.extract(b"jpeg-bytes")
        finally:
            await server.close()

        assert data == ExtractedData()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        async def handler(request):
            return web.json_response({"api_request": {"error": "Unauthorized"}}, status=401)

        server = await start_server(handler)
        try:
            extractor = MindeeExtractor("wrong", url=str(server.make_url("/predict")))
            with pytest.raises(ExtractionError):
                await extractor.extract(b"jpeg-bytes")
        finally:
            await server.close()
