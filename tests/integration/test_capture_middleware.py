"""
Integration tests for HAR capture in a FastAPI app.

Requests go through TestClient; leaving the client context runs the
app's lifespan shutdown, which closes the HAR file.
"""

import json
from functools import partial
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

from har_logger.capture import HarCaptureMiddleware, har_lifespan, instrument
from har_logger.registry import TargetRegistry
from har_logger.settings import get_settings


def _create_app(registry: TargetRegistry) -> FastAPI:
    app = FastAPI(lifespan=partial(har_lifespan, registry=registry))

    @app.get("/items")
    def list_items(q: str = ""):
        return {"items": [1, 2, 3], "q": q}

    @app.post("/items")
    async def create_item(request: Request):
        payload = await request.json()
        return JSONResponse({"created": payload["name"]}, status_code=201)

    @app.get("/login")
    def login():
        response = PlainTextResponse("ok")
        response.set_cookie("session", "abc", httponly=True)
        response.set_cookie("theme", "dark")
        return response

    return app


@pytest.fixture
def app(registry: TargetRegistry, har_path: Path) -> FastAPI:
    app = _create_app(registry)
    app.add_middleware(HarCaptureMiddleware, output_file=str(har_path), registry=registry)
    return app


class TestCaptureMiddleware:
    """Tests for HarCaptureMiddleware."""

    def test_requests_are_logged_in_order(self, app: FastAPI, har_path: Path, read_har) -> None:
        with TestClient(app) as client:
            client.get("/items", params={"q": "a"})
            client.post("/items", json={"name": "widget"})
            client.get("/missing")

        entries = read_har(har_path)["log"]["entries"]
        assert [(e["request"]["method"], e["response"]["status"]) for e in entries] == [
            ("GET", 200),
            ("POST", 201),
            ("GET", 404),
        ]

    def test_request_details_are_captured(self, app: FastAPI, har_path: Path, read_har) -> None:
        with TestClient(app) as client:
            client.post("/items?source=test", json={"name": "widget"})

        (entry,) = read_har(har_path)["log"]["entries"]
        request = entry["request"]
        assert request["url"] == "http://testserver/items?source=test"
        assert request["httpVersion"] == "HTTP/1.1"
        assert request["queryString"] == [{"name": "source", "value": "test"}]
        assert request["postData"]["mimeType"] == "application/json"
        assert json.loads(request["postData"]["text"]) == {"name": "widget"}
        assert entry["timings"]["wait"] == entry["time"] >= 0

    def test_response_details_are_captured(self, app: FastAPI, har_path: Path, read_har) -> None:
        with TestClient(app) as client:
            response = client.get("/items")

        (entry,) = read_har(har_path)["log"]["entries"]
        content = entry["response"]["content"]
        assert entry["response"]["statusText"] == "OK"
        assert content["mimeType"] == "application/json"
        assert content["text"] == response.text
        assert content["size"] == len(response.content)

    def test_response_is_unchanged_for_client(self, app: FastAPI) -> None:
        with TestClient(app) as client:
            response = client.get("/items", params={"q": "x"})

        assert response.status_code == 200
        assert response.json() == {"items": [1, 2, 3], "q": "x"}

    def test_repeated_set_cookie_headers_survive(
        self, app: FastAPI, har_path: Path, read_har
    ) -> None:
        with TestClient(app) as client:
            response = client.get("/login")

        assert response.cookies.get("session") == "abc"
        assert response.cookies.get("theme") == "dark"

        (entry,) = read_har(har_path)["log"]["entries"]
        names = [c["name"] for c in entry["response"]["cookies"]]
        assert names == ["session", "theme"]
        assert entry["response"]["cookies"][0]["httpOnly"] is True

    def test_empty_run_produces_valid_document(
        self, app: FastAPI, har_path: Path, read_har
    ) -> None:
        with TestClient(app):
            pass

        assert read_har(har_path)["log"]["entries"] == []

    def test_capture_failure_does_not_break_request(
        self, app: FastAPI, har_path: Path, read_har
    ) -> None:
        with patch(
            "har_logger.capture.middleware.build_entry", side_effect=RuntimeError("boom")
        ):
            with TestClient(app) as client:
                response = client.get("/items")

        assert response.status_code == 200
        assert read_har(har_path)["log"]["entries"] == []

    def test_redacted_headers(
        self, registry: TargetRegistry, har_path: Path, read_har
    ) -> None:
        app = _create_app(registry)
        app.add_middleware(
            HarCaptureMiddleware,
            output_file=str(har_path),
            registry=registry,
            redact_headers=["authorization"],
        )

        with TestClient(app) as client:
            client.get("/items", headers={"Authorization": "Bearer secret"})

        (entry,) = read_har(har_path)["log"]["entries"]
        headers = {h["name"]: h["value"] for h in entry["request"]["headers"]}
        assert headers["authorization"] == "***"


class TestInstrument:
    """Tests for instrument()."""

    def test_instrument_adds_capture(
        self, registry: TargetRegistry, har_path: Path, read_har
    ) -> None:
        app = _create_app(registry)

        target = instrument(app, str(har_path), registry=registry)

        with TestClient(app) as client:
            client.get("/items")

        assert target == str(har_path)
        assert len(read_har(har_path)["log"]["entries"]) == 1

    def test_instrument_disabled_by_settings(
        self, registry: TargetRegistry, har_path: Path, monkeypatch
    ) -> None:
        monkeypatch.setenv("HAR_LOGGER_ENABLED", "false")
        get_settings.cache_clear()
        app = _create_app(registry)

        target = instrument(app, str(har_path), registry=registry)

        with TestClient(app) as client:
            client.get("/items")

        assert target is None
        assert not har_path.exists()

    def test_instrument_uses_configured_output_file(
        self, registry: TargetRegistry, tmp_path: Path, monkeypatch, read_har
    ) -> None:
        configured = tmp_path / "configured.har"
        monkeypatch.setenv("HAR_LOGGER_OUTPUT_FILE", str(configured))
        get_settings.cache_clear()
        app = _create_app(registry)

        target = instrument(app, registry=registry)

        with TestClient(app) as client:
            client.get("/items")

        assert target == str(configured)
        assert len(read_har(configured)["log"]["entries"]) == 1
