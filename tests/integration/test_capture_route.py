"""
Integration tests for per-router HAR capture (har_route_class).
"""

from functools import partial
from pathlib import Path

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.responses import StreamingResponse
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

from har_logger.capture import har_lifespan, har_route_class
from har_logger.registry import TargetRegistry


@pytest.fixture
def app(registry: TargetRegistry, har_path: Path) -> FastAPI:
    app = FastAPI(lifespan=partial(har_lifespan, registry=registry))
    orders = APIRouter(
        prefix="/orders",
        route_class=har_route_class(str(har_path), registry=registry),
    )

    @orders.get("/{order_id}")
    def get_order(order_id: int):
        return {"id": order_id}

    @orders.get("/export/stream")
    def export_orders():
        return StreamingResponse(iter([b"a,b\n", b"1,2\n"]), media_type="text/csv")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(orders)
    return app


class TestHarRouteClass:
    """Only routes of the instrumented router are logged."""

    def test_router_requests_are_logged(self, app: FastAPI, har_path: Path, read_har) -> None:
        with TestClient(app) as client:
            client.get("/orders/1")
            client.get("/health")
            client.get("/orders/2")

        entries = read_har(har_path)["log"]["entries"]
        assert [e["request"]["url"] for e in entries] == [
            "http://testserver/orders/1",
            "http://testserver/orders/2",
        ]
        assert entries[0]["response"]["content"]["text"] == '{"id":1}'

    def test_streaming_responses_are_not_logged(
        self, app: FastAPI, har_path: Path
    ) -> None:
        with TestClient(app) as client:
            response = client.get("/orders/export/stream")

        assert response.text == "a,b\n1,2\n"
        assert not har_path.exists()

    def test_nothing_logged_until_first_request(self, app: FastAPI, har_path: Path) -> None:
        with TestClient(app) as client:
            client.get("/health")

        assert not har_path.exists()
