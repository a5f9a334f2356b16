from __future__ import annotations

import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

os.environ.setdefault("OTEL_ENABLED", "true")

from salesdesk.core.config import get_settings
from salesdesk.core.latency import SimulatedLatency
from salesdesk.crm.api import get_crm
from salesdesk.crm.container import build_services
from salesdesk.crm.store import CRMDataStore
from salesdesk.main import app
from salesdesk.otel import setup_inmemory_otel


@pytest.fixture(autouse=True)
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def span_exporter() -> InMemorySpanExporter:
    exporter = setup_inmemory_otel("api")
    exporter.clear()
    return exporter


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    services = build_services(CRMDataStore.from_seed(), latency=SimulatedLatency.disabled())
    app.state.crm = services
    app.dependency_overrides[get_crm] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.crm = None


def test_request_span_contains_correlation_id(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.get("/api/crm/contacts", headers={"X-Correlation-Id": "otel-corr-1"})
    assert response.status_code == 200

    spans = span_exporter.get_finished_spans()
    assert spans
    assert any(span.attributes.get("correlation_id") == "otel-corr-1" for span in spans)


def test_stage_change_span_records_transition(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.post("/api/crm/deals/2/stage", json={"stage": "Closed Lost"})
    assert response.status_code == 200

    spans = [span for span in span_exporter.get_finished_spans() if span.name == "crm.deal.update_stage"]
    assert spans
    assert any(
        span.attributes.get("deal_id") == 2
        and span.attributes.get("from_stage") == "Proposal"
        and span.attributes.get("to_stage") == "Closed Lost"
        for span in spans
    )


def test_pipeline_metrics_span(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.get("/api/crm/pipeline/metrics")
    assert response.status_code == 200

    spans = [span for span in span_exporter.get_finished_spans() if span.name == "crm.pipeline.metrics"]
    assert spans
    assert spans[-1].attributes.get("total_deals") == 7
