from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from salesdesk import events
from salesdesk.context import reset_correlation_id, set_correlation_id
from salesdesk.core.events import InternalEvent
from salesdesk.core.latency import SimulatedLatency
from salesdesk.crm.api import get_crm
from salesdesk.crm.container import CRMServices, build_services
from salesdesk.crm.store import CRMDataStore
from salesdesk.logging import JsonLogFormatter, log_fields
from salesdesk.main import _on_system_started, app


@pytest.fixture()
def services() -> CRMServices:
    return build_services(CRMDataStore.from_seed(), latency=SimulatedLatency.disabled())


@pytest.fixture()
def client(services: CRMServices) -> Generator[TestClient, None, None]:
    events.published_events.clear()
    app.state.crm = services
    app.dependency_overrides[get_crm] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.crm = None
    events.published_events.clear()


def test_correlation_id_header_is_echoed_or_generated(client: TestClient) -> None:
    echoed = client.get("/health", headers={"X-Correlation-Id": "corr-echo"})
    generated = client.get("/health")

    assert echoed.headers["x-correlation-id"] == "corr-echo"
    assert generated.headers["x-correlation-id"]
    assert generated.headers["x-correlation-id"] != "corr-echo"


def test_logs_include_correlation_id_for_http(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.get("/api/crm/contacts/77", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 404

    records = [record for record in caplog.records if record.name == "salesdesk.request" and record.getMessage() == "http.request"]
    assert records
    assert any(
        getattr(record, "correlation_id", None) == "abc-123"
        and getattr(record, "method", None) == "GET"
        and getattr(record, "path", None) == "/api/crm/contacts/{id}"
        and getattr(record, "status_code", None) == 404
        and isinstance(getattr(record, "duration_ms", None), float)
        for record in records
    )

    missing = [record for record in caplog.records if record.getMessage() == "crm.contact.not_found"]
    assert missing
    assert getattr(missing[0], "entity_id", None) == 77
    assert getattr(missing[0], "correlation_id", None) == "abc-123"


def test_stage_change_logs_and_events_carry_correlation_id(
    client: TestClient,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO)

    response = client.post(
        "/api/crm/deals/3/stage",
        json={"stage": "Closed Won"},
        headers={"X-Correlation-Id": "stage-corr-1"},
    )
    assert response.status_code == 200

    assert any(
        record.getMessage() == "crm.deal.stage_changed"
        and getattr(record, "from_stage", None) == "Qualified"
        and getattr(record, "to_stage", None) == "Closed Won"
        and getattr(record, "probability", None) == 100
        for record in caplog.records
    )
    stage_events = [event for event in events.published_events if event["event_type"] == "crm.deal.stage_changed"]
    assert stage_events
    assert stage_events[-1]["correlation_id"] == "stage-corr-1"


def test_json_formatter_renders_known_fields() -> None:
    token = set_correlation_id("fmt-1")
    try:
        record = logging.getLogger("salesdesk.crm").makeRecord(
            "salesdesk.crm",
            logging.INFO,
            __file__,
            1,
            "crm.deal.stage_changed",
            (),
            None,
            extra={"entity_type": "deal", "entity_id": 4, "to_stage": "Lead", "unrelated": "dropped"},
        )
    finally:
        reset_correlation_id(token)

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["msg"] == "crm.deal.stage_changed"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "fmt-1"
    assert payload["fields"] == {"entity_type": "deal", "entity_id": 4, "to_stage": "Lead"}


def test_startup_event_log_keeps_event_name_and_payload(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="salesdesk.lifecycle")

    _on_system_started(InternalEvent(name="system.started", payload={"service": "api", "records": {"deals": 7}}))

    records = [record for record in caplog.records if record.getMessage() == "system_event"]
    assert records
    payload = json.loads(JsonLogFormatter(service="SalesDesk API").format(records[-1]))
    assert payload["service"] == "SalesDesk API"
    assert payload["fields"] == {
        "event_name": "system.started",
        "event_payload": {"service": "api", "records": {"deals": 7}},
    }


def test_log_fields_rejects_unregistered_names_and_skips_none() -> None:
    assert log_fields(entity_type="deal", entity_id=None) == {"entity_type": "deal"}

    with pytest.raises(ValueError, match="event_nmae"):
        log_fields(event_nmae="system.started")


def test_json_formatter_truncates_long_errors() -> None:
    record = logging.getLogger("salesdesk.crm.board").makeRecord(
        "salesdesk.crm.board",
        logging.ERROR,
        __file__,
        1,
        "crm.board.activity_log_failed",
        (),
        None,
        extra=log_fields(entity_type="deal", entity_id=2, error="x" * 2000),
    )

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["service"] == "salesdesk"
    assert len(payload["fields"]["error"]) == 500
