from __future__ import annotations

import asyncio

import pytest

from salesdesk.core.config import Settings
from salesdesk.core.latency import SimulatedLatency
from salesdesk.crm.container import build_services
from salesdesk.crm.schemas import ContactCreate
from salesdesk.crm.store import CRMDataStore


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def test_delay_seconds_applies_scale_and_overrides() -> None:
    latency = SimulatedLatency(scale=0.5, overrides={"contact.create": 100})

    assert latency.delay_seconds("contact.get_all", 300) == pytest.approx(0.15)
    assert latency.delay_seconds("contact.create", 400) == pytest.approx(0.05)
    assert SimulatedLatency.disabled().delay_seconds("contact.get_all", 300) == 0.0


def test_latency_from_settings() -> None:
    latency = SimulatedLatency.from_settings(
        Settings(simulated_latency_enabled=False, simulated_latency_scale=2.0)
    )

    assert latency.enabled is False
    assert latency.scale == 2.0


def test_latency_overrides_come_from_settings() -> None:
    latency = SimulatedLatency.from_settings(
        Settings(simulated_latency_scale=1.0, simulated_latency_overrides={"stage.create": 50})
    )

    assert latency.delay_seconds("stage.create", 400) == pytest.approx(0.05)
    assert latency.delay_seconds("stage.update", 350) == pytest.approx(0.35)


@pytest.mark.asyncio
async def test_each_operation_waits_its_base_delay() -> None:
    sleep = RecordingSleep()
    crm = build_services(CRMDataStore.from_seed(), latency=SimulatedLatency(sleep=sleep))

    await crm.contacts.get_all()
    await crm.contacts.get_by_id(1)
    await crm.deals.update_stage(1, "Closed Won")
    await crm.activities.get_recent(5)
    await crm.stages.get_by_id(1)

    assert sleep.calls == pytest.approx([0.3, 0.2, 0.25, 0.2, 0.15])


@pytest.mark.asyncio
async def test_disabled_latency_never_sleeps() -> None:
    sleep = RecordingSleep()
    crm = build_services(CRMDataStore.from_seed(), latency=SimulatedLatency(enabled=False, sleep=sleep))

    await crm.deals.get_all()

    assert sleep.calls == []


@pytest.mark.asyncio
async def test_concurrent_creates_get_distinct_ids() -> None:
    crm = build_services(CRMDataStore.empty(), latency=SimulatedLatency(scale=0.01))

    created = await asyncio.gather(
        *[
            crm.contacts.create(
                ContactCreate(
                    name=f"Contact {index}",
                    email=f"contact{index}@example.com",
                    company="Example",
                    position="Buyer",
                )
            )
            for index in range(5)
        ]
    )

    assert sorted(contact.id for contact in created) == [1, 2, 3, 4, 5]
    assert len(await crm.contacts.get_all()) == 5
