from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from salesdesk.crm.errors import NotFoundError
from salesdesk.crm.schemas import Activity, Contact, Deal, Stage
from salesdesk.crm.seed import SeedData, load_seed

RecordT = TypeVar("RecordT", bound=BaseModel)


class EntityStore(Generic[RecordT]):
    """Id-keyed collection owning the records of one entity type.

    Records are replaced rather than mutated in place, and iteration follows
    insertion order.
    """

    def __init__(self, entity_type: str, records: Iterable[RecordT] = ()) -> None:
        self.entity_type = entity_type
        self._records: dict[int, RecordT] = {}
        for record in records:
            self.put(record)

    def __len__(self) -> int:
        return len(self._records)

    def next_id(self) -> int:
        return max(self._records, default=0) + 1

    def get(self, record_id: int) -> RecordT | None:
        return self._records.get(record_id)

    def require(self, record_id: int) -> RecordT:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(self.entity_type, record_id)
        return record

    def put(self, record: RecordT) -> RecordT:
        self._records[record.id] = record  # type: ignore[attr-defined]
        return record

    def remove(self, record_id: int) -> RecordT:
        record = self.require(record_id)
        del self._records[record_id]
        return record

    def values(self) -> list[RecordT]:
        return list(self._records.values())


@dataclass
class CRMDataStore:
    contacts: EntityStore[Contact]
    deals: EntityStore[Deal]
    activities: EntityStore[Activity]
    stages: EntityStore[Stage]

    @classmethod
    def empty(cls) -> CRMDataStore:
        return cls(
            contacts=EntityStore("Contact"),
            deals=EntityStore("Deal"),
            activities=EntityStore("Activity"),
            stages=EntityStore("Stage"),
        )

    @classmethod
    def from_seed(cls, seed: SeedData | None = None) -> CRMDataStore:
        data = seed or load_seed()
        return cls(
            contacts=EntityStore("Contact", data.contacts),
            deals=EntityStore("Deal", data.deals),
            activities=EntityStore("Activity", data.activities),
            stages=EntityStore("Stage", data.stages),
        )

    def counts(self) -> dict[str, int]:
        return {
            "contacts": len(self.contacts),
            "deals": len(self.deals),
            "activities": len(self.activities),
            "stages": len(self.stages),
        }
