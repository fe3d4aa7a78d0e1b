"""Immutable snapshots exchanged with the data-access collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

AGGREGATE_FARM_ID = 0


@dataclass(frozen=True)
class FarmSnapshot:
    id: int
    name: str
    building_capacity: int = 0

    @property
    def is_aggregate(self) -> bool:
        return self.id == AGGREGATE_FARM_ID


AGGREGATE_FARM = FarmSnapshot(id=AGGREGATE_FARM_ID, name="Toutes les fermes", building_capacity=0)


@dataclass(frozen=True)
class BatchSnapshot:
    id: int
    farm_id: int
    entry_date: date
    note: str = ""
    feed_balance: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class BuildingSnapshot:
    id: int
    batch_id: int
    number: int
    bird_type_id: int
    bird_type_name: str
    personnel_id: int
    personnel_name: str
    population: int


@dataclass(frozen=True)
class DailyEntrySnapshot:
    id: Optional[int]
    weekly_log_id: int
    age: int
    mortality: Optional[int] = None
    feed: Optional[Decimal] = None
    treatment_id: Optional[int] = None
    treatment_name: Optional[str] = None
    treatment_dosage: Optional[str] = None
    analysis: Optional[str] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class WeeklyLogSnapshot:
    id: int
    building_id: int
    number: int
    weight: Optional[Decimal] = None
    days: tuple[DailyEntrySnapshot, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FeedEntrySnapshot:
    id: int
    batch_id: int
    quantity: Decimal
    recorded_at: datetime
    note: str = ""


@dataclass(frozen=True)
class NewFeedEntry:
    batch_id: int
    quantity: Decimal
    recorded_at: Optional[datetime] = None
    note: str = ""
