"""Data-access collaborator consumed by the tracking core.

``TrackingGateway`` is the contract; ``DjangoTrackingGateway`` fulfils it with
the ORM services of the ``production`` and ``inventory`` apps, running them
through ``sync_to_async`` and translating their exceptions into the tracking
error taxonomy.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Optional, Protocol, TypeVar

from asgiref.sync import sync_to_async
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError

from inventory.models import FeedLedgerEntry
from inventory.services import FeedInventoryService
from production.models import Batch, Building, DailyEntry, Farm, WeeklyLog
from production.services import structure, weekly_grid

from .exceptions import NotFound, TransportFailure, ValidationFailure
from .types import (
    BatchSnapshot,
    BuildingSnapshot,
    DailyEntrySnapshot,
    FarmSnapshot,
    FeedEntrySnapshot,
    NewFeedEntry,
    WeeklyLogSnapshot,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TrackingGateway(Protocol):
    async def list_farms(self) -> list[FarmSnapshot]: ...

    async def list_batches_for_farm(self, farm_id: int, limit: Optional[int] = None) -> list[BatchSnapshot]: ...

    async def list_buildings_for_batch(self, batch_id: int) -> list[BuildingSnapshot]: ...

    async def get_full_weekly_grid(self, building_id: int) -> list[WeeklyLogSnapshot]: ...

    async def upsert_daily_field(self, weekly_log_id: int, age: int, field: str, value: Optional[str]) -> None: ...

    async def update_week_weight(self, weekly_log_id: int, value: Optional[str]) -> None: ...

    async def list_feed_history(self, batch_id: int) -> list[FeedEntrySnapshot]: ...

    async def append_feed_entry(self, entry: NewFeedEntry) -> int: ...

    async def delete_feed_entry(self, entry_id: int) -> None: ...

    async def get_feed_balance(self, batch_id: int) -> Decimal: ...


class DjangoTrackingGateway:
    def __init__(self, *, feed_service: FeedInventoryService | None = None) -> None:
        self.feed_service = feed_service or FeedInventoryService()

    async def list_farms(self) -> list[FarmSnapshot]:
        return await self._call(_list_farms, entity="Ferme")

    async def list_batches_for_farm(self, farm_id: int, limit: Optional[int] = None) -> list[BatchSnapshot]:
        return await self._call(_list_batches, farm_id, limit, entity="Ferme", identifier=farm_id)

    async def list_buildings_for_batch(self, batch_id: int) -> list[BuildingSnapshot]:
        return await self._call(_list_buildings, batch_id, entity="Bande", identifier=batch_id)

    async def get_full_weekly_grid(self, building_id: int) -> list[WeeklyLogSnapshot]:
        return await self._call(_full_weekly_grid, building_id, entity="Bâtiment", identifier=building_id)

    async def upsert_daily_field(self, weekly_log_id: int, age: int, field: str, value: Optional[str]) -> None:
        await self._call(
            weekly_grid.upsert_daily_field,
            weekly_log_id=weekly_log_id,
            age=age,
            field=field,
            value=value,
            entity="Semaine",
            identifier=weekly_log_id,
        )

    async def update_week_weight(self, weekly_log_id: int, value: Optional[str]) -> None:
        await self._call(
            weekly_grid.update_week_weight,
            weekly_log_id=weekly_log_id,
            value=value,
            entity="Semaine",
            identifier=weekly_log_id,
        )

    async def list_feed_history(self, batch_id: int) -> list[FeedEntrySnapshot]:
        return await self._call(self._feed_history, batch_id, entity="Bande", identifier=batch_id)

    async def append_feed_entry(self, entry: NewFeedEntry) -> int:
        return await self._call(self._append_feed_entry, entry, entity="Bande", identifier=entry.batch_id)

    async def delete_feed_entry(self, entry_id: int) -> None:
        await self._call(
            self._delete_feed_entry,
            entry_id,
            entity="Mouvement d'alimentation",
            identifier=entry_id,
        )

    async def get_feed_balance(self, batch_id: int) -> Decimal:
        return await self._call(self.feed_service.balance, batch_id, entity="Bande", identifier=batch_id)

    async def _call(
        self,
        func: Callable[..., T],
        *args: Any,
        entity: str,
        identifier: object = None,
        **kwargs: Any,
    ) -> T:
        try:
            return await sync_to_async(func, thread_sensitive=True)(*args, **kwargs)
        except ObjectDoesNotExist as exc:
            raise NotFound(entity, identifier) from exc
        except ValidationError as exc:
            raise ValidationFailure.from_django(exc) from exc
        except DatabaseError as exc:
            logger.warning("Accès aux données impossible (%s %s): %s", entity, identifier, exc)
            raise TransportFailure("Le service de données est indisponible.") from exc

    def _feed_history(self, batch_id: int) -> list[FeedEntrySnapshot]:
        return [_feed_entry_snapshot(entry) for entry in self.feed_service.history(batch_id)]

    def _append_feed_entry(self, entry: NewFeedEntry) -> int:
        batch = Batch.objects.get(pk=entry.batch_id)
        created = self.feed_service.register_entry(
            batch=batch,
            quantity=entry.quantity,
            recorded_at=entry.recorded_at,
            note=entry.note,
        )
        return created.pk

    def _delete_feed_entry(self, entry_id: int) -> None:
        self.feed_service.delete_entry(FeedLedgerEntry.objects.get(pk=entry_id))


def _list_farms() -> list[FarmSnapshot]:
    return [farm_snapshot(farm) for farm in structure.list_farms()]


def _list_batches(farm_id: int, limit: Optional[int]) -> list[BatchSnapshot]:
    return [batch_snapshot(batch) for batch in structure.list_batches_for_farm(farm_id, limit=limit)]


def _list_buildings(batch_id: int) -> list[BuildingSnapshot]:
    return [building_snapshot(building) for building in structure.list_buildings_for_batch(batch_id)]


def _full_weekly_grid(building_id: int) -> list[WeeklyLogSnapshot]:
    return [weekly_log_snapshot(log) for log in weekly_grid.get_full_weekly_grid(building_id)]


def farm_snapshot(farm: Farm) -> FarmSnapshot:
    return FarmSnapshot(id=farm.pk, name=farm.name, building_capacity=farm.building_capacity)


def batch_snapshot(batch: Batch) -> BatchSnapshot:
    return BatchSnapshot(
        id=batch.pk,
        farm_id=batch.farm_id,
        entry_date=batch.entry_date,
        note=batch.note,
        feed_balance=batch.feed_balance,
    )


def building_snapshot(building: Building) -> BuildingSnapshot:
    return BuildingSnapshot(
        id=building.pk,
        batch_id=building.batch_id,
        number=building.number,
        bird_type_id=building.bird_type_id,
        bird_type_name=building.bird_type.name,
        personnel_id=building.personnel_id,
        personnel_name=building.personnel.name,
        population=building.population,
    )


def daily_entry_snapshot(entry: DailyEntry) -> DailyEntrySnapshot:
    return DailyEntrySnapshot(
        id=entry.pk,
        weekly_log_id=entry.weekly_log_id,
        age=entry.age,
        mortality=entry.mortality,
        feed=entry.feed,
        treatment_id=entry.treatment_id,
        treatment_name=entry.treatment.name if entry.treatment else None,
        treatment_dosage=entry.treatment_dosage,
        analysis=entry.analysis,
        remarks=entry.remarks,
    )


def weekly_log_snapshot(weekly_log: WeeklyLog) -> WeeklyLogSnapshot:
    return WeeklyLogSnapshot(
        id=weekly_log.pk,
        building_id=weekly_log.building_id,
        number=weekly_log.number,
        weight=weekly_log.weight,
        days=tuple(daily_entry_snapshot(entry) for entry in weekly_log.daily_entries.all()),
    )


def _feed_entry_snapshot(entry: FeedLedgerEntry) -> FeedEntrySnapshot:
    return FeedEntrySnapshot(
        id=entry.pk,
        batch_id=entry.batch_id,
        quantity=entry.quantity,
        recorded_at=entry.recorded_at,
        note=entry.note,
    )
