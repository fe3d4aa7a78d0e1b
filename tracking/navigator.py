"""Farm → Batch → Building → Weekly view drill-down.

The navigator is a small state machine. Every transition first publishes the
new selection, then fetches the collection shown at the new level; responses
that come back after a further transition are dropped by comparing the
generation they were requested under with the current one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Optional

from django.dispatch import Signal

from . import signals
from .conf import RouteSyncPolicy, latest_batches_limit, route_sync_policy
from .exceptions import InvalidTransition, NotFound, TrackingError
from .feed import FeedInventoryLedger
from .gateway import TrackingGateway
from .grid import WeeklyGridModel
from .types import AGGREGATE_FARM, BatchSnapshot, BuildingSnapshot, FarmSnapshot

logger = logging.getLogger(__name__)


class NavigatorLevel(IntEnum):
    FARMS = 0
    BATCHES = 1
    BUILDINGS = 2
    WEEKLY_VIEW = 3


LOST_SELECTION_NOTICES = {
    NavigatorLevel.FARMS: "La ferme sélectionnée n'existe plus. La liste des fermes a été actualisée.",
    NavigatorLevel.BATCHES: "La bande sélectionnée n'existe plus. La liste des bandes a été actualisée.",
    NavigatorLevel.BUILDINGS: "Le bâtiment sélectionné n'existe plus. La liste des bâtiments a été actualisée.",
}


@dataclass(frozen=True)
class NavigatorState:
    farm: Optional[FarmSnapshot] = None
    batch: Optional[BatchSnapshot] = None
    building: Optional[BuildingSnapshot] = None
    farms: tuple[FarmSnapshot, ...] = field(default_factory=tuple)
    batches: tuple[BatchSnapshot, ...] = field(default_factory=tuple)
    buildings: tuple[BuildingSnapshot, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.building is not None and self.batch is None:
            raise InvalidTransition("Un bâtiment ne peut pas être sélectionné sans bande.")
        if self.batch is not None and (self.farm is None or self.farm.is_aggregate):
            raise InvalidTransition("Une bande ne peut pas être sélectionnée sans ferme.")

    @property
    def level(self) -> NavigatorLevel:
        if self.building is not None:
            return NavigatorLevel.WEEKLY_VIEW
        if self.batch is not None:
            return NavigatorLevel.BUILDINGS
        if self.farm is not None and not self.farm.is_aggregate:
            return NavigatorLevel.BATCHES
        return NavigatorLevel.FARMS

    def truncated(self, level: NavigatorLevel) -> "NavigatorState":
        """Keep the selections above ``level`` and the collection shown at it."""
        if level == NavigatorLevel.FARMS:
            return NavigatorState(farms=self.farms)
        if level == NavigatorLevel.BATCHES:
            return NavigatorState(farm=self.farm, farms=self.farms, batches=self.batches)
        if level == NavigatorLevel.BUILDINGS:
            return replace(self, building=None)
        return self


class DrillDownNavigator:
    def __init__(
        self,
        gateway: TrackingGateway,
        *,
        grid: WeeklyGridModel | None = None,
        feed: FeedInventoryLedger | None = None,
        route_sync: RouteSyncPolicy | None = None,
        batches_limit: int | None = None,
    ) -> None:
        self.gateway = gateway
        self.grid = grid or WeeklyGridModel(gateway)
        self.feed = feed or FeedInventoryLedger(gateway)
        self.route_sync = route_sync or route_sync_policy()
        self.batches_limit = batches_limit if batches_limit is not None else latest_batches_limit()
        self.state = NavigatorState()
        self.notice: str | None = None
        self.error: TrackingError | None = None
        self._generation = 0

    @property
    def level(self) -> NavigatorLevel:
        return self.state.level

    async def load_farms(self) -> Optional[tuple[FarmSnapshot, ...]]:
        generation = self._next_generation()
        if not await self._enter(NavigatorLevel.FARMS, generation):
            return None
        return self.state.farms

    async def select_farm(self, farm: FarmSnapshot) -> Optional[NavigatorState]:
        """Select ``farm`` from any level.

        The aggregate farm stays at the farms level; any other farm moves to
        its batches, capped to the latest ones.
        """
        generation = self._next_generation()
        self._discard_below(NavigatorLevel.BATCHES)
        self.state = NavigatorState(farm=farm, farms=self.state.farms)
        if not farm.is_aggregate and not await self._enter(NavigatorLevel.BATCHES, generation):
            return None
        self._send(signals.farm_selected, farm=farm)
        return self.state

    async def select_batch(self, batch: BatchSnapshot) -> Optional[NavigatorState]:
        farm = self.state.farm
        if farm is None or farm.is_aggregate:
            raise InvalidTransition("Sélectionnez une ferme avant de choisir une bande.")
        if batch.farm_id != farm.id:
            raise InvalidTransition(f"La bande {batch.id} n'appartient pas à la ferme {farm.id}.")

        generation = self._next_generation()
        self._discard_below(NavigatorLevel.BUILDINGS)
        self.state = replace(self.state.truncated(NavigatorLevel.BATCHES), batch=batch)
        if not await self._enter(NavigatorLevel.BUILDINGS, generation):
            return None
        self._send(signals.batch_selected, batch=batch)
        return self.state

    async def select_building(self, building: BuildingSnapshot) -> Optional[NavigatorState]:
        batch = self.state.batch
        if batch is None:
            raise InvalidTransition("Sélectionnez une bande avant de choisir un bâtiment.")
        if building.batch_id != batch.id:
            raise InvalidTransition(f"Le bâtiment {building.id} n'appartient pas à la bande {batch.id}.")

        generation = self._next_generation()
        self.state = replace(self.state, building=building)
        if not await self._enter(NavigatorLevel.WEEKLY_VIEW, generation):
            return None
        self._send(signals.building_selected, building=building)
        return self.state

    async def back_to_farms(self) -> Optional[NavigatorState]:
        return await self._back(NavigatorLevel.FARMS, signals.returned_to_farms)

    async def back_to_batches(self) -> Optional[NavigatorState]:
        if self.level < NavigatorLevel.BATCHES:
            raise InvalidTransition("Aucune ferme sélectionnée.")
        return await self._back(NavigatorLevel.BATCHES, signals.returned_to_batches)

    async def back_to_buildings(self) -> Optional[NavigatorState]:
        if self.level < NavigatorLevel.BUILDINGS:
            raise InvalidTransition("Aucune bande sélectionnée.")
        return await self._back(NavigatorLevel.BUILDINGS, signals.returned_to_buildings)

    async def refresh(self) -> Optional[NavigatorState]:
        """Fetch again the collection of the current level, e.g. after a transport failure."""
        generation = self._next_generation()
        if not await self._enter(self.level, generation):
            return None
        return self.state

    def reset(self) -> NavigatorState:
        self._next_generation()
        self._discard_below(NavigatorLevel.BATCHES)
        self.state = self.state.truncated(NavigatorLevel.FARMS)
        self._send(signals.returned_to_farms)
        return self.state

    async def sync_route(self, path: str) -> NavigatorState:
        """Align the selection with the visible route.

        Any route other than the dashboard clears an aggregate farm selection;
        reaching the dashboard with nothing selected selects the aggregate farm.
        """
        policy = self.route_sync
        if not policy.enabled:
            return self.state
        farm = self.state.farm
        if farm is not None and farm.is_aggregate:
            if not policy.is_dashboard(path):
                logger.debug("Route %s hors du tableau de bord: sélection réinitialisée", path)
                self.reset()
        elif farm is None and policy.is_dashboard(path):
            await self.select_farm(AGGREGATE_FARM)
        return self.state

    def dismiss_notice(self) -> None:
        self.notice = None

    async def _back(self, level: NavigatorLevel, signal: Signal) -> Optional[NavigatorState]:
        generation = self._next_generation()
        self._discard_below(level + 1)
        self.state = self.state.truncated(level)
        if not await self._enter(level, generation):
            return None
        self._send(signal)
        return self.state

    async def _enter(self, level: NavigatorLevel, generation: int) -> bool:
        """Fetch what ``level`` shows; ``False`` when the fetch was overtaken or the selection lost.

        A vanished selection pops to the parent level, whose collection is
        fetched again, and leaves a notice for the user. Other failures are
        recorded and propagate to the caller.
        """
        try:
            await self._fetch(level, generation)
        except NotFound as exc:
            if self._is_stale(generation):
                return False
            if level == NavigatorLevel.FARMS:
                raise
            await self._lose_selection(NavigatorLevel(level - 1), exc, generation)
            return False
        except TrackingError as exc:
            if not self._is_stale(generation):
                self.error = exc
            raise
        if self._is_stale(generation):
            logger.debug("Réponse périmée ignorée au niveau %s", level.name)
            return False
        self.error = None
        return True

    async def _fetch(self, level: NavigatorLevel, generation: int) -> None:
        state = self.state
        if level == NavigatorLevel.FARMS:
            farms = await self.gateway.list_farms()
            if not self._is_stale(generation):
                self.state = replace(self.state, farms=tuple(farms))
        elif level == NavigatorLevel.BATCHES:
            batches = await self.gateway.list_batches_for_farm(state.farm.id, limit=self.batches_limit)
            if not self._is_stale(generation):
                self.state = replace(self.state, batches=tuple(batches))
        elif level == NavigatorLevel.BUILDINGS:
            buildings = await self.gateway.list_buildings_for_batch(state.batch.id)
            if self._is_stale(generation):
                return
            self.state = replace(self.state, buildings=tuple(buildings))
            await self.feed.load(state.batch.id)
        else:
            await self.grid.ensure_full_grid(state.building.id)

    async def _lose_selection(self, parent: NavigatorLevel, error: NotFound, generation: int) -> None:
        logger.warning("Sélection perdue (%s), retour au niveau %s", error, parent.name)
        self._discard_below(parent + 1)
        self.state = self.state.truncated(parent)
        self.notice = LOST_SELECTION_NOTICES[parent]
        if await self._enter(parent, generation):
            self._send(signals.selection_lost, level=parent, error=error, notice=self.notice)

    def _discard_below(self, level: int) -> None:
        if level <= NavigatorLevel.BUILDINGS:
            self.feed.clear()
        if level <= NavigatorLevel.WEEKLY_VIEW:
            self.grid.clear()

    def _next_generation(self) -> int:
        self._generation += 1
        self.notice = None
        return self._generation

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _send(self, signal: Signal, **kwargs) -> None:
        signal.send(sender=self, state=self.state, **kwargs)
