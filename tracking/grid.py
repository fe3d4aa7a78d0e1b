"""Weekly tracking grid of a building.

The grid is always rebuilt from a full read of the building's weekly logs:
a successful write never patches the published grid in place, it triggers a
reload so running totals elsewhere in the grid cannot drift from the edited
cell.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Optional

from production.models import DAYS_PER_WEEK, DailyField

from .conf import weeks_per_building
from .exceptions import InvalidTransition, TrackingError, ValidationFailure
from .gateway import TrackingGateway
from .ledger import LedgerPoint, cumulative_series
from .types import DailyEntrySnapshot, WeeklyLogSnapshot

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = tuple(DailyField.values)


def date_for_age(entry_date: date, age: int) -> date:
    """Calendar date of ``age`` for a batch entered on ``entry_date`` (age 1 is the entry day)."""
    return entry_date + timedelta(days=age - 1)


@dataclass(frozen=True)
class GridDay:
    weekly_log_id: int
    age: int
    entry_id: Optional[int]
    mortality: Optional[int]
    mortality_total: int
    feed: Optional[Decimal]
    feed_total: Decimal
    treatment_id: Optional[int] = None
    treatment_name: Optional[str] = None
    treatment_dosage: Optional[str] = None
    analysis: Optional[str] = None
    remarks: Optional[str] = None

    @property
    def is_materialized(self) -> bool:
        return self.entry_id is not None

    def raw_value(self, field: str) -> str:
        """Editable text of ``field``: what an input shows when the cell opens."""
        field = DailyField(field)
        if field == DailyField.MORTALITY:
            return "" if self.mortality is None else str(self.mortality)
        if field == DailyField.FEED:
            return "" if self.feed is None else str(self.feed)
        if field == DailyField.TREATMENT:
            return "" if self.treatment_id is None else str(self.treatment_id)
        value = getattr(self, field.value)
        return value or ""


@dataclass(frozen=True)
class GridWeek:
    weekly_log_id: int
    number: int
    weight: Optional[Decimal]
    days: tuple[GridDay, ...]

    @property
    def mortality(self) -> int:
        return sum(day.mortality or 0 for day in self.days)

    @property
    def feed(self) -> Decimal:
        return sum((day.feed or Decimal("0") for day in self.days), Decimal("0"))


@dataclass(frozen=True)
class WeeklyGrid:
    building_id: int
    weeks: tuple[GridWeek, ...]

    def __iter__(self) -> Iterator[GridWeek]:
        return iter(self.weeks)

    def __len__(self) -> int:
        return len(self.weeks)

    @property
    def days(self) -> tuple[GridDay, ...]:
        return tuple(day for week in self.weeks for day in week.days)

    @property
    def total_mortality(self) -> int:
        days = self.days
        return days[-1].mortality_total if days else 0

    @property
    def total_feed(self) -> Decimal:
        days = self.days
        return days[-1].feed_total if days else Decimal("0")

    def week(self, weekly_log_id: int) -> GridWeek:
        for week in self.weeks:
            if week.weekly_log_id == weekly_log_id:
                return week
        raise KeyError(weekly_log_id)

    def day(self, age: int) -> GridDay:
        for day in self.days:
            if day.age == age:
                return day
        raise KeyError(age)


def build_grid(building_id: int, logs: Iterable[WeeklyLogSnapshot], weeks: int) -> WeeklyGrid:
    """Assemble the display grid from raw weekly logs.

    Logs are ordered by number and capped at ``weeks``; each week gets its
    seven days in age order, unread ages being filled with empty slots. Running
    totals cover the whole building lifeline, not a single week.
    """
    ordered_logs = sorted((log for log in logs if 1 <= log.number <= weeks), key=lambda log: log.number)
    week_days: list[list[DailyEntrySnapshot]] = []
    for log in ordered_logs:
        first_age = (log.number - 1) * DAYS_PER_WEEK + 1
        by_age = {entry.age: entry for entry in log.days}
        week_days.append(
            [
                by_age.get(age) or DailyEntrySnapshot(id=None, weekly_log_id=log.id, age=age)
                for age in range(first_age, first_age + DAYS_PER_WEEK)
            ]
        )

    lifeline = [entry for days in week_days for entry in days]
    mortality = cumulative_series(LedgerPoint(index=entry.age, delta=entry.mortality) for entry in lifeline)
    feed = cumulative_series(LedgerPoint(index=entry.age, delta=entry.feed) for entry in lifeline)
    totals = {
        point.index: (point.total, feed_point.total) for point, feed_point in zip(mortality, feed)
    }

    grid_weeks = []
    for log, days in zip(ordered_logs, week_days):
        grid_days = []
        for entry in days:
            mortality_total, feed_total = totals[entry.age]
            grid_days.append(
                GridDay(
                    weekly_log_id=log.id,
                    age=entry.age,
                    entry_id=entry.id,
                    mortality=entry.mortality,
                    mortality_total=mortality_total,
                    feed=entry.feed,
                    feed_total=Decimal(feed_total),
                    treatment_id=entry.treatment_id,
                    treatment_name=entry.treatment_name,
                    treatment_dosage=entry.treatment_dosage,
                    analysis=entry.analysis,
                    remarks=entry.remarks,
                )
            )
        grid_weeks.append(
            GridWeek(weekly_log_id=log.id, number=log.number, weight=log.weight, days=tuple(grid_days))
        )
    return WeeklyGrid(building_id=building_id, weeks=tuple(grid_weeks))


@dataclass(frozen=True)
class EditSession:
    weekly_log_id: int
    age: int
    field: str
    initial: str
    draft: str
    error: Optional[ValidationFailure] = None

    @property
    def changed(self) -> bool:
        return self.draft != self.initial


class WeeklyGridModel:
    """Owns the published grid of the selected building and its single edit session."""

    def __init__(self, gateway: TrackingGateway, *, weeks: int | None = None) -> None:
        self.gateway = gateway
        self._weeks = weeks
        self.building_id: int | None = None
        self.grid: WeeklyGrid | None = None
        self.error: TrackingError | None = None
        self.loading = False
        self.session: EditSession | None = None
        self._generation = 0

    @property
    def weeks(self) -> int:
        return self._weeks or weeks_per_building()

    async def ensure_full_grid(self, building_id: int) -> WeeklyGrid | None:
        """Load the complete grid of ``building_id`` and publish it.

        Returns ``None`` when another load started while this one was waiting;
        its result is discarded.
        """
        self._generation += 1
        generation = self._generation
        if building_id != self.building_id:
            self.grid = None
            self.session = None
        self.building_id = building_id
        self.loading = True
        try:
            logs = await self.gateway.get_full_weekly_grid(building_id)
        except TrackingError as exc:
            if generation != self._generation:
                logger.debug("Échec ignoré d'un chargement périmé du bâtiment %s: %s", building_id, exc)
                return None
            self.loading = False
            self.error = exc
            raise
        if generation != self._generation:
            logger.debug("Grille périmée du bâtiment %s ignorée", building_id)
            return None

        grid = build_grid(building_id, logs, self.weeks)
        self.grid = grid
        self.error = None
        self.loading = False
        return grid

    async def reload(self) -> WeeklyGrid | None:
        if self.building_id is None:
            raise InvalidTransition("Aucun bâtiment sélectionné.")
        return await self.ensure_full_grid(self.building_id)

    async def _reload_after_write(self) -> WeeklyGrid | None:
        if self.building_id is None:
            return None
        return await self.ensure_full_grid(self.building_id)

    def clear(self) -> None:
        self._generation += 1
        self.building_id = None
        self.grid = None
        self.error = None
        self.loading = False
        self.session = None

    async def update_field(
        self, weekly_log_id: int, age: int, field: str, raw_value: Optional[str]
    ) -> WeeklyGrid | None:
        if field not in EDITABLE_FIELDS:
            raise ValidationFailure([f"Champ inconnu : {field}"], field="field")
        try:
            await self.gateway.upsert_daily_field(weekly_log_id, age, field, raw_value)
        except TrackingError as exc:
            self.error = exc
            logger.warning(
                "Écriture refusée (semaine %s, âge %s, champ %s): %s", weekly_log_id, age, field, exc
            )
            raise
        self.error = None
        return await self._reload_after_write()

    async def update_week_weight(self, weekly_log_id: int, raw_value: Optional[str]) -> WeeklyGrid | None:
        try:
            await self.gateway.update_week_weight(weekly_log_id, raw_value)
        except TrackingError as exc:
            self.error = exc
            logger.warning("Poids refusé pour la semaine %s: %s", weekly_log_id, exc)
            raise
        self.error = None
        return await self._reload_after_write()

    async def begin_edit(self, weekly_log_id: int, age: int, field: str) -> EditSession:
        """Open a cell for edition, committing the cell that was open before.

        When that commit is rejected, the previous cell stays open for
        correction and is returned instead.
        """
        if field not in EDITABLE_FIELDS:
            raise ValidationFailure([f"Champ inconnu : {field}"], field="field")
        if self.session is not None and not await self.commit_edit():
            return self.session
        if self.grid is None:
            raise InvalidTransition("La grille n'est pas chargée.")
        try:
            day = self.grid.day(age)
        except KeyError:
            raise InvalidTransition(f"Aucune cellule à l'âge {age}.")
        if day.weekly_log_id != weekly_log_id:
            raise InvalidTransition(f"L'âge {age} n'appartient pas à la semaine {weekly_log_id}.")

        initial = day.raw_value(field)
        self.session = EditSession(
            weekly_log_id=weekly_log_id, age=age, field=field, initial=initial, draft=initial
        )
        return self.session

    def set_draft(self, value: str) -> EditSession:
        if self.session is None:
            raise InvalidTransition("Aucune cellule en cours d'édition.")
        self.session = replace(self.session, draft=value)
        return self.session

    async def commit_edit(self) -> bool:
        """Write the open cell if it changed.

        Returns ``False`` when the value was rejected: the session is then
        reopened at the last known value with the error attached.
        """
        session = self.session
        if session is None:
            return True
        self.session = None
        if not session.changed:
            return True
        try:
            await self.update_field(session.weekly_log_id, session.age, session.field, session.draft)
        except ValidationFailure as exc:
            self.session = replace(session, draft=session.initial, error=exc)
            return False
        return True

    def cancel_edit(self) -> None:
        self.session = None
