from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from tracking.exceptions import InvalidTransition, TransportFailure, ValidationFailure
from tracking.grid import WeeklyGridModel, build_grid, date_for_age
from tracking.tests.fakes import InMemoryGateway
from tracking.types import DailyEntrySnapshot, WeeklyLogSnapshot


class BuildGridTests(SimpleTestCase):
    def test_missing_days_are_filled_with_empty_slots(self) -> None:
        logs = [
            WeeklyLogSnapshot(
                id=10,
                building_id=1,
                number=1,
                days=(DailyEntrySnapshot(id=100, weekly_log_id=10, age=3, mortality=4),),
            )
        ]

        grid = build_grid(1, logs, weeks=1)

        self.assertEqual(len(grid.weeks[0].days), 7)
        self.assertEqual([day.age for day in grid.days], list(range(1, 8)))
        self.assertTrue(grid.day(3).is_materialized)
        self.assertFalse(grid.day(4).is_materialized)
        self.assertEqual(grid.day(4).weekly_log_id, 10)

    def test_totals_span_the_whole_lifeline(self) -> None:
        logs = [
            WeeklyLogSnapshot(
                id=20,
                building_id=1,
                number=2,
                days=(
                    DailyEntrySnapshot(id=201, weekly_log_id=20, age=8, mortality=1, feed=Decimal("40.5")),
                ),
            ),
            WeeklyLogSnapshot(
                id=10,
                building_id=1,
                number=1,
                days=(
                    DailyEntrySnapshot(id=107, weekly_log_id=10, age=7, mortality=2, feed=Decimal("30")),
                    DailyEntrySnapshot(id=101, weekly_log_id=10, age=1, mortality=3),
                ),
            ),
        ]

        grid = build_grid(1, logs, weeks=2)

        self.assertEqual([week.number for week in grid.weeks], [1, 2])
        self.assertEqual(grid.day(1).mortality_total, 3)
        self.assertEqual(grid.day(6).mortality_total, 3)
        self.assertIsNone(grid.day(6).mortality)
        self.assertEqual(grid.day(8).mortality_total, 6)
        self.assertEqual(grid.day(8).feed_total, Decimal("70.5"))
        self.assertEqual(grid.weeks[0].mortality, 5)
        self.assertEqual(grid.total_mortality, 6)
        self.assertEqual(grid.total_feed, Decimal("70.5"))

    def test_weeks_beyond_the_configured_count_are_ignored(self) -> None:
        logs = [
            WeeklyLogSnapshot(id=10, building_id=1, number=1),
            WeeklyLogSnapshot(id=90, building_id=1, number=9),
        ]

        grid = build_grid(1, logs, weeks=8)

        self.assertEqual([week.number for week in grid.weeks], [1])

    def test_date_for_age(self) -> None:
        self.assertEqual(date_for_age(date(2024, 1, 1), 1), date(2024, 1, 1))
        self.assertEqual(date_for_age(date(2024, 1, 28), 8), date(2024, 2, 4))


class WeeklyGridModelTests(SimpleTestCase):
    def setUp(self) -> None:
        self.gateway = InMemoryGateway()
        farm = self.gateway.add_farm("Ferme Nord")
        batch = self.gateway.add_batch(farm, date(2024, 1, 1))
        self.building = self.gateway.add_building(batch, 1)
        self.model = WeeklyGridModel(self.gateway, weeks=8)

    async def test_full_grid_from_nothing(self) -> None:
        grid = await self.model.ensure_full_grid(self.building.id)

        self.assertEqual(len(grid), 8)
        self.assertTrue(all(len(week.days) == 7 for week in grid))
        self.assertEqual(grid.days[-1].age, 56)
        self.assertIs(self.model.grid, grid)

    async def test_full_grid_from_partial_weeks(self) -> None:
        self.gateway.add_weekly_log(self.building, 1)
        self.gateway.add_weekly_log(self.building, 3)

        grid = await self.model.ensure_full_grid(self.building.id)

        self.assertEqual([week.number for week in grid], list(range(1, 9)))

    async def test_ensure_full_grid_is_idempotent(self) -> None:
        first = await self.model.ensure_full_grid(self.building.id)
        second = await self.model.ensure_full_grid(self.building.id)

        self.assertEqual(first, second)
        self.assertEqual(len(self.gateway.weekly_logs), 8)
        self.assertEqual(len(self.gateway.entries), 56)

    @override_settings(TRACKING_WEEKS_PER_BUILDING=4)
    async def test_week_count_comes_from_settings(self) -> None:
        self.gateway.weeks = 4
        model = WeeklyGridModel(self.gateway)

        grid = await model.ensure_full_grid(self.building.id)

        self.assertEqual(len(grid), 4)

    async def test_update_field_creates_missing_entry(self) -> None:
        week_one = self.gateway.add_weekly_log(self.building, 1)

        await self.model.update_field(week_one, 5, "mortality", "3")

        self.assertEqual(self.gateway.entries[(week_one, 5)]["mortality"], 3)
        self.assertEqual(set(self.gateway.entries[(week_one, 5)]), {"id", "mortality"})
        grid = await self.model.ensure_full_grid(self.building.id)
        day = grid.day(5)
        self.assertEqual(day.mortality, 3)
        self.assertIsNone(day.feed)
        self.assertIsNone(day.treatment_id)
        self.assertIsNone(day.treatment_dosage)
        self.assertIsNone(day.analysis)
        self.assertIsNone(day.remarks)

    async def test_update_field_republishes_fresh_totals(self) -> None:
        grid = await self.model.ensure_full_grid(self.building.id)
        week_one = grid.weeks[0].weekly_log_id
        week_two = grid.weeks[1].weekly_log_id
        await self.model.update_field(week_two, 9, "feed", "12,5")

        grid = await self.model.update_field(week_one, 2, "feed", "7.5")

        self.assertEqual(grid.day(9).feed_total, Decimal("20.0"))
        self.assertEqual(self.gateway.count("get_full_weekly_grid"), 3)

    async def test_treatment_name_is_read_back(self) -> None:
        treatment_id = self.gateway.add_treatment("Vitamine AD3E")
        grid = await self.model.ensure_full_grid(self.building.id)

        grid = await self.model.update_field(grid.weeks[0].weekly_log_id, 2, "treatment", str(treatment_id))

        self.assertEqual(grid.day(2).treatment_name, "Vitamine AD3E")

    async def test_rejected_value_keeps_published_grid(self) -> None:
        grid = await self.model.ensure_full_grid(self.building.id)
        week_one = grid.weeks[0].weekly_log_id

        with self.assertRaises(ValidationFailure) as raised:
            await self.model.update_field(week_one, 2, "mortality", "deux")

        self.assertEqual(raised.exception.field, "mortality")
        self.assertIs(self.model.grid, grid)
        self.assertIs(self.model.error, raised.exception)

    async def test_transport_failure_is_not_retried(self) -> None:
        grid = await self.model.ensure_full_grid(self.building.id)
        self.gateway.fail("upsert_daily_field", TransportFailure("hors ligne"))

        with self.assertRaises(TransportFailure):
            await self.model.update_field(grid.weeks[0].weekly_log_id, 2, "feed", "10")

        self.assertEqual(self.gateway.count("upsert_daily_field"), 1)
        self.assertIs(self.model.grid, grid)

    async def test_unknown_field_is_rejected_before_writing(self) -> None:
        with self.assertRaises(ValidationFailure):
            await self.model.update_field(1, 1, "weight", "10")

        self.assertEqual(self.gateway.count("upsert_daily_field"), 0)

    async def test_update_week_weight(self) -> None:
        grid = await self.model.ensure_full_grid(self.building.id)

        grid = await self.model.update_week_weight(grid.weeks[1].weekly_log_id, "480")

        self.assertEqual(grid.weeks[1].weight, Decimal("480"))

    async def test_stale_load_is_discarded(self) -> None:
        other = self.gateway.add_building(self.gateway.batches[self.building.batch_id], 2)
        self.gateway.hold("get_full_weekly_grid", self.building.id)
        pending = asyncio.create_task(self.model.ensure_full_grid(self.building.id))
        await asyncio.sleep(0)

        current = await self.model.ensure_full_grid(other.id)
        self.gateway.release("get_full_weekly_grid", self.building.id)

        self.assertIsNone(await pending)
        self.assertIs(self.model.grid, current)
        self.assertEqual(self.model.building_id, other.id)


class EditSessionTests(SimpleTestCase):
    def setUp(self) -> None:
        self.gateway = InMemoryGateway(weeks=2)
        farm = self.gateway.add_farm("Ferme Sud")
        batch = self.gateway.add_batch(farm, date(2024, 1, 1))
        self.building = self.gateway.add_building(batch, 1)
        self.model = WeeklyGridModel(self.gateway, weeks=2)

    async def _load(self) -> int:
        grid = await self.model.ensure_full_grid(self.building.id)
        return grid.weeks[0].weekly_log_id

    async def test_commit_writes_changed_draft(self) -> None:
        week_one = await self._load()
        session = await self.model.begin_edit(week_one, 3, "remarks")
        self.assertEqual(session.initial, "")

        self.model.set_draft("Bon appétit")
        committed = await self.model.commit_edit()

        self.assertTrue(committed)
        self.assertIsNone(self.model.session)
        self.assertEqual(self.model.grid.day(3).remarks, "Bon appétit")

    async def test_unchanged_draft_is_not_written(self) -> None:
        week_one = await self._load()
        await self.model.begin_edit(week_one, 3, "feed")

        self.assertTrue(await self.model.commit_edit())
        self.assertEqual(self.gateway.count("upsert_daily_field"), 0)

    async def test_cancel_discards_draft(self) -> None:
        week_one = await self._load()
        await self.model.begin_edit(week_one, 3, "mortality")
        self.model.set_draft("12")

        self.model.cancel_edit()

        self.assertIsNone(self.model.session)
        self.assertEqual(self.gateway.count("upsert_daily_field"), 0)
        self.assertIsNone(self.model.grid.day(3).mortality)

    async def test_opening_a_second_cell_commits_the_first(self) -> None:
        week_one = await self._load()
        await self.model.begin_edit(week_one, 3, "mortality")
        self.model.set_draft("4")

        session = await self.model.begin_edit(week_one, 4, "mortality")

        self.assertEqual(session.age, 4)
        self.assertEqual(self.model.grid.day(3).mortality, 4)
        self.assertEqual(self.gateway.count("upsert_daily_field"), 1)

    async def test_rejected_commit_reopens_cell_at_last_known_value(self) -> None:
        week_one = await self._load()
        await self.model.update_field(week_one, 3, "mortality", "2")
        await self.model.begin_edit(week_one, 3, "mortality")
        self.model.set_draft("-1")

        committed = await self.model.commit_edit()

        self.assertFalse(committed)
        session = self.model.session
        self.assertIsNotNone(session)
        self.assertEqual(session.draft, "2")
        self.assertIsInstance(session.error, ValidationFailure)
        self.assertEqual(self.model.grid.day(3).mortality, 2)

    async def test_rejected_commit_keeps_first_cell_open(self) -> None:
        week_one = await self._load()
        await self.model.begin_edit(week_one, 3, "feed")
        self.model.set_draft("beaucoup")

        session = await self.model.begin_edit(week_one, 4, "feed")

        self.assertEqual(session.age, 3)
        self.assertIsNotNone(session.error)

    async def test_cell_outside_the_week_cannot_be_opened(self) -> None:
        week_one = await self._load()

        with self.assertRaises(InvalidTransition):
            await self.model.begin_edit(week_one, 9, "mortality")

    async def test_editing_requires_a_loaded_grid(self) -> None:
        with self.assertRaises(InvalidTransition):
            await self.model.begin_edit(1, 1, "mortality")

    def test_draft_requires_an_open_cell(self) -> None:
        with self.assertRaises(InvalidTransition):
            self.model.set_draft("3")
