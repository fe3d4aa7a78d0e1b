from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from tracking.ledger import LedgerPoint, balance, cumulative_series, running_balances
from tracking.types import FeedEntrySnapshot


def _points(*deltas):
    return [LedgerPoint(index=position, delta=delta) for position, delta in enumerate(deltas, start=1)]


@dataclass(frozen=True)
class _Quantity:
    quantity: float


def _entry(entry_id: int, quantity: str) -> FeedEntrySnapshot:
    return FeedEntrySnapshot(
        id=entry_id,
        batch_id=1,
        quantity=Decimal(quantity),
        recorded_at=datetime(2024, 1, entry_id, tzinfo=dt_timezone.utc),
    )


class CumulativeSeriesTests(SimpleTestCase):
    def test_unrecorded_days_keep_the_running_total(self) -> None:
        series = cumulative_series(_points(2, None, 3))

        self.assertEqual([point.total for point in series], [2, 2, 5])
        self.assertEqual([point.delta for point in series], [2, None, 3])
        self.assertFalse(series[1].recorded)

    def test_leading_unrecorded_day_starts_at_zero(self) -> None:
        series = cumulative_series(_points(None, 4))

        self.assertEqual(series[0].total, 0)
        self.assertEqual(series[1].total, 4)

    def test_recorded_zero_differs_from_unrecorded_day(self) -> None:
        series = cumulative_series(_points(0, None))

        self.assertTrue(series[0].recorded)
        self.assertFalse(series[1].recorded)
        self.assertEqual(series[0].total, series[1].total)

    def test_empty_sequence(self) -> None:
        self.assertEqual(cumulative_series([]), [])

    def test_decimal_deltas_are_not_rounded(self) -> None:
        series = cumulative_series(_points(Decimal("12.25"), Decimal("0.10"), None))

        self.assertEqual(series[-1].total, Decimal("12.35"))

    def test_input_order_is_kept(self) -> None:
        series = cumulative_series([LedgerPoint(index=3, delta=1), LedgerPoint(index=1, delta=2)])

        self.assertEqual([point.index for point in series], [3, 1])
        self.assertEqual([point.total for point in series], [1, 3])


class BalanceTests(SimpleTestCase):
    def test_empty_history_is_zero(self) -> None:
        self.assertEqual(balance([]), Decimal("0"))

    def test_signed_sum(self) -> None:
        history = [_entry(1, "500"), _entry(2, "300"), _entry(3, "-50")]

        self.assertEqual(balance(history), Decimal("750"))

    def test_float_quantities(self) -> None:
        history = [_Quantity(500.0), _Quantity(-50.5), _Quantity(0.1)]

        self.assertEqual(balance(history), Decimal("449.6"))
        self.assertEqual(balance(history[:1]), Decimal("500.0"))

    def test_running_balances_follow_the_history(self) -> None:
        history = [_entry(1, "500"), _entry(2, "300"), _entry(3, "-50")]

        totals = running_balances(history)

        self.assertEqual([point.total for point in totals], [Decimal("500"), Decimal("800"), Decimal("750")])
        self.assertEqual([point.index for point in totals], [0, 1, 2])
