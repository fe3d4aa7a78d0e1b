"""Running totals over ordered sequences of signed quantities.

Pure functions only: callers hand in snapshots and get derived snapshots
back. Inputs are expected in increasing ``index`` order; the functions do not
sort nor check the order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Union

Number = Union[int, float, Decimal]


class IndexedDelta(Protocol):
    @property
    def index(self) -> int: ...

    @property
    def delta(self) -> Optional[Number]: ...


class SignedQuantity(Protocol):
    @property
    def quantity(self) -> Number: ...


@dataclass(frozen=True)
class LedgerPoint:
    index: int
    delta: Optional[Number]


@dataclass(frozen=True)
class LedgerTotal:
    index: int
    delta: Optional[Number]
    total: Number

    @property
    def recorded(self) -> bool:
        return self.delta is not None


def cumulative_series(entries: Iterable[IndexedDelta]) -> list[LedgerTotal]:
    """Attach the running total to every entry.

    A ``None`` delta is an unrecorded day: it adds nothing to the total but is
    kept as ``None`` so it can be told apart from a recorded zero.
    """
    series: list[LedgerTotal] = []
    total: Number = 0
    for entry in entries:
        delta = entry.delta
        if delta is not None:
            total = total + delta
        series.append(LedgerTotal(index=entry.index, delta=delta, total=total))
    return series


def balance(history: Iterable[SignedQuantity]) -> Decimal:
    """Sum of the signed quantities; zero for an empty history."""
    total = Decimal("0")
    for entry in history:
        total += Decimal(str(entry.quantity))
    return total


def running_balances(history: Iterable[SignedQuantity]) -> list[LedgerTotal]:
    """Balance after each entry of a chronologically ordered history."""
    return cumulative_series(
        LedgerPoint(index=position, delta=entry.quantity) for position, entry in enumerate(history)
    )
