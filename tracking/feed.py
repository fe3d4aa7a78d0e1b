"""Feed inventory ledger per batch and the low-stock flag per farm."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError

from inventory.services import Quantity, coerce_quantity

from .conf import feed_attention_threshold
from .exceptions import TrackingError, ValidationFailure
from .gateway import TrackingGateway
from .ledger import balance, running_balances
from .types import BatchSnapshot, FarmSnapshot, FeedEntrySnapshot, NewFeedEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedLedgerRow:
    entry: FeedEntrySnapshot
    balance_after: Decimal

    @property
    def is_addition(self) -> bool:
        return self.entry.quantity >= 0


@dataclass(frozen=True)
class FeedLedgerView:
    batch_id: int
    rows: tuple[FeedLedgerRow, ...]
    balance: Decimal
    needs_attention: bool

    @property
    def is_empty(self) -> bool:
        return not self.rows


@dataclass(frozen=True)
class FarmFeedStatus:
    farm: FarmSnapshot
    batch: BatchSnapshot
    balance: Decimal
    needs_attention: bool


class FeedInventoryLedger:
    """Feed history of a batch with its derived balance.

    The balance is always summed from the fetched history; nothing is
    decremented in place after a removal.
    """

    def __init__(self, gateway: TrackingGateway, *, threshold: Decimal | None = None) -> None:
        self.gateway = gateway
        self._threshold = threshold
        self.batch_id: int | None = None
        self.view: FeedLedgerView | None = None
        self.error: TrackingError | None = None
        self._generation = 0

    @property
    def threshold(self) -> Decimal:
        return self._threshold if self._threshold is not None else feed_attention_threshold()

    def needs_attention(self, amount: Decimal) -> bool:
        return amount < self.threshold

    async def load(self, batch_id: int) -> FeedLedgerView | None:
        """Fetch the history of ``batch_id`` and publish it, most recent entry first.

        A response overtaken by another load is discarded and ``None`` is returned.
        """
        self._generation += 1
        generation = self._generation
        if batch_id != self.batch_id:
            self.view = None
        self.batch_id = batch_id
        try:
            history = await self.gateway.list_feed_history(batch_id)
        except TrackingError as exc:
            if generation != self._generation:
                return None
            self.error = exc
            raise
        if generation != self._generation:
            logger.debug("Historique d'alimentation périmé de la bande %s ignoré", batch_id)
            return None

        self.view = self._build_view(batch_id, history)
        self.error = None
        return self.view

    def clear(self) -> None:
        self._generation += 1
        self.batch_id = None
        self.view = None
        self.error = None

    async def append(
        self,
        batch_id: int,
        quantity: Quantity,
        recorded_at: Optional[datetime] = None,
        note: str = "",
    ) -> int:
        try:
            amount = coerce_quantity(quantity)
        except ValidationError as exc:
            raise ValidationFailure.from_django(exc) from exc
        entry_id = await self.gateway.append_feed_entry(
            NewFeedEntry(batch_id=batch_id, quantity=amount, recorded_at=recorded_at, note=note or "")
        )
        logger.info("Mouvement %s ajouté à la bande %s (%s kg)", entry_id, batch_id, amount)
        await self.load(batch_id)
        return entry_id

    async def remove(self, entry_id: int) -> None:
        await self.gateway.delete_feed_entry(entry_id)
        logger.info("Mouvement %s supprimé", entry_id)
        if self.batch_id is not None:
            await self.load(self.batch_id)

    async def current_balance(self, batch_id: int) -> Decimal:
        return balance(await self.gateway.list_feed_history(batch_id))

    async def feed_statuses(self) -> list[FarmFeedStatus]:
        """Balance of the latest batch of every farm that has one."""
        statuses = []
        for farm in await self.gateway.list_farms():
            batches = await self.gateway.list_batches_for_farm(farm.id, limit=1)
            if not batches:
                continue
            latest = batches[0]
            amount = await self.current_balance(latest.id)
            statuses.append(
                FarmFeedStatus(
                    farm=farm,
                    batch=latest,
                    balance=amount,
                    needs_attention=self.needs_attention(amount),
                )
            )
        return statuses

    async def farms_needing_attention(self) -> list[FarmFeedStatus]:
        return [status for status in await self.feed_statuses() if status.needs_attention]

    def _build_view(self, batch_id: int, history: list[FeedEntrySnapshot]) -> FeedLedgerView:
        chronological = sorted(history, key=lambda entry: (entry.recorded_at, entry.id))
        totals = running_balances(chronological)
        rows = [
            FeedLedgerRow(entry=entry, balance_after=Decimal(point.total))
            for entry, point in zip(chronological, totals)
        ]
        rows.reverse()
        amount = balance(chronological)
        return FeedLedgerView(
            batch_id=batch_id,
            rows=tuple(rows),
            balance=amount,
            needs_attention=self.needs_attention(amount),
        )
