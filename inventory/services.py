from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Union

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from production.models import Batch

from .models import FeedLedgerEntry

logger = logging.getLogger(__name__)

Quantity = Union[Decimal, int, float, str]


class FeedInventoryService:
    """Append-only feed history of a batch plus its cached balance ("contour")."""

    def register_entry(
        self,
        *,
        batch: Batch,
        quantity: Quantity,
        recorded_at: datetime | None = None,
        note: str = "",
    ) -> FeedLedgerEntry:
        amount = coerce_quantity(quantity)
        with transaction.atomic():
            locked_batch = Batch.objects.select_for_update().get(pk=batch.pk)
            entry = FeedLedgerEntry(
                batch=locked_batch,
                quantity=amount,
                recorded_at=recorded_at or timezone.now(),
                note=note or "",
            )
            entry.full_clean()
            entry.save()
            balance = self._refresh_cached_balance(locked_batch)
        logger.info(
            "Mouvement d'alimentation %s enregistré pour la bande %s (%s kg, contour %s kg)",
            entry.pk,
            batch.pk,
            amount,
            balance,
        )
        return entry

    def delete_entry(self, entry: FeedLedgerEntry) -> None:
        with transaction.atomic():
            batch = Batch.objects.select_for_update().get(pk=entry.batch_id)
            entry_id = entry.pk
            entry.delete()
            balance = self._refresh_cached_balance(batch)
        logger.info(
            "Mouvement d'alimentation %s supprimé de la bande %s (contour %s kg)",
            entry_id,
            batch.pk,
            balance,
        )

    def history(self, batch_id: int) -> list[FeedLedgerEntry]:
        batch = Batch.objects.get(pk=batch_id)
        return list(FeedLedgerEntry.objects.filter(batch=batch).order_by("-recorded_at", "-pk"))

    def balance(self, batch_id: int) -> Decimal:
        batch = Batch.objects.get(pk=batch_id)
        return self._sum_entries(batch)

    def rebuild_cached_balance(self, batch: Batch) -> bool:
        """Recompute the cached balance; return whether it changed."""
        with transaction.atomic():
            locked_batch = Batch.objects.select_for_update().get(pk=batch.pk)
            previous = locked_batch.feed_balance
            return self._refresh_cached_balance(locked_batch) != previous

    def _refresh_cached_balance(self, batch: Batch) -> Decimal:
        # Always re-derived from the full history, never adjusted by a delta.
        total = self._sum_entries(batch)
        if batch.feed_balance != total:
            batch.feed_balance = total
            batch.save(update_fields=("feed_balance",))
        return total

    def _sum_entries(self, batch: Batch) -> Decimal:
        aggregated = FeedLedgerEntry.objects.filter(batch=batch).aggregate(total=Sum("quantity"))
        return aggregated.get("total") or Decimal("0.00")


def coerce_quantity(value: Quantity) -> Decimal:
    if isinstance(value, float):
        value = repr(value)
    raw = str(value).strip().replace(",", ".") if value is not None else ""
    if not raw:
        raise ValidationError({"quantity": "La quantité est obligatoire."})
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError({"quantity": "Saisissez une quantité valide."})
    if not amount.is_finite():
        raise ValidationError({"quantity": "Saisissez une quantité valide."})
    return amount
