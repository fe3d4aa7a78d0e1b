from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from production.models import Batch


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class FeedLedgerEntry(TimeStampedModel):
    class EntryType(models.TextChoices):
        ADDITION = "addition", "Ajout"
        WITHDRAWAL = "withdrawal", "Retrait"

    batch = models.ForeignKey(
        Batch,
        on_delete=models.CASCADE,
        related_name="feed_entries",
        verbose_name="Bande",
    )
    quantity = models.DecimalField(
        "Quantité (kg)",
        max_digits=12,
        decimal_places=2,
        help_text="Positive pour un ajout, négative pour un retrait.",
    )
    recorded_at = models.DateTimeField("Date", default=timezone.now)
    note = models.TextField("Note", blank=True)

    class Meta:
        verbose_name = "Mouvement d'alimentation"
        verbose_name_plural = "Historique d'alimentation"
        ordering = ("-recorded_at", "-pk")

    def __str__(self) -> str:
        return f"{self.batch} · {self.quantity} kg"

    @property
    def entry_type(self) -> str:
        if self.quantity < Decimal("0"):
            return self.EntryType.WITHDRAWAL
        return self.EntryType.ADDITION
