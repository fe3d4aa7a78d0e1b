from __future__ import annotations

from typing import Any

from django.core.management.base import BaseCommand, CommandParser

from inventory.services import FeedInventoryService
from production.models import Batch


class Command(BaseCommand):
    help = (
        "Recalcule le contour d'alimentation de chaque bande à partir de son "
        "historique de mouvements."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--batch",
            type=int,
            help="ID de la bande à recalculer. Si omis, toutes les bandes sont traitées.",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        batch_id: int | None = options.get("batch")
        batches = Batch.objects.order_by("pk")
        if batch_id:
            batches = batches.filter(pk=batch_id)
        service = FeedInventoryService()
        processed = 0
        updated = 0
        for batch in batches.iterator():
            processed += 1
            if service.rebuild_cached_balance(batch):
                updated += 1
        self.stdout.write(self.style.SUCCESS(f"Bandes traitées : {processed}"))
        self.stdout.write(self.style.SUCCESS(f"Contours mis à jour : {updated}"))
