from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction

from production.models import Batch, BirdType, Building, Farm, Personnel

logger = logging.getLogger(__name__)


def list_farms() -> list[Farm]:
    return list(Farm.objects.order_by("name", "pk"))


def list_batches_for_farm(farm_id: int, *, limit: Optional[int] = None) -> list[Batch]:
    """Return the farm's batches, most recent entry date first.

    ``limit`` caps the result for selector widgets that only show the latest
    batches of a farm.
    """
    farm = Farm.objects.get(pk=farm_id)
    batches = Batch.objects.filter(farm=farm).select_related("farm").order_by("-entry_date", "-pk")
    if limit is not None:
        if limit <= 0:
            raise ValidationError({"limit": "La limite doit être supérieure à zéro."})
        batches = batches[:limit]
    return list(batches)


def list_buildings_for_batch(batch_id: int) -> list[Building]:
    batch = Batch.objects.get(pk=batch_id)
    return list(
        Building.objects.filter(batch=batch)
        .select_related("batch", "bird_type", "personnel")
        .order_by("number", "pk")
    )


def available_building_numbers(farm: Farm) -> list[int]:
    """Every physical building of the farm can host a building of any batch."""
    return list(range(1, farm.building_capacity + 1))


def create_farm(*, name: str, building_capacity: int = 0) -> Farm:
    name = (name or "").strip()
    if len(name) < 2:
        raise ValidationError({"name": "Le nom doit contenir au moins 2 caractères."})
    farm = Farm(name=name, building_capacity=building_capacity)
    farm.full_clean()
    farm.save()
    logger.info("Ferme %s créée (%s bâtiments)", farm.pk, building_capacity)
    return farm


def delete_farm(farm: Farm) -> None:
    with transaction.atomic():
        if Batch.objects.filter(farm=farm).exists():
            raise ValidationError("Impossible de supprimer une ferme qui possède des bandes.")
        farm_id = farm.pk
        farm.delete()
    logger.info("Ferme %s supprimée", farm_id)


def create_batch(*, farm: Farm, entry_date: date, note: str = "") -> Batch:
    batch = Batch(farm=farm, entry_date=entry_date, note=note or "")
    batch.full_clean()
    batch.save()
    logger.info("Bande %s créée pour la ferme %s", batch.pk, farm.pk)
    return batch


def create_building(
    *,
    batch: Batch,
    number: int,
    bird_type: BirdType,
    personnel: Personnel,
    population: int,
) -> Building:
    """Attach a building to a batch.

    Building numbers are unique among the buildings of one batch only; a
    later batch of the same farm may reuse a number.
    """
    with transaction.atomic():
        if Building.objects.select_for_update().filter(batch=batch, number=number).exists():
            raise ValidationError(
                {"number": f"Le bâtiment {number} existe déjà dans cette bande."}
            )
        building = Building(
            batch=batch,
            number=number,
            bird_type=bird_type,
            personnel=personnel,
            population=population,
        )
        building.full_clean(validate_constraints=False)
        building.save()
    logger.info("Bâtiment %s (numéro %s) ajouté à la bande %s", building.pk, number, batch.pk)
    return building
