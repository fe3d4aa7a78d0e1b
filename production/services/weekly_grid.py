from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Prefetch

from production.models import Building, DailyEntry, DailyField, Treatment, WeeklyLog
from tracking.conf import weeks_per_building

logger = logging.getLogger(__name__)

TEXT_FIELDS = frozenset({DailyField.TREATMENT_DOSAGE, DailyField.ANALYSIS, DailyField.REMARKS})


def get_full_weekly_grid(building_id: int) -> list[WeeklyLog]:
    """Return the building's weekly logs with their daily entries.

    Missing weeks and missing days are created on the way, so the result always
    holds ``weeks_per_building()`` logs of seven entries each. Existing rows are
    left untouched.
    """
    weeks = weeks_per_building()
    with transaction.atomic():
        building = Building.objects.select_for_update().get(pk=building_id)
        existing_numbers = set(
            WeeklyLog.objects.filter(building=building).values_list("number", flat=True)
        )
        missing_numbers = [number for number in range(1, weeks + 1) if number not in existing_numbers]
        if missing_numbers:
            WeeklyLog.objects.bulk_create(
                [WeeklyLog(building=building, number=number) for number in missing_numbers]
            )
            logger.info(
                "Semaines %s créées pour le bâtiment %s",
                ", ".join(str(number) for number in missing_numbers),
                building.pk,
            )

        logs = list(WeeklyLog.objects.filter(building=building, number__lte=weeks).order_by("number"))
        existing_days = set(
            DailyEntry.objects.filter(weekly_log__in=logs).values_list("weekly_log_id", "age")
        )
        missing_days = [
            DailyEntry(weekly_log=log, age=age)
            for log in logs
            for age in log.ages
            if (log.pk, age) not in existing_days
        ]
        if missing_days:
            DailyEntry.objects.bulk_create(missing_days)
            logger.info("%s suivis quotidiens créés pour le bâtiment %s", len(missing_days), building.pk)

    return list(
        WeeklyLog.objects.filter(building_id=building_id, number__lte=weeks)
        .order_by("number")
        .prefetch_related(
            Prefetch(
                "daily_entries",
                queryset=DailyEntry.objects.select_related("treatment").order_by("age"),
            )
        )
    )


def upsert_daily_field(*, weekly_log_id: int, age: int, field: str, value: Optional[str]) -> DailyEntry:
    """Set a single field of the daily entry at ``age``, creating the entry if needed."""
    try:
        daily_field = DailyField(field)
    except ValueError:
        raise ValidationError({"field": f"Champ inconnu : {field}"})

    with transaction.atomic():
        weekly_log = WeeklyLog.objects.select_for_update().get(pk=weekly_log_id)
        if age not in weekly_log.ages:
            raise ValidationError(
                {"age": f"L'âge {age} n'appartient pas à la semaine {weekly_log.number}."}
            )
        parsed = parse_daily_value(daily_field, value)
        entry, created = DailyEntry.objects.select_for_update().get_or_create(weekly_log=weekly_log, age=age)
        setattr(entry, daily_field.value, parsed)
        entry.full_clean()
        entry.save()

    logger.info(
        "Suivi quotidien %s %s (semaine %s, âge %s, champ %s)",
        entry.pk,
        "créé" if created else "mis à jour",
        weekly_log_id,
        age,
        daily_field.value,
    )
    return entry


def update_week_weight(*, weekly_log_id: int, value: Optional[str]) -> WeeklyLog:
    weekly_log = WeeklyLog.objects.get(pk=weekly_log_id)
    weekly_log.weight = _parse_decimal(value, field="weight", allow_zero=False)
    weekly_log.full_clean()
    weekly_log.save(update_fields=("weight",))
    return weekly_log


def parse_daily_value(field: DailyField, value: Optional[str]) -> Any:
    raw = "" if value is None else str(value).strip()
    if field == DailyField.MORTALITY:
        if not raw:
            return None
        try:
            mortality = int(raw)
        except ValueError:
            raise ValidationError({field.value: "Le nombre de décès doit être un entier."})
        if mortality < 0:
            raise ValidationError({field.value: "Le nombre de décès ne peut pas être négatif."})
        return mortality
    if field == DailyField.FEED:
        return _parse_decimal(raw, field=field.value, allow_zero=True)
    if field == DailyField.TREATMENT:
        if not raw:
            return None
        try:
            treatment_id = int(raw)
        except ValueError:
            raise ValidationError({field.value: "Le soin sélectionné n'est pas valide."})
        treatment = Treatment.objects.filter(pk=treatment_id).first()
        if treatment is None:
            raise ValidationError({field.value: f"Le soin avec l'ID {treatment_id} n'existe pas."})
        return treatment
    if field in TEXT_FIELDS:
        return raw or None
    raise ValidationError({"field": f"Champ inconnu : {field}"})


def _parse_decimal(value: Optional[str], *, field: str, allow_zero: bool) -> Optional[Decimal]:
    raw = "" if value is None else str(value).strip().replace(",", ".")
    if not raw:
        return None
    try:
        number = Decimal(raw)
    except InvalidOperation:
        raise ValidationError({field: "Saisissez un nombre valide."})
    if not number.is_finite():
        raise ValidationError({field: "Saisissez un nombre valide."})
    if number < 0 or (number == 0 and not allow_zero):
        raise ValidationError({field: "La valeur doit être positive."})
    return number
