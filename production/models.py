from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

DAYS_PER_WEEK = 7


class Farm(models.Model):
    name = models.CharField("Nom", max_length=100)
    building_capacity = models.PositiveIntegerField(
        "Nombre de bâtiments",
        default=0,
        help_text="Nombre de bâtiments physiques disponibles dans la ferme.",
    )

    class Meta:
        verbose_name = "Ferme"
        verbose_name_plural = "Fermes"
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class BirdType(models.Model):
    name = models.CharField("Nom", max_length=100, unique=True)

    class Meta:
        verbose_name = "Type de poussin"
        verbose_name_plural = "Types de poussins"
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class Personnel(models.Model):
    name = models.CharField("Nom", max_length=150)
    phone = models.CharField("Téléphone", max_length=30, blank=True)

    class Meta:
        verbose_name = "Personnel"
        verbose_name_plural = "Personnel"
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class Treatment(models.Model):
    name = models.CharField("Nom", max_length=150, unique=True)
    default_unit = models.CharField("Unité par défaut", max_length=20, blank=True)

    class Meta:
        verbose_name = "Soin"
        verbose_name_plural = "Soins"
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class Batch(models.Model):
    farm = models.ForeignKey(
        Farm,
        on_delete=models.PROTECT,
        related_name="batches",
        verbose_name="Ferme",
    )
    entry_date = models.DateField("Date d'entrée")
    note = models.TextField("Notes", blank=True)
    feed_balance = models.DecimalField(
        "Contour alimentation (kg)",
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        editable=False,
        help_text="Somme des mouvements d'alimentation, recalculée après chaque écriture.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Bande"
        verbose_name_plural = "Bandes"
        ordering = ("-entry_date", "-pk")

    def __str__(self) -> str:
        return f"Bande #{self.pk} - {self.farm.name}"


class Building(models.Model):
    batch = models.ForeignKey(
        Batch,
        on_delete=models.CASCADE,
        related_name="buildings",
        verbose_name="Bande",
    )
    number = models.PositiveSmallIntegerField(
        "Numéro de bâtiment",
        validators=[MinValueValidator(1)],
    )
    bird_type = models.ForeignKey(
        BirdType,
        on_delete=models.PROTECT,
        related_name="buildings",
        verbose_name="Type de poussin",
    )
    personnel = models.ForeignKey(
        Personnel,
        on_delete=models.PROTECT,
        related_name="buildings",
        verbose_name="Responsable",
    )
    population = models.PositiveIntegerField("Quantité")

    class Meta:
        verbose_name = "Bâtiment"
        verbose_name_plural = "Bâtiments"
        ordering = ("batch", "number")
        constraints = [
            models.UniqueConstraint(fields=["batch", "number"], name="unique_building_number_per_batch"),
        ]

    def clean(self) -> None:
        super().clean()
        if not self.batch_id or not self.number:
            return
        capacity = self.batch.farm.building_capacity
        if capacity and self.number > capacity:
            raise ValidationError(
                {"number": f"La ferme ne compte que {capacity} bâtiment(s)."}
            )

    def __str__(self) -> str:
        return f"Bâtiment {self.number} ({self.batch})"


class WeeklyLog(models.Model):
    building = models.ForeignKey(
        Building,
        on_delete=models.CASCADE,
        related_name="weekly_logs",
        verbose_name="Bâtiment",
    )
    number = models.PositiveSmallIntegerField("Semaine", validators=[MinValueValidator(1)])
    weight = models.DecimalField(
        "Poids moyen (g)",
        max_digits=8,
        decimal_places=2,
        null=True,
        blank=True,
    )

    class Meta:
        verbose_name = "Semaine"
        verbose_name_plural = "Semaines"
        ordering = ("building", "number")
        constraints = [
            models.UniqueConstraint(fields=["building", "number"], name="unique_week_number_per_building"),
        ]

    def __str__(self) -> str:
        return f"Semaine {self.number} · {self.building}"

    @property
    def first_age(self) -> int:
        return (self.number - 1) * DAYS_PER_WEEK + 1

    @property
    def ages(self) -> range:
        return range(self.first_age, self.first_age + DAYS_PER_WEEK)


class DailyField(models.TextChoices):
    MORTALITY = "mortality", "Décès (jour)"
    FEED = "feed", "Alimentation (jour)"
    TREATMENT = "treatment", "Soins (traitement)"
    TREATMENT_DOSAGE = "treatment_dosage", "Soins (quantité)"
    ANALYSIS = "analysis", "Analyses"
    REMARKS = "remarks", "Remarques"


class DailyEntry(models.Model):
    weekly_log = models.ForeignKey(
        WeeklyLog,
        on_delete=models.CASCADE,
        related_name="daily_entries",
        verbose_name="Semaine",
    )
    age = models.PositiveSmallIntegerField("Âge (jours)", validators=[MinValueValidator(1)])
    mortality = models.PositiveIntegerField("Décès (jour)", null=True, blank=True)
    feed = models.DecimalField(
        "Alimentation (jour, kg)",
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
    )
    treatment = models.ForeignKey(
        Treatment,
        on_delete=models.SET_NULL,
        related_name="daily_entries",
        verbose_name="Soins",
        null=True,
        blank=True,
    )
    treatment_dosage = models.CharField("Soins (quantité)", max_length=50, null=True, blank=True)
    analysis = models.TextField("Analyses", null=True, blank=True)
    remarks = models.TextField("Remarques", null=True, blank=True)

    class Meta:
        verbose_name = "Suivi quotidien"
        verbose_name_plural = "Suivis quotidiens"
        ordering = ("weekly_log", "age")
        constraints = [
            models.UniqueConstraint(fields=["weekly_log", "age"], name="unique_daily_entry_age_per_week"),
        ]

    def __str__(self) -> str:
        return f"Jour {self.age} · {self.weekly_log}"
