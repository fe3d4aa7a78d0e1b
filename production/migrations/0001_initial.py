from __future__ import annotations

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="Farm",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, verbose_name="Nom")),
                (
                    "building_capacity",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Nombre de bâtiments physiques disponibles dans la ferme.",
                        verbose_name="Nombre de bâtiments",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ferme",
                "verbose_name_plural": "Fermes",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="BirdType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True, verbose_name="Nom")),
            ],
            options={
                "verbose_name": "Type de poussin",
                "verbose_name_plural": "Types de poussins",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Personnel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150, verbose_name="Nom")),
                ("phone", models.CharField(blank=True, max_length=30, verbose_name="Téléphone")),
            ],
            options={
                "verbose_name": "Personnel",
                "verbose_name_plural": "Personnel",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Treatment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150, unique=True, verbose_name="Nom")),
                ("default_unit", models.CharField(blank=True, max_length=20, verbose_name="Unité par défaut")),
            ],
            options={
                "verbose_name": "Soin",
                "verbose_name_plural": "Soins",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Batch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_date", models.DateField(verbose_name="Date d'entrée")),
                ("note", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "feed_balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        editable=False,
                        help_text="Somme des mouvements d'alimentation, recalculée après chaque écriture.",
                        max_digits=12,
                        verbose_name="Contour alimentation (kg)",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "farm",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="batches",
                        to="production.farm",
                        verbose_name="Ferme",
                    ),
                ),
            ],
            options={
                "verbose_name": "Bande",
                "verbose_name_plural": "Bandes",
                "ordering": ("-entry_date", "-pk"),
            },
        ),
        migrations.CreateModel(
            name="Building",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "number",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Numéro de bâtiment",
                    ),
                ),
                ("population", models.PositiveIntegerField(verbose_name="Quantité")),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="buildings",
                        to="production.batch",
                        verbose_name="Bande",
                    ),
                ),
                (
                    "bird_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="buildings",
                        to="production.birdtype",
                        verbose_name="Type de poussin",
                    ),
                ),
                (
                    "personnel",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="buildings",
                        to="production.personnel",
                        verbose_name="Responsable",
                    ),
                ),
            ],
            options={
                "verbose_name": "Bâtiment",
                "verbose_name_plural": "Bâtiments",
                "ordering": ("batch", "number"),
                "constraints": [
                    models.UniqueConstraint(fields=("batch", "number"), name="unique_building_number_per_batch"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WeeklyLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "number",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Semaine",
                    ),
                ),
                (
                    "weight",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=8,
                        null=True,
                        verbose_name="Poids moyen (g)",
                    ),
                ),
                (
                    "building",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="weekly_logs",
                        to="production.building",
                        verbose_name="Bâtiment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Semaine",
                "verbose_name_plural": "Semaines",
                "ordering": ("building", "number"),
                "constraints": [
                    models.UniqueConstraint(fields=("building", "number"), name="unique_week_number_per_building"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DailyEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "age",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Âge (jours)",
                    ),
                ),
                ("mortality", models.PositiveIntegerField(blank=True, null=True, verbose_name="Décès (jour)")),
                (
                    "feed",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="Alimentation (jour, kg)",
                    ),
                ),
                (
                    "treatment_dosage",
                    models.CharField(blank=True, max_length=50, null=True, verbose_name="Soins (quantité)"),
                ),
                ("analysis", models.TextField(blank=True, null=True, verbose_name="Analyses")),
                ("remarks", models.TextField(blank=True, null=True, verbose_name="Remarques")),
                (
                    "treatment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="daily_entries",
                        to="production.treatment",
                        verbose_name="Soins",
                    ),
                ),
                (
                    "weekly_log",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_entries",
                        to="production.weeklylog",
                        verbose_name="Semaine",
                    ),
                ),
            ],
            options={
                "verbose_name": "Suivi quotidien",
                "verbose_name_plural": "Suivis quotidiens",
                "ordering": ("weekly_log", "age"),
                "constraints": [
                    models.UniqueConstraint(fields=("weekly_log", "age"), name="unique_daily_entry_age_per_week"),
                ],
            },
        ),
    ]
