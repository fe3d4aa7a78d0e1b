from __future__ import annotations

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("production", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="FeedLedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "quantity",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Positive pour un ajout, négative pour un retrait.",
                        max_digits=12,
                        verbose_name="Quantité (kg)",
                    ),
                ),
                ("recorded_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Date")),
                ("note", models.TextField(blank=True, verbose_name="Note")),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="feed_entries",
                        to="production.batch",
                        verbose_name="Bande",
                    ),
                ),
            ],
            options={
                "verbose_name": "Mouvement d'alimentation",
                "verbose_name_plural": "Historique d'alimentation",
                "ordering": ("-recorded_at", "-pk"),
            },
        ),
    ]
