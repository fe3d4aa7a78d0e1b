from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

from django.test import SimpleTestCase
from openpyxl import load_workbook

from tracking.export import GRID_EXPORT_HEADERS, export_grid_to_xlsx
from tracking.grid import build_grid
from tracking.types import DailyEntrySnapshot, WeeklyLogSnapshot


class GridExportTests(SimpleTestCase):
    def setUp(self) -> None:
        logs = [
            WeeklyLogSnapshot(
                id=10,
                building_id=1,
                number=1,
                weight=Decimal("180"),
                days=(
                    DailyEntrySnapshot(
                        id=101,
                        weekly_log_id=10,
                        age=1,
                        mortality=3,
                        feed=Decimal("25.5"),
                        treatment_id=7,
                        treatment_name="Vitamine AD3E",
                        treatment_dosage="1 ml/l",
                    ),
                    DailyEntrySnapshot(id=102, weekly_log_id=10, age=2, mortality=1, remarks="RAS"),
                ),
            ),
            WeeklyLogSnapshot(id=20, building_id=1, number=2),
        ]
        self.grid = build_grid(1, logs, weeks=2)

    def _rows(self, **kwargs) -> list[tuple]:
        workbook = load_workbook(BytesIO(export_grid_to_xlsx(self.grid, **kwargs)))
        return list(workbook.active.iter_rows(values_only=True))

    def test_week_blocks(self) -> None:
        rows = self._rows()

        self.assertEqual(rows[0][:3], ("Semaine 1", "Poids (g)", 180))
        self.assertEqual(rows[1], GRID_EXPORT_HEADERS)
        self.assertEqual(rows[2][0], 1)
        self.assertEqual(rows[2][2:8], (3, 3, 25.5, 25.5, "Vitamine AD3E", "1 ml/l"))
        self.assertEqual(rows[3][3], 4)
        self.assertEqual(rows[3][9], "RAS")
        self.assertEqual(rows[9][:5], ("Total semaine", None, 4, None, 25.5))
        self.assertEqual(rows[11][0], "Semaine 2")

    def test_dates_follow_entry_date(self) -> None:
        rows = self._rows(entry_date=date(2024, 1, 30))

        self.assertEqual(rows[2][1], datetime(2024, 1, 30))
        self.assertEqual(rows[4][1], datetime(2024, 2, 1))

    def test_title_and_grand_total(self) -> None:
        rows = self._rows(title="Ferme Nord - Bande 3 - Bâtiment 1")

        self.assertEqual(rows[0][0], "Ferme Nord - Bande 3 - Bâtiment 1")
        self.assertEqual(rows[-1][:5], ("TOTAL", None, 4, None, 25.5))
