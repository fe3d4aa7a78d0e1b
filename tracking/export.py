from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Any, Optional

from openpyxl import Workbook

from .grid import GridDay, WeeklyGrid, date_for_age

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

GRID_EXPORT_HEADERS = (
    "Jour",
    "Date",
    "Décès (Jour)",
    "Décès (Total)",
    "Alimentation (Jour)",
    "Alimentation (Total)",
    "Soins (Traitement)",
    "Soins (Quantité)",
    "Analyses",
    "Remarques",
)


def build_grid_workbook(grid: WeeklyGrid, *, entry_date: Optional[date] = None, title: str = "") -> Workbook:
    """One block per week: a title line, the column headers, the seven days and the week totals."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Suivi"
    if title:
        sheet.append([title])
        sheet.append([])

    for week in grid.weeks:
        heading = [f"Semaine {week.number}"]
        if week.weight is not None:
            heading.extend(["Poids (g)", _cell(week.weight)])
        sheet.append(heading)
        sheet.append(list(GRID_EXPORT_HEADERS))
        for day in week.days:
            sheet.append(_day_row(day, entry_date))
        sheet.append(["Total semaine", "", week.mortality, "", _cell(week.feed), "", "", "", "", ""])
        sheet.append([])

    sheet.append(["TOTAL", "", grid.total_mortality, "", _cell(grid.total_feed), "", "", "", "", ""])
    return workbook


def export_grid_to_xlsx(grid: WeeklyGrid, *, entry_date: Optional[date] = None, title: str = "") -> bytes:
    workbook = build_grid_workbook(grid, entry_date=entry_date, title=title)
    buffer = BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer.getvalue()


def _day_row(day: GridDay, entry_date: Optional[date]) -> list[Any]:
    return [
        day.age,
        date_for_age(entry_date, day.age) if entry_date else "",
        _cell(day.mortality),
        day.mortality_total,
        _cell(day.feed),
        _cell(day.feed_total),
        _cell(day.treatment_name),
        _cell(day.treatment_dosage),
        _cell(day.analysis),
        _cell(day.remarks),
    ]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return float(value)
    return value
