"""
conftest.py: общие фикстуры тестов.

Табели и справочник KPI собираются в памяти через openpyxl/pandas,
внешних сервисов нет. Каталоги данных и логов уводятся во временную
папку до импорта пакета (Config читает окружение при импорте).
"""
import io
import json
import os
import tempfile

_TMP_ROOT = tempfile.mkdtemp(prefix="kpi_timesheet_tests_")
os.environ.setdefault("KPI_DATA_DIR", os.path.join(_TMP_ROOT, "data"))
os.environ.setdefault("KPI_LOGS_DIR", os.path.join(_TMP_ROOT, "logs"))

import pandas as pd
import pytest
import xlwt
from openpyxl import Workbook

from kpi_timesheet.config import Config
from kpi_timesheet.kpi_calculator import KpiReference
from kpi_timesheet.kpi_storage import KPI_COLUMNS
from kpi_timesheet.timesheet_parser import KZ_FIO_HEADER, SIMPLE_FIO_HEADER

YEAR = 2025
MONTH = 1  # 1 января 2025: среда, 4-е суббота, 5-е воскресенье


def _workbook_bytes(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _kz_roster_rows(rows, days: int = 31, with_total: bool = True):
    """
    Табель ННМЦ: заголовок в 3-й строке, дни 1..days в 4-й, сотрудники с 5-й

    rows: [{"fio", "department", "marks": {день: значение}, "total"}]
    """
    sheet = [
        ["ТАБЕЛЬ учета рабочего времени"],
        ["Кезең: 2025 қаңтар"],
    ]

    header = ["№", KZ_FIO_HEADER, "Бөлім", "Айдың күндері"] + [None] * (days - 1)
    if with_total:
        header.append("өтелген күндер жиынтығы")
    sheet.append(header)

    sheet.append([None, None, None] + list(range(1, days + 1)))

    for idx, row in enumerate(rows, start=1):
        marks = row.get("marks", {})
        values = [idx, row["fio"], row.get("department")]
        values += [marks.get(d) for d in range(1, days + 1)]
        if with_total:
            values.append(row.get("total"))
        sheet.append(values)

    return sheet


def build_kz_roster(rows, days: int = 31, with_total: bool = True) -> bytes:
    wb = Workbook()
    ws = wb.active
    for values in _kz_roster_rows(rows, days, with_total):
        ws.append(values)
    return _workbook_bytes(wb)


def build_kz_roster_xls(rows, days: int = 31, with_total: bool = True) -> bytes:
    """Тот же табель ННМЦ в формате Excel 97-2003"""
    wb = xlwt.Workbook(encoding="utf-8")
    ws = wb.add_sheet("Табель")
    for r, values in enumerate(_kz_roster_rows(rows, days, with_total)):
        for c, value in enumerate(values):
            if value is not None:
                ws.write(r, c, value)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_simple_roster(rows, days: int = 31) -> bytes:
    """Простой табель: "Сотрудник" и дни "01".."NN" в первой строке"""
    wb = Workbook()
    ws = wb.active
    ws.append(["№", SIMPLE_FIO_HEADER, "Отдел"] + [f"{d:02d}" for d in range(1, days + 1)])
    for idx, row in enumerate(rows, start=1):
        marks = row.get("marks", {})
        ws.append([idx, row["fio"], row.get("department")] + [marks.get(d) for d in range(1, days + 1)])
    return _workbook_bytes(wb)


ROSTER_ROWS = [
    {
        "fio": "Иванова Анна Сергеевна",
        "department": "Клининг-1",
        # 1: праздник, 2-3: больничный в будни, 4: выходной, 11: суббота, 12: воскресенье
        "marks": {1: "8", 2: "Б", 3: "Б", 4: "В", 5: "-", 6: 8, 11: "8/4", 12: "7,5"},
        "total": 18,
    },
    {
        "fio": "Петров Петр Петрович",
        "department": "Клининг-1",
        "marks": {6: "О", 7: 24, 11: "О", 12: "О"},
    },
    {
        "fio": "Сидорова Мария Ивановна",
        "department": "Клининг-2",
        "marks": {6: 8, 7: 8},
    },
    {
        "fio": "Неизвестный Сотрудник",
        "department": "Клининг-1",
        "marks": {6: 8},
    },
    {
        "fio": "иванова анна сергеевна",
        "department": "Клининг-1",
        "marks": {8: 8},
    },
]

KPI_ROWS = [
    {"id": 1, "fio": "Иванова Анна Сергеевна", "kpiSum": 100000, "scheduleType": "day",
     "department": "Клининг-1", "categoryCode": ""},
    {"id": 2, "fio": "Петров Петр Петрович", "kpiSum": 60000, "scheduleType": "суточный",
     "department": "Клининг-1", "categoryCode": ""},
    {"id": 3, "fio": "Сидорова Мария Ивановна", "kpiSum": 50000, "scheduleType": "day",
     "department": "Клининг-2", "categoryCode": "4"},
]


@pytest.fixture
def roster_rows():
    return [dict(row, marks=dict(row["marks"])) for row in ROSTER_ROWS]


@pytest.fixture
def kz_roster_bytes(roster_rows):
    return build_kz_roster(roster_rows)


@pytest.fixture
def simple_roster_bytes(roster_rows):
    return build_simple_roster(roster_rows)


@pytest.fixture
def kpi_refs():
    return [KpiReference.from_record(row) for row in KPI_ROWS]


@pytest.fixture
def kpi_file(tmp_path):
    path = tmp_path / "KPIsum_dynamic.xlsx"
    pd.DataFrame(KPI_ROWS, columns=KPI_COLUMNS).to_excel(path, index=False, engine="openpyxl")
    return path


@pytest.fixture
def holidays_file(tmp_path):
    path = tmp_path / "holidays.json"
    path.write_text(json.dumps({
        "holidays": [
            "2025-01-01",
            {"date": "2025-01-07", "year": 2025, "month": 1},
            {"date": "2025-03-08", "year": 2025, "month": 3},
            "2024-12-31",
        ]
    }), encoding="utf-8")
    return path


@pytest.fixture
def config_paths(monkeypatch, tmp_path, kpi_file, holidays_file):
    """Источники данных Config указывают во временную папку теста"""
    monkeypatch.setattr(Config, "KPI_FILE", kpi_file)
    monkeypatch.setattr(Config, "HOLIDAYS_FILE", holidays_file)
    monkeypatch.setattr(Config, "REPORT_SETTINGS_FILE", tmp_path / "report_settings.json")
    return tmp_path


@pytest.fixture
def kz_roster_xls_bytes(roster_rows):
    return build_kz_roster_xls(roster_rows)
