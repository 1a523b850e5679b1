"""
Excel-выгрузки: детальный расчет, файл для 1С и протокол для бухгалтерии
"""
import io
import math
from typing import List

import pandas as pd
import xlsxwriter

from kpi_timesheet.kpi_calculator import CalculationError, CalculationResult, round_money
from kpi_timesheet.report_text import SECRETARY_LABEL, TOTAL_LABEL, ReportContext

DETAIL_COLUMNS = [
    ("#", 5),
    ("ФИО", 30),
    ("График", 10),
    ("Отдел", 15),
    ("Норма дней", 12),
    ("Факт дней", 12),
    ("Не отработано", 14),
    ("Буквы будни", 12),
    ("Буквы сб", 10),
    ("Буквы вс", 10),
    ("Буквы праздники", 16),
    ("Числа будни", 12),
    ("Числа сб", 10),
    ("Числа вс", 10),
    ("Числа праздники", 16),
    ("% выполнения", 12),
    ("KPI сумм", 12),
    ("KPI итог", 12),
]

ERROR_COLUMNS = [("#", 5), ("ФИО", 30), ("Тип", 15), ("Описание", 50)]

BUH_FONT = "Times New Roman"
BUH_COLUMN_WIDTHS = (5, 45, 12, 8, 12)
BUH_TABLE_HEADERS = ("№ п/п", "ФИО", "КПР план", "КПР %", "КПР итог")
# Примерное число символов в строке объединенной ячейки A:E
BUH_CHARS_PER_LINE = 80


def _set_widths(worksheet, columns) -> None:
    for idx, (_, width) in enumerate(columns):
        worksheet.set_column(idx, idx, width)


def build_detail_workbook(results: List[CalculationResult], errors: List[CalculationError]) -> bytes:
    """Детальный расчет: лист KPI и (если есть ошибки) лист Errors"""
    rows = []
    for idx, r in enumerate(results, start=1):
        rows.append([
            idx, r.fio, r.schedule_type, r.department,
            r.days_assigned, r.days_worked, r.not_worked,
            r.letters_weekday, r.letters_sat, r.letters_sun, r.letters_holiday,
            r.numbers_weekday, r.numbers_sat, r.numbers_sun, r.numbers_holiday,
            r.work_percent, r.kpi_sum, r.kpi_final,
        ])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        df_res = pd.DataFrame(rows, columns=[name for name, _ in DETAIL_COLUMNS])
        df_res.to_excel(writer, index=False, sheet_name="KPI")
        _set_widths(writer.sheets["KPI"], DETAIL_COLUMNS)

        if errors:
            df_err = pd.DataFrame(
                [[idx, e.fio, e.type, e.details] for idx, e in enumerate(errors, start=1)],
                columns=[name for name, _ in ERROR_COLUMNS],
            )
            df_err.to_excel(writer, index=False, sheet_name="Errors")
            _set_widths(writer.sheets["Errors"], ERROR_COLUMNS)

    return output.getvalue()


def build_1c_workbook(results: List[CalculationResult]) -> bytes:
    """Файл для 1С: №, ФИО, итог KPI с округлением вверх до целого"""
    rows = []
    for idx, r in enumerate(results, start=1):
        rows.append({
            "№": idx,
            "ФИО": r.fio,
            "KPI_итог": int(math.ceil(r.kpi_final or 0)),
        })
    df = pd.DataFrame(rows, columns=["№", "ФИО", "KPI_итог"])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        # Записываем без заголовков (header=False)
        df.to_excel(writer, index=False, header=False, sheet_name="1C")

        workbook = writer.book
        worksheet = writer.sheets["1C"]
        num_format = workbook.add_format({"num_format": "0"})
        worksheet.set_column("A:A", 8, num_format)  # Колонка №
        worksheet.set_column("B:B", 40)
        worksheet.set_column("C:C", 12, num_format)  # Колонка KPI_итог

    return output.getvalue()


class _BuhSheet:
    """Лист протокола: объединенные строки текста и таблица с рамками"""

    def __init__(self, workbook, worksheet):
        self.workbook = workbook
        self.ws = worksheet
        self.last_col = len(BUH_COLUMN_WIDTHS) - 1
        self._formats = {}

    def fmt(self, bold=False, size=11, align="left", border=False, num_format=None):
        key = (bold, size, align, border, num_format)
        if key not in self._formats:
            props = {
                "font_name": BUH_FONT,
                "font_size": size,
                "bold": bold,
                "align": align,
                "valign": "vcenter",
                "text_wrap": True,
            }
            if border:
                props["border"] = 1
            if num_format:
                props["num_format"] = num_format
            self._formats[key] = self.workbook.add_format(props)
        return self._formats[key]

    def text(self, row, first_col, last_col, value, **opts):
        cell_format = self.fmt(**opts)
        if first_col == last_col:
            self.ws.write(row, first_col, value, cell_format)
        else:
            self.ws.merge_range(row, first_col, row, last_col, value, cell_format)

    def line(self, row, value, **opts):
        self.text(row, 0, self.last_col, value, **opts)

    def pair(self, row, left, right, bold_left=False):
        self.text(row, 0, 2, left, bold=bold_left)
        self.text(row, 3, self.last_col, right)


def _estimated_lines(text: str) -> int:
    return sum(max(1, math.ceil(len(part) / BUH_CHARS_PER_LINE)) for part in str(text).split("\n"))


def build_buh_workbook(ctx: ReportContext, results: List[CalculationResult]) -> bytes:
    """
    Протокол комиссии для бухгалтерии (Excel)

    Шапка протокола, члены комиссии, повестка, таблица КПР с итогом,
    итоговый текст, голосование и подписи.
    """
    output = io.BytesIO()
    workbook = xlsxwriter.Workbook(output, {"in_memory": True})
    worksheet = workbook.add_worksheet("Buh")
    worksheet.set_default_row(18)
    for idx, width in enumerate(BUH_COLUMN_WIDTHS):
        worksheet.set_column(idx, idx, width)

    sheet = _BuhSheet(workbook, worksheet)
    settings = ctx.settings

    row = 0
    sheet.line(row, ctx.protocol_title, bold=True, size=12, align="center")
    row += 2
    sheet.line(row, settings.meeting_title, bold=True, size=12)
    row += 1
    if ctx.department:
        sheet.line(row, ctx.department, bold=True, size=12)
        row += 1
    row += 1
    sheet.line(row, ctx.meeting_date_line)
    row += 1
    sheet.line(row, ctx.place_line)
    row += 2
    sheet.line(row, ctx.period_line)
    row += 2

    sheet.line(row, "Члены комиссии:", bold=True)
    row += 1
    for member in ctx.members:
        sheet.pair(row, member.role, member.name)
        row += 1

    if settings.secretary_name:
        sheet.pair(row, f"{SECRETARY_LABEL}:", settings.secretary_name, bold_left=True)
        row += 2
    else:
        row += 1

    sheet.line(row, "ПОВЕСТКА ДНЯ:", bold=True)
    row += 1
    sheet.line(row, ctx.agenda_text)
    worksheet.set_row(row, max(18, _estimated_lines(ctx.agenda_text) * 15))
    row += 2

    # Таблица КПР
    for col, header in enumerate(BUH_TABLE_HEADERS):
        worksheet.write(row, col, header, sheet.fmt(bold=True, align="center", border=True))
    worksheet.set_row(row, 22)
    row += 1

    idx_fmt = sheet.fmt(align="center", border=True, num_format="0")
    text_fmt = sheet.fmt(border=True)
    money_fmt = sheet.fmt(align="right", border=True, num_format="0.00")
    percent_fmt = sheet.fmt(align="center", border=True, num_format="0.00")

    total_kpi_final = 0.0
    for idx, r in enumerate(results, start=1):
        total_kpi_final += float(r.kpi_final or 0)
        worksheet.write_number(row, 0, idx, idx_fmt)
        worksheet.write_string(row, 1, r.fio, text_fmt)
        worksheet.write_number(row, 2, float(r.kpi_sum or 0), money_fmt)
        worksheet.write_number(row, 3, float(r.work_percent or 0), percent_fmt)
        worksheet.write_number(row, 4, float(r.kpi_final or 0), money_fmt)
        row += 1

    worksheet.write_blank(row, 0, None, text_fmt)
    worksheet.write_string(row, 1, TOTAL_LABEL, sheet.fmt(bold=True, border=True))
    worksheet.write_blank(row, 2, None, text_fmt)
    worksheet.write_blank(row, 3, None, text_fmt)
    worksheet.write_number(
        row, 4, round_money(total_kpi_final),
        sheet.fmt(bold=True, align="right", border=True, num_format="0.00"),
    )
    row += 2

    if ctx.footer_text:
        for footer_line in ctx.footer_text.split("\n"):
            sheet.line(row, footer_line)
            row += 1

    for vote_line in ctx.vote_lines:
        sheet.line(row, vote_line)
        row += 1

    sheet.line(row, "Члены комиссии:")
    row += 1

    coordinator = ctx.coordinator
    if coordinator:
        sheet.pair(row, ctx.coordinator_label, coordinator.name)
        row += 1

    if settings.secretary_name:
        sheet.pair(row, SECRETARY_LABEL, settings.secretary_name)

    workbook.close()
    return output.getvalue()
