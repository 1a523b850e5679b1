"""
Тесты PDF протоколов: шрифты, ширины колонок и перенос таблицы на новые страницы.
"""
import re

import pytest

from kpi_timesheet import pdf_reports
from kpi_timesheet.kpi_calculator import CalculationResult
from kpi_timesheet.pdf_reports import (
    BUILTIN_BOLD,
    BUILTIN_REGULAR,
    LANDSCAPE,
    PORTRAIT,
    FontPair,
    build_buh_pdf,
    build_report_pdf,
    pick_font,
    register_fonts,
    render_buh_protocol,
    render_meeting_minutes,
    table_columns,
)
from kpi_timesheet.report_settings import DEFAULT_REPORT_SETTINGS
from kpi_timesheet.report_text import build_report_context

PAGE_OBJECT = re.compile(rb"/Type\s*/Page\b")


def _result(idx):
    return CalculationResult(
        fio=f"Сотрудник Номер {idx} Длинноеотчество",
        schedule_type="day", department="Клининг-1",
        days_assigned=20, days_worked=18, not_worked=2,
        letters_weekday=2, letters_sat=0, letters_sun=0, letters_holiday=0,
        numbers_weekday=18, numbers_sat=0, numbers_sun=0, numbers_holiday=0,
        work_percent=90.0, kpi_sum=100000.0, kpi_final=90000.0,
    )


@pytest.fixture
def report_ctx():
    return build_report_context(DEFAULT_REPORT_SETTINGS, 2025, 1, "Клининг-1", [])


@pytest.fixture
def reset_fonts():
    pick_font.cache_clear()
    register_fonts.cache_clear()
    yield
    pick_font.cache_clear()
    register_fonts.cache_clear()


class TestFonts:

    def test_fallback_to_builtin(self, monkeypatch, reset_fonts, tmp_path):
        monkeypatch.setattr(pdf_reports, "font_candidates", lambda: [FontPair(str(tmp_path / "none.ttf"), None)])
        assert pick_font() == FontPair()
        assert register_fonts() == (BUILTIN_REGULAR, BUILTIN_BOLD)

    def test_missing_bold_uses_regular(self, monkeypatch, reset_fonts, tmp_path):
        regular = tmp_path / "regular.ttf"
        regular.write_bytes(b"not really a font")
        monkeypatch.setattr(
            pdf_reports, "font_candidates",
            lambda: [FontPair(None, None), FontPair(str(regular), str(tmp_path / "bold.ttf"))],
        )
        assert pick_font() == FontPair(str(regular), None)

    def test_broken_font_file_falls_back(self, monkeypatch, reset_fonts, tmp_path):
        regular = tmp_path / "regular.ttf"
        regular.write_bytes(b"not really a font")
        monkeypatch.setattr(pdf_reports, "font_candidates", lambda: [FontPair(str(regular), None)])
        assert register_fonts() == (BUILTIN_REGULAR, BUILTIN_BOLD)


class TestColumns:

    @pytest.mark.parametrize("orientation, content_width", [(LANDSCAPE, 761.89), (PORTRAIT, 495.28)])
    def test_columns_fill_content_width(self, orientation, content_width):
        columns = table_columns(orientation, content_width)
        assert [c.key for c in columns] == ["idx", "fio", "kpiPlan", "kpiPercent", "kpiFinal"]
        assert sum(c.width for c in columns) == pytest.approx(content_width)

    def test_landscape_name_column_minimum(self):
        fio = next(c for c in table_columns(LANDSCAPE, 200) if c.key == "fio")
        assert fio.width == 160


class TestDocuments:

    def test_buh_pdf_bytes(self, report_ctx):
        data = build_buh_pdf(report_ctx, [_result(1), _result(2)])
        assert data.startswith(b"%PDF")
        assert data.rstrip().endswith(b"%%EOF")

    def test_report_pdf_bytes(self, report_ctx):
        data = build_report_pdf(report_ctx, [_result(1)])
        assert data.startswith(b"%PDF")

    def test_empty_results(self, report_ctx):
        assert build_buh_pdf(report_ctx, []).startswith(b"%PDF")

    def test_buh_is_landscape_report_is_portrait(self, report_ctx):
        buh = render_buh_protocol(report_ctx, [_result(1)])
        minutes = render_meeting_minutes(report_ctx, [_result(1)])
        assert buh.width > buh.height
        assert minutes.width < minutes.height

    @pytest.mark.parametrize("render", [render_buh_protocol, render_meeting_minutes])
    def test_long_table_paginates_with_header_on_each_page(self, report_ctx, render):
        doc = render(report_ctx, [_result(i) for i in range(1, 121)])
        assert doc.page_count > 1
        assert doc.table_headers_drawn >= 2
        assert doc.table_headers_drawn <= doc.page_count

        data = doc.getvalue()
        assert len(PAGE_OBJECT.findall(data)) == doc.page_count

    def test_short_table_single_header(self, report_ctx):
        doc = render_meeting_minutes(report_ctx, [_result(1), _result(2)])
        assert doc.table_headers_drawn == 1
