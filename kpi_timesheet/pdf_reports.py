"""
PDF протоколы: протокол для бухгалтерии (альбомный) и протокол заседания (книжный)

Таблицы разбиваются на страницы: если следующая строка не помещается,
начинается новая страница и заголовок таблицы рисуется заново.
"""
import io
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

from reportlab.lib.colors import HexColor, black
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from kpi_timesheet.config import Config
from kpi_timesheet.kpi_calculator import CalculationResult, round_money
from kpi_timesheet.report_text import SECRETARY_LABEL, TOTAL_LABEL, ReportContext, format_number

logger = logging.getLogger(__name__)

PORTRAIT = "portrait"
LANDSCAPE = "landscape"

BUILTIN_REGULAR = "Helvetica"
BUILTIN_BOLD = "Helvetica-Bold"


@dataclass(frozen=True)
class FontPair:
    regular: Optional[str] = None
    bold: Optional[str] = None


def font_candidates() -> List[FontPair]:
    """Пути к шрифтам в порядке приоритета: явное переопределение, затем системные"""
    return [
        FontPair(Config.PDF_FONT_PATH, Config.PDF_FONT_BOLD_PATH),
        FontPair("C:\\Windows\\Fonts\\arial.ttf", "C:\\Windows\\Fonts\\arialbd.ttf"),
        FontPair("C:\\Windows\\Fonts\\times.ttf", "C:\\Windows\\Fonts\\timesbd.ttf"),
        FontPair(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        ),
        FontPair(
            "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        ),
        FontPair(
            "/System/Library/Fonts/Supplemental/Arial.ttf",
            "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        ),
    ]


@lru_cache(maxsize=1)
def pick_font() -> FontPair:
    """Первый существующий шрифт; жирный: только если файл тоже есть"""
    for candidate in font_candidates():
        if candidate.regular and os.path.exists(candidate.regular):
            bold = candidate.bold if candidate.bold and os.path.exists(candidate.bold) else None
            return FontPair(candidate.regular, bold)
    return FontPair()


@lru_cache(maxsize=1)
def register_fonts() -> Tuple[str, str]:
    """
    Регистрирует шрифты с кириллицей в reportlab

    Returns:
        (имя обычного шрифта, имя жирного шрифта); встроенный Helvetica,
        если подходящих файлов нет, и обычный вместо жирного без bold-файла
    """
    font = pick_font()
    if not font.regular:
        logger.warning("Шрифт с кириллицей не найден, используется Helvetica")
        return BUILTIN_REGULAR, BUILTIN_BOLD

    try:
        pdfmetrics.registerFont(TTFont("KPI-Regular", font.regular))
    except Exception as e:
        logger.error(f"Ошибка регистрации шрифта {font.regular}: {e}")
        return BUILTIN_REGULAR, BUILTIN_BOLD

    bold_name = "KPI-Regular"
    if font.bold:
        try:
            pdfmetrics.registerFont(TTFont("KPI-Bold", font.bold))
            bold_name = "KPI-Bold"
        except Exception as e:
            logger.warning(f"Жирный шрифт {font.bold} не загружен: {e}")

    logger.info(f"PDF шрифт: {font.regular} (bold: {font.bold or 'нет'})")
    return "KPI-Regular", bold_name


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    width: float
    align: str = "left"


def table_columns(orientation: str, content_width: float) -> List[Column]:
    """Ширины колонок таблицы КПР для книжной и альбомной страницы"""
    if orientation == LANDSCAPE:
        idx_width, num_width, percent_width = 28, 70, 50
        fio_width = max(160, content_width - idx_width - num_width * 2 - percent_width)
        return [
            Column("idx", "№ п/п", idx_width, "center"),
            Column("fio", "ФИО", fio_width, "left"),
            Column("kpiPlan", "КПР план", num_width, "right"),
            Column("kpiPercent", "КПР %", percent_width, "center"),
            Column("kpiFinal", "КПР итог", num_width, "right"),
        ]

    idx_width, plan_width, percent_width, final_width = 28, 110, 60, 80
    fio_width = content_width - idx_width - plan_width - percent_width - final_width
    return [
        Column("idx", "№", idx_width, "left"),
        Column("fio", "ФИО", fio_width, "left"),
        Column("kpiPlan", "КПР общий план (сумма)", plan_width, "right"),
        Column("kpiPercent", "КПР %", percent_width, "right"),
        Column("kpiFinal", "КПР итог", final_width, "right"),
    ]


class PdfDocument:
    """Курсор по страницам поверх reportlab canvas (y отсчитывается от верха)"""

    def __init__(self, orientation: str, margin: float, base_size: float):
        self.orientation = orientation
        self.pagesize = landscape(A4) if orientation == LANDSCAPE else A4
        self.width, self.height = self.pagesize
        self.margin = margin
        self.content_width = self.width - 2 * margin
        self.base_size = base_size
        self.font_regular, self.font_bold = register_fonts()

        self._buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self._buffer, pagesize=self.pagesize)
        self.page_count = 1
        self.table_headers_drawn = 0
        self.y = self.height - margin
        self.set_font()

    # ---------- шрифты и страницы ----------

    def set_font(self, bold: bool = False, size: Optional[float] = None) -> None:
        self.font_name = self.font_bold if bold else self.font_regular
        self.font_size = size or self.base_size
        self.canvas.setFont(self.font_name, self.font_size)

    @property
    def leading(self) -> float:
        return self.font_size * 1.25

    @property
    def bottom(self) -> float:
        return self.margin

    def new_page(self) -> None:
        font_name, font_size = self.font_name, self.font_size
        self.canvas.showPage()
        self.page_count += 1
        self.y = self.height - self.margin
        self.font_name, self.font_size = font_name, font_size
        self.canvas.setFont(font_name, font_size)

    def ensure_space(self, height: float) -> bool:
        """Новая страница, если блок высотой height не помещается"""
        if self.y - height < self.bottom:
            self.new_page()
            return True
        return False

    def move_down(self, lines: float = 1.0) -> None:
        self.y -= self.leading * lines

    # ---------- текст ----------

    def wrap(self, text: str, width: float) -> List[str]:
        lines: List[str] = []
        for part in str(text or "").split("\n"):
            lines.extend(simpleSplit(part, self.font_name, self.font_size, width) or [""])
        return lines

    def _draw_line(self, line: str, x: float, baseline: float, width: float, align: str) -> None:
        if align == "center":
            self.canvas.drawCentredString(x + width / 2, baseline, line)
        elif align == "right":
            self.canvas.drawRightString(x + width, baseline, line)
        else:
            self.canvas.drawString(x, baseline, line)

    def paragraph(self, text: str, bold: bool = False, size: Optional[float] = None, align: str = "left") -> None:
        self.set_font(bold, size)
        for line in self.wrap(text, self.content_width):
            self.ensure_space(self.leading)
            self._draw_line(line, self.margin, self.y - self.font_size, self.content_width, align)
            self.y -= self.leading
        self.set_font()

    def key_value(self, left: str, right: str, min_role_width: float = 140, gap: float = 6) -> None:
        max_role_width = min(260, round(self.content_width * 0.4))
        name_width = max(200, self.content_width - max_role_width)
        text_width = pdfmetrics.stringWidth(left, self.font_name, self.font_size) + gap
        role_width = min(max_role_width, max(min_role_width, text_width))

        left_lines = self.wrap(left, role_width - gap)
        right_lines = self.wrap(right, min(name_width, self.content_width - role_width))
        height = max(len(left_lines), len(right_lines)) * self.leading
        self.ensure_space(height)

        for i, line in enumerate(left_lines):
            self.canvas.drawString(self.margin, self.y - self.font_size - i * self.leading, line)
        for i, line in enumerate(right_lines):
            self.canvas.drawString(self.margin + role_width, self.y - self.font_size - i * self.leading, line)
        self.y -= height + self.leading * 0.1

    # ---------- таблица ----------

    def table(self, columns: Sequence[Column], rows: Sequence[Dict[str, str]], bordered: bool,
              size: float, padding: float = 3) -> None:
        """
        Таблица с переносом строк внутри ячеек

        Строка с ключом "_bold" рисуется жирным (итог).
        """
        left = self.margin
        right = self.margin + sum(col.width for col in columns)

        def draw_header():
            self.set_font(bold=True, size=size)
            height = max(18, max(len(self.wrap(c.label, c.width - padding * 2)) for c in columns) * self.leading + 4)
            x = left
            for col in columns:
                if bordered:
                    self.canvas.rect(x, self.y - height, col.width, height, stroke=1, fill=0)
                for i, line in enumerate(self.wrap(col.label, col.width - padding * 2)):
                    self._draw_line(line, x + padding, self.y - self.font_size - 3 - i * self.leading,
                                    col.width - padding * 2, col.align)
                x += col.width
            self.y -= height
            if not bordered:
                self.canvas.line(left, self.y + 2, right, self.y + 2)
            self.table_headers_drawn += 1
            self.set_font(size=size)

        self.ensure_space(18 + 16)
        draw_header()

        for row in rows:
            self.set_font(bold=bool(row.get("_bold")), size=size)
            cells = {c.key: self.wrap(row.get(c.key, ""), c.width - padding * 2) for c in columns}
            row_height = max(16, max(len(lines) for lines in cells.values()) * self.leading + padding * 2)

            if self.y - row_height < self.bottom:
                self.new_page()
                draw_header()
                self.set_font(bold=bool(row.get("_bold")), size=size)

            x = left
            for col in columns:
                if bordered:
                    self.canvas.rect(x, self.y - row_height, col.width, row_height, stroke=1, fill=0)
                for i, line in enumerate(cells[col.key]):
                    self._draw_line(line, x + padding, self.y - padding - self.font_size - i * self.leading,
                                    col.width - padding * 2, col.align)
                x += col.width

            self.y -= row_height
            if not bordered:
                self.canvas.setStrokeColor(HexColor("#e5e7eb"))
                self.canvas.line(left, self.y, right, self.y)
                self.canvas.setStrokeColor(black)

        self.y -= 8
        self.set_font()

    def getvalue(self) -> bytes:
        self.canvas.save()
        return self._buffer.getvalue()


def _table_rows(results: Sequence[CalculationResult], with_total: bool) -> List[Dict[str, str]]:
    rows = []
    total = 0.0
    for idx, r in enumerate(results, start=1):
        total += float(r.kpi_final or 0)
        rows.append({
            "idx": str(idx),
            "fio": str(r.fio or "").strip(),
            "kpiPlan": format_number(r.kpi_sum),
            "kpiPercent": format_number(r.work_percent),
            "kpiFinal": format_number(r.kpi_final),
        })
    if with_total:
        rows.append({"idx": "", "fio": TOTAL_LABEL, "kpiFinal": format_number(round_money(total)), "_bold": "1"})
    return rows


def _draw_header_block(doc: PdfDocument, ctx: ReportContext, title_size: float, heading_size: float) -> None:
    doc.paragraph(ctx.protocol_title, bold=True, size=title_size, align="center")
    doc.move_down(0.6)
    doc.paragraph(ctx.settings.meeting_title, bold=True, size=heading_size)
    if ctx.department:
        doc.paragraph(ctx.department, bold=True, size=heading_size)
    doc.move_down(0.6)

    doc.paragraph(ctx.meeting_date_line)
    doc.paragraph(ctx.place_line)
    doc.move_down(0.4)
    doc.paragraph(ctx.period_line)
    doc.move_down(0.6)

    doc.paragraph("Члены комиссии:", bold=True)
    doc.move_down(0.2)
    for member in ctx.members:
        doc.key_value(member.role, member.name)
    if ctx.settings.secretary_name:
        doc.key_value(f"{SECRETARY_LABEL}:", ctx.settings.secretary_name)

    doc.move_down(0.6)
    doc.paragraph("ПОВЕСТКА ДНЯ:", bold=True)
    doc.move_down(0.3)
    doc.paragraph(ctx.agenda_text)
    doc.move_down(0.6)


def _draw_closing_block(doc: PdfDocument, ctx: ReportContext) -> None:
    doc.move_down(0.6)
    doc.paragraph(ctx.footer_text)
    doc.move_down(0.6)
    for line in ctx.vote_lines:
        doc.paragraph(line)
    doc.move_down(0.6)

    doc.paragraph("Члены комиссии:")
    coordinator = ctx.coordinator
    if coordinator:
        doc.key_value(ctx.coordinator_label, coordinator.name)
    if ctx.settings.secretary_name:
        doc.key_value(SECRETARY_LABEL, ctx.settings.secretary_name)


def render_buh_protocol(ctx: ReportContext, results: Sequence[CalculationResult]) -> PdfDocument:
    """Протокол для бухгалтерии: альбомный A4, таблица с рамками и строкой "Итого" """
    doc = PdfDocument(LANDSCAPE, margin=40, base_size=10)
    _draw_header_block(doc, ctx, title_size=13, heading_size=11)
    doc.table(table_columns(LANDSCAPE, doc.content_width), _table_rows(results, with_total=True),
              bordered=True, size=8.5)
    _draw_closing_block(doc, ctx)
    return doc


def render_meeting_minutes(ctx: ReportContext, results: Sequence[CalculationResult]) -> PdfDocument:
    """Протокол заседания: книжный A4, результаты КПР отдельным разделом"""
    doc = PdfDocument(PORTRAIT, margin=50, base_size=11)
    _draw_header_block(doc, ctx, title_size=14, heading_size=12)
    doc.paragraph(ctx.results_title, bold=True)
    doc.move_down(0.4)
    doc.table(table_columns(PORTRAIT, doc.content_width), _table_rows(results, with_total=False),
              bordered=False, size=10)
    _draw_closing_block(doc, ctx)
    return doc


def build_buh_pdf(ctx: ReportContext, results: Sequence[CalculationResult]) -> bytes:
    return render_buh_protocol(ctx, results).getvalue()


def build_report_pdf(ctx: ReportContext, results: Sequence[CalculationResult]) -> bytes:
    return render_meeting_minutes(ctx, results).getvalue()
