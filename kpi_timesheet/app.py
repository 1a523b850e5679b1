"""
Flask приложение: расчет KPI по табелю и выгрузки протоколов
"""
import io
import logging
from datetime import datetime

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

from kpi_timesheet.access import ADMIN_ACCESS
from kpi_timesheet.artifacts import BUH_PDF, BUH_XLSX, DETAIL, PAYLOAD_1C, REPORT_PDF
from kpi_timesheet.calendar_manager import CalendarManager, get_days_in_month, merge_holidays
from kpi_timesheet.config import Config
from kpi_timesheet.pipeline import CalculationOutcome, CalculationRequest, render_artifact, run_calculation
from kpi_timesheet.utils import (
    get_request_field,
    handle_errors,
    parse_holidays_field,
    parse_int_field,
    validate_file_size,
    validate_year_month,
)

Config.ensure_directories()

# Настройка логирования
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(Config.LOG_FILE, encoding='utf-8'),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app, origins=Config.CORS_ORIGINS)

# Права пользователя определяет внешний слой авторизации: callable(request) -> UserAccess
app.config["ACCESS_PROVIDER"] = lambda req: ADMIN_ACCESS


def _calc_core(req) -> CalculationOutcome:
    """Собирает параметры расчета из запроса и запускает расчет"""
    if "timesheet" not in req.files:
        raise ValueError("Не загружен файл табеля (timesheet)")

    data = req.files["timesheet"].read()
    validate_file_size(data, Config.MAX_FILE_SIZE)

    quota_message = "Н.ч и Н.д должны быть целыми числами"
    period_message = "Год и месяц должны быть целыми числами"

    calc_request = CalculationRequest(
        timesheet=data,
        year=parse_int_field(req, "year", period_message),
        month=parse_int_field(req, "month", period_message),
        day_quota=parse_int_field(req, "nchDay", quota_message),
        shift_quota=parse_int_field(req, "ndShift", quota_message),
        department=get_request_field(req, "department"),
        holidays=parse_holidays_field(get_request_field(req, "holidays")),
        access=app.config["ACCESS_PROVIDER"](req),
    )
    return run_calculation(calc_request)


def _download(kind: str):
    outcome = _calc_core(request)
    artifact = render_artifact(kind, outcome)
    logger.info(f"Выгрузка {artifact.filename}: {len(artifact.content)} байт")

    return send_file(
        io.BytesIO(artifact.content),
        as_attachment=True,
        download_name=artifact.filename,
        mimetype=artifact.mimetype,
    )


# ==================== РАСЧЕТ KPI ====================

@app.route("/api/kpi-calculator/calculate", methods=["POST"])
@handle_errors
def calculate():
    """Расчет KPI с возвратом JSON"""
    outcome = _calc_core(request)
    payload = outcome.to_dict()

    return jsonify({"results": payload["results"], "errors": payload["errors"]})


@app.route("/api/kpi-calculator/download-excel", methods=["POST"])
@handle_errors
def download_excel():
    """Детальный расчет KPI (Excel)"""
    return _download(DETAIL)


@app.route("/api/kpi-calculator/download-1c", methods=["POST"])
@handle_errors
def download_1c():
    """Выгрузка для 1С"""
    return _download(PAYLOAD_1C)


@app.route("/api/kpi-calculator/download-buh", methods=["POST"])
@handle_errors
def download_buh():
    """Протокол для бухгалтерии (Excel)"""
    return _download(BUH_XLSX)


@app.route("/api/kpi-calculator/download-buh-pdf", methods=["POST"])
@handle_errors
def download_buh_pdf():
    """Протокол для бухгалтерии (PDF)"""
    return _download(BUH_PDF)


@app.route("/api/kpi-calculator/download-report", methods=["POST"])
@handle_errors
def download_report():
    """Протокол заседания (PDF)"""
    return _download(REPORT_PDF)


# ==================== КАЛЕНДАРЬ ====================

@app.route("/api/calendar/days", methods=["GET"])
@handle_errors
def get_calendar_days():
    """Получение дней месяца с типами"""
    now = datetime.now()
    period_message = "Год и месяц должны быть целыми числами"
    year = parse_int_field(request, "year", period_message, default=now.year)
    month = parse_int_field(request, "month", period_message, default=now.month)
    validate_year_month(year, month)

    holidays = merge_holidays(
        CalendarManager().get_holidays(year, month),
        parse_holidays_field(get_request_field(request, "holidays")),
        year,
        month,
    )

    return jsonify({
        "year": year,
        "month": month,
        "holidays": holidays,
        "days": get_days_in_month(year, month, holidays),
    })


# ==================== СЛУЖЕБНЫЕ ====================

@app.route("/api/ping", methods=["GET"])
def ping():
    """Проверка работоспособности API"""
    return jsonify({"status": "ok", "timestamp": datetime.now().isoformat()})


def main():
    logger.info("Запуск приложения...")
    app.run(host="0.0.0.0", port=5000)


if __name__ == "__main__":
    main()
