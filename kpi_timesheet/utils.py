"""
Утилиты для валидации и обработки данных запроса
"""
import json
import logging
from functools import wraps
from typing import Any, Callable, List, Optional

from flask import jsonify

from kpi_timesheet.config import Config

logger = logging.getLogger(__name__)

HEADER_PREFIX = "X-KPI-"


def get_request_field(req, name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Значение поля запроса: форма, затем query string, затем заголовок X-KPI-<поле>
    """
    for source in (req.form, req.args):
        value = source.get(name)
        if value is not None and str(value).strip() != "":
            return str(value).strip()
    value = req.headers.get(f"{HEADER_PREFIX}{name}")
    if value is not None and value.strip() != "":
        return value.strip()
    return default


def parse_int_field(req, name: str, message: str, default: int = 0) -> int:
    raw = get_request_field(req, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(message)


def validate_file_size(data: bytes, max_size: int = 10 * 1024 * 1024) -> None:
    """
    Валидирует размер загруженного файла

    Raises:
        ValueError: Если файл пустой или слишком большой
    """
    if not data:
        raise ValueError("Файл не загружен")

    if len(data) > max_size:
        size_mb = max_size / (1024 * 1024)
        raise ValueError(f"Файл слишком большой. Максимальный размер: {size_mb}MB")


def handle_errors(f: Callable) -> Callable:
    """
    Декоратор для обработки ошибок в API endpoints

    Логирует ошибки и возвращает понятные сообщения пользователю
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValueError as e:
            logger.warning(f"Validation error in {f.__name__}: {e}")
            return jsonify({"error": str(e)}), 400
        except FileNotFoundError as e:
            logger.error(f"File not found in {f.__name__}: {e}")
            return jsonify({"error": "Файл не найден"}), 404
        except PermissionError as e:
            logger.error(f"Permission error in {f.__name__}: {e}")
            return jsonify({"error": "Недостаточно прав доступа"}), 403
        except Exception:
            logger.exception(f"Unexpected error in {f.__name__}")
            # Детали ошибки остаются в логе
            return jsonify({"error": "Внутренняя ошибка сервера"}), 500
    return wrapper


def validate_year_month(year: int, month: int) -> None:
    """
    Валидирует год и месяц

    Raises:
        ValueError: Если значения некорректны
    """
    if not (Config.MIN_YEAR <= year <= Config.MAX_YEAR):
        raise ValueError(f"Год должен быть между {Config.MIN_YEAR} и {Config.MAX_YEAR}")

    if not (1 <= month <= 12):
        raise ValueError("Месяц должен быть от 1 до 12")


def parse_holidays_field(raw: Optional[str]) -> List[Any]:
    """
    Парсит праздничные дни из поля запроса

    Поддерживает форматы:
    - JSON массив: ["2025-12-16", "2025-12-17"]
    - CSV строка: "16,17" или "16;17"

    Returns:
        Список дат (строки или числа)
    """
    raw = (raw or "").strip()
    if not raw:
        return []

    if raw.startswith("["):
        try:
            val = json.loads(raw)
        except ValueError:
            logger.warning(f"Праздники не в формате JSON, читаем как список: {raw}")
        else:
            if isinstance(val, list):
                return val

    parts = [p.strip() for p in raw.replace(";", ",").split(",") if p.strip()]
    out = []
    for p in parts:
        if p.isdigit():
            out.append(int(p))
        else:
            out.append(p)
    return out
