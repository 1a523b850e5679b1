"""
Загрузка табеля: определение формата по сигнатуре и чтение первого листа

Оба формата (.xls Excel 97-2003 и .xlsx) приводятся к одной сетке:
pandas.DataFrame без заголовка, где индексы строк и колонок начинаются с 0.
Дальше по конвейеру форматные API (xlrd / openpyxl) не используются.
"""
import io
import logging
from typing import Union

import pandas as pd

logger = logging.getLogger(__name__)

# OLE Compound Document (.xls)
XLS_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
# ZIP local file header / empty archive / spanned archive (.xlsx)
ZIP_SIGNATURES = (
    b"PK\x03\x04",
    b"PK\x05\x06",
    b"PK\x07\x08",
)

FORMAT_XLS = "xls"
FORMAT_XLSX = "xlsx"
FORMAT_UNKNOWN = "unknown"

UNSUPPORTED_FORMAT_MESSAGE = "Файл табеля должен быть в формате .xlsx или .xls (Excel 97-2003)."


class TimesheetFormatError(ValueError):
    """Табель не удалось прочитать или распознать его шаблон"""


def detect_excel_format(data: bytes) -> str:
    """Определяет формат файла по первым байтам"""
    if not data:
        return FORMAT_UNKNOWN
    if data.startswith(XLS_SIGNATURE):
        return FORMAT_XLS
    if any(data.startswith(sig) for sig in ZIP_SIGNATURES):
        return FORMAT_XLSX
    return FORMAT_UNKNOWN


def _read_modern(data: bytes) -> pd.DataFrame:
    return pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, engine="openpyxl")


def _read_legacy(data: bytes) -> pd.DataFrame:
    return pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, engine="xlrd")


def load_worksheet_grid(data: Union[bytes, bytearray, memoryview]) -> pd.DataFrame:
    """
    Читает первый лист табеля в сетку ячеек

    Args:
        data: Содержимое загруженного файла

    Returns:
        DataFrame без заголовка (все строки листа как есть)

    Raises:
        TimesheetFormatError: Если файл не является табелем Excel
    """
    if not data:
        raise TimesheetFormatError("Файл табеля пустой")
    data = bytes(data)

    fmt = detect_excel_format(data)
    logger.debug(f"Сигнатура табеля: {fmt}")

    if fmt == FORMAT_XLSX:
        readers = (_read_modern,)
    elif fmt == FORMAT_XLS:
        readers = (_read_legacy,)
    else:
        # Неизвестная сигнатура: сначала .xlsx, затем .xls
        readers = (_read_modern, _read_legacy)

    for reader in readers:
        try:
            return reader(data)
        except Exception as e:
            logger.warning(f"Не удалось прочитать табель ({reader.__name__}): {e}")

    raise TimesheetFormatError(UNSUPPORTED_FORMAT_MESSAGE)
