"""
Справочник KPI сотрудников (только чтение)
"""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd

from kpi_timesheet.config import Config
from kpi_timesheet.kpi_calculator import KpiReference, normalize_department

logger = logging.getLogger(__name__)

KPI_COLUMNS = ["id", "fio", "kpiSum", "scheduleType", "department", "categoryCode"]


def _clean(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        # categoryCode из Excel часто приходит как 4.0
        return str(int(value))
    return str(value).strip()


def load_kpi_table(
    kpi_file: Union[str, Path, None] = None,
    allowed_departments: Optional[Iterable[str]] = None,
) -> List[KpiReference]:
    """
    Возвращает справочник KPI для расчета

    Args:
        kpi_file: Путь к файлу справочника (по умолчанию Config.KPI_FILE)
        allowed_departments: Ограничение по отделам (None: все отделы)

    Returns:
        Список записей справочника
    """
    path = Path(kpi_file) if kpi_file else Config.KPI_FILE
    if not path.exists():
        logger.warning(f"Справочник KPI не найден: {path}")
        return []

    df = pd.read_excel(path, dtype=object)

    allowed = None
    if allowed_departments is not None:
        allowed = {normalize_department(d) for d in allowed_departments if str(d or "").strip()}

    records = []
    for _, row in df.iterrows():
        fio = _clean(row.get("fio"))
        if not fio:
            continue
        rec = KpiReference.from_record({
            "fio": fio,
            "kpiSum": _clean(row.get("kpiSum")) or 0,
            "scheduleType": _clean(row.get("scheduleType")),
            "department": _clean(row.get("department")),
            "categoryCode": _clean(row.get("categoryCode")),
        })
        if allowed is not None and normalize_department(rec.department) not in allowed:
            continue
        records.append(rec)

    logger.info(f"Справочник KPI: {len(records)} записей")
    return records
