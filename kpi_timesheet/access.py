"""
Решение о доступе к отделам (передается вызывающей стороной)
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from kpi_timesheet.kpi_calculator import normalize_department

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserAccess:
    """Права вызывающего: администратор видит все отделы"""
    is_admin: bool = False
    allowed_departments: Tuple[str, ...] = ()


ADMIN_ACCESS = UserAccess(is_admin=True)


def resolve_department(access: UserAccess, requested: Optional[str]) -> Optional[str]:
    """
    Проверяет запрошенный отдел по правам пользователя

    Args:
        access: Права пользователя
        requested: Отдел из запроса (может быть пустым)

    Returns:
        Отдел для расчета; None: без фильтра (только для администратора)

    Raises:
        PermissionError: Нет доступных отделов или отдел вне прав
        ValueError: Не указан отдел для пользователя без прав администратора
    """
    department = str(requested or "").strip() or None
    if access.is_admin:
        return department

    allowed = {normalize_department(d) for d in access.allowed_departments if str(d or "").strip()}
    if not allowed:
        raise PermissionError("Нет доступных отделов")
    if department is None:
        raise ValueError("Не указан отдел")
    if normalize_department(department) not in allowed:
        logger.warning(f"Отдел {department} вне прав пользователя")
        raise PermissionError("Нет доступа к отделу")
    return department


def allowed_departments_filter(access: UserAccess) -> Optional[Tuple[str, ...]]:
    """Ограничение справочника KPI: None для администратора"""
    if access.is_admin:
        return None
    return tuple(access.allowed_departments)
