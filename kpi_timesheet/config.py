"""
Конфигурация приложения
"""
import os
from pathlib import Path


class Config:
    """Конфигурация приложения"""
    
    # Базовые пути
    BASE_DIR = Path(__file__).parent
    DATA_DIR = Path(os.getenv("KPI_DATA_DIR", BASE_DIR / "data"))
    LOGS_DIR = Path(os.getenv("KPI_LOGS_DIR", BASE_DIR / "logs"))
    
    # Источники данных (только чтение)
    KPI_FILE = Path(os.getenv("KPI_FILE", DATA_DIR / "KPIsum_dynamic.xlsx"))
    HOLIDAYS_FILE = Path(os.getenv("HOLIDAYS_FILE", DATA_DIR / "holidays.json"))
    REPORT_SETTINGS_FILE = Path(os.getenv("REPORT_SETTINGS_FILE", DATA_DIR / "report_settings.json"))
    
    # Ограничения
    MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", 10 * 1024 * 1024))  # 10MB
    MIN_YEAR = 2000
    MAX_YEAR = 2100
    
    # PDF шрифты (явное переопределение, иначе ищем системные)
    PDF_FONT_PATH = os.getenv("PDF_FONT_PATH")
    PDF_FONT_BOLD_PATH = os.getenv("PDF_FONT_BOLD_PATH")
    
    # API
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
    
    # Логирование
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = LOGS_DIR / "app.log"
    
    @classmethod
    def ensure_directories(cls):
        """Создает необходимые директории"""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)
