"""
Виды выгружаемых файлов: имена и MIME-типы
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MIME = "application/pdf"

DETAIL = "detail"
PAYLOAD_1C = "1c"
BUH_XLSX = "buh"
BUH_PDF = "buh-pdf"
REPORT_PDF = "report"


@dataclass(frozen=True)
class ArtifactKind:
    prefix: str
    extension: str
    mimetype: str


ARTIFACT_KINDS: Dict[str, ArtifactKind] = {
    DETAIL: ArtifactKind("KPIfinal", "xlsx", XLSX_MIME),
    PAYLOAD_1C: ArtifactKind("KPI_for_1C", "xlsx", XLSX_MIME),
    BUH_XLSX: ArtifactKind("KPI_for_Buh", "xlsx", XLSX_MIME),
    BUH_PDF: ArtifactKind("KPI_for_Buh", "pdf", PDF_MIME),
    REPORT_PDF: ArtifactKind("Protocol", "pdf", PDF_MIME),
}


def get_artifact_kind(kind: str) -> ArtifactKind:
    try:
        return ARTIFACT_KINDS[kind]
    except KeyError:
        raise ValueError(f"Неизвестный тип выгрузки: {kind}")


def artifact_filename(kind: str, year: int, month: int, now: Optional[datetime] = None) -> str:
    """Например, KPI_for_1C_2025-01_20250131_153000.xlsx"""
    artifact_kind = get_artifact_kind(kind)
    ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{artifact_kind.prefix}_{year}-{month:02d}_{ts}.{artifact_kind.extension}"
