"""
Тесты HTTP слоя через Flask test client.
"""
import io

import pytest

from kpi_timesheet.access import UserAccess
from kpi_timesheet.app import app
from kpi_timesheet.artifacts import PDF_MIME, XLSX_MIME
from kpi_timesheet.config import Config


@pytest.fixture
def client(config_paths):
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def _form(roster, **fields):
    data = {
        "timesheet": (io.BytesIO(roster), "tabel.xlsx"),
        "year": "2025",
        "month": "1",
        "nchDay": "20",
        "ndShift": "15",
    }
    data.update(fields)
    return data


def _post(client, path, data, **kwargs):
    return client.post(path, data=data, content_type="multipart/form-data", **kwargs)


class TestCalculate:

    def test_results_and_errors(self, client, kz_roster_bytes):
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes))
        assert resp.status_code == 200

        body = resp.get_json()
        assert [r["fio"] for r in body["results"]] == ["Иванова Анна Сергеевна", "Петров Петр Петрович"]
        assert body["results"][0]["kpiFinal"] == pytest.approx(90000.0)
        assert [e["type"] for e in body["errors"]] == ["STUDENT", "NO_KPI_MAPPING", "DUPLICATE"]

    def test_department_from_query_string(self, client, kz_roster_bytes):
        resp = _post(
            client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes),
            query_string={"department": "Хирургия"},
        )
        body = resp.get_json()
        assert body["results"] == []
        assert body["errors"] == [{"fio": "", "type": "NO_EMPLOYEES", "details": "Нету никого в отделе Хирургия"}]

    def test_fields_from_headers(self, client, kz_roster_bytes):
        data = {"timesheet": (io.BytesIO(kz_roster_bytes), "tabel.xlsx")}
        headers = {"X-KPI-year": "2025", "X-KPI-month": "1", "X-KPI-nchDay": "20", "X-KPI-ndShift": "15"}
        resp = _post(client, "/api/kpi-calculator/calculate", data, headers=headers)
        assert resp.status_code == 200
        assert len(resp.get_json()["results"]) == 2

    def test_holidays_field(self, client, kz_roster_bytes):
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes, holidays="[\"2025-01-06\"]"))
        petrov = next(r for r in resp.get_json()["results"] if r["fio"] == "Петров Петр Петрович")
        assert petrov["lettersHoliday"] == 1
        assert petrov["notWorked"] == 1

    def test_missing_file(self, client):
        resp = _post(client, "/api/kpi-calculator/calculate", {"year": "2025", "month": "1", "nchDay": "20"})
        assert resp.status_code == 400
        assert "timesheet" in resp.get_json()["error"]

    @pytest.mark.parametrize("fields", [
        {"nchDay": "0", "ndShift": "0"},
        {"nchDay": "abc"},
        {"year": "1999"},
        {"month": "0"},
    ])
    def test_bad_parameters(self, client, kz_roster_bytes, fields):
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes, **fields))
        assert resp.status_code == 400
        assert resp.get_json()["error"]

    def test_unsupported_file(self, client):
        resp = _post(client, "/api/kpi-calculator/calculate", _form(b"plain text, not a workbook"))
        assert resp.status_code == 400
        assert ".xlsx" in resp.get_json()["error"]

    def test_file_too_large(self, client, kz_roster_bytes, monkeypatch):
        monkeypatch.setattr(Config, "MAX_FILE_SIZE", 10)
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes))
        assert resp.status_code == 400


class TestAccessProvider:

    @pytest.fixture
    def as_user(self, monkeypatch):
        def _set(access):
            monkeypatch.setitem(app.config, "ACCESS_PROVIDER", lambda req: access)
        return _set

    def test_department_outside_scope(self, client, as_user, kz_roster_bytes):
        as_user(UserAccess(allowed_departments=("Клининг-2",)))
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes, department="Клининг-1"))
        assert resp.status_code == 403

    def test_department_required(self, client, as_user, kz_roster_bytes):
        as_user(UserAccess(allowed_departments=("Клининг-1",)))
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes))
        assert resp.status_code == 400

    def test_department_inside_scope(self, client, as_user, kz_roster_bytes):
        as_user(UserAccess(allowed_departments=("Клининг-1",)))
        resp = _post(client, "/api/kpi-calculator/calculate", _form(kz_roster_bytes, department="клининг-1"))
        assert resp.status_code == 200
        assert len(resp.get_json()["results"]) == 2


class TestDownloads:

    @pytest.mark.parametrize("path, prefix, mimetype", [
        ("/api/kpi-calculator/download-excel", "KPIfinal_2025-01_", XLSX_MIME),
        ("/api/kpi-calculator/download-1c", "KPI_for_1C_2025-01_", XLSX_MIME),
        ("/api/kpi-calculator/download-buh", "KPI_for_Buh_2025-01_", XLSX_MIME),
        ("/api/kpi-calculator/download-buh-pdf", "KPI_for_Buh_2025-01_", PDF_MIME),
        ("/api/kpi-calculator/download-report", "Protocol_2025-01_", PDF_MIME),
    ])
    def test_download(self, client, kz_roster_bytes, path, prefix, mimetype):
        resp = _post(client, path, _form(kz_roster_bytes))
        assert resp.status_code == 200
        assert resp.mimetype == mimetype
        disposition = resp.headers["Content-Disposition"]
        assert "attachment" in disposition
        assert prefix in disposition
        expected_magic = b"%PDF" if mimetype == PDF_MIME else b"PK"
        assert resp.data.startswith(expected_magic)

    def test_download_validation_error(self, client, kz_roster_bytes):
        resp = _post(client, "/api/kpi-calculator/download-excel", _form(kz_roster_bytes, year="1800"))
        assert resp.status_code == 400


class TestCalendarAndPing:

    def test_calendar_days(self, client):
        resp = client.get("/api/calendar/days?year=2025&month=1&holidays=2")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["holidays"] == ["2025-01-01", "2025-01-07", "2025-01-02"]
        assert len(body["days"]) == 31
        assert body["days"][1]["type"] == "holiday"

    def test_calendar_bad_month(self, client):
        assert client.get("/api/calendar/days?year=2025&month=13").status_code == 400

    def test_ping(self, client):
        assert client.get("/api/ping").get_json()["status"] == "ok"
