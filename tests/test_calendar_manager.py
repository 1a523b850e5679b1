"""
Тесты календаря: объединение праздников, последний рабочий день, дни месяца.
"""
import json
import logging

from kpi_timesheet.calendar_manager import (
    CalendarManager,
    get_days_in_month,
    last_day_of_month,
    last_working_date,
    merge_holidays,
    normalize_holiday_input,
)


class TestHolidayInput:

    def test_day_number_placed_in_month(self):
        assert normalize_holiday_input(7, 2025, 1) == "2025-01-07"
        assert normalize_holiday_input("7", 2025, 1) == "2025-01-07"

    def test_iso_with_time(self):
        assert normalize_holiday_input("2025-01-07T00:00:00.000Z", 2025, 1) == "2025-01-07"

    def test_other_month_dropped(self):
        assert normalize_holiday_input("2025-02-07", 2025, 1) is None
        assert normalize_holiday_input("не дата", 2025, 1) is None


class TestMergeHolidays:

    def test_union_without_repeats_in_order(self):
        merged = merge_holidays(
            ["2025-01-01", {"date": "2025-01-07"}],
            [1, "2025-01-02", "2025-02-01", "7"],
            2025, 1,
        )
        assert merged == ["2025-01-01", "2025-01-07", "2025-01-02"]

    def test_empty_sources(self):
        assert merge_holidays([], None, 2025, 1) == []


class TestLastWorkingDate:

    def test_last_day_is_friday(self):
        assert last_working_date(2025, 1, []) == "2025-01-31"

    def test_skips_holiday(self):
        assert last_working_date(2025, 1, ["2025-01-31"]) == "2025-01-30"

    def test_skips_weekend(self):
        # 31 мая 2025: суббота
        assert last_working_date(2025, 5, []) == "2025-05-30"
        # 30 ноября 2025: воскресенье
        assert last_working_date(2025, 11, []) == "2025-11-28"

    def test_leap_february(self):
        assert last_day_of_month(2024, 2) == 29
        assert last_working_date(2024, 2, []) == "2024-02-29"


class TestDaysInMonth:

    def test_types_and_weekend_flag(self):
        days = get_days_in_month(2025, 1, ["2025-01-01"])
        assert len(days) == 31
        assert days[0] == {
            "date": "2025-01-01", "day": 1, "type": "holiday", "weekday": 3, "is_weekend": True,
        }
        assert days[3]["type"] == "saturday"
        assert days[4]["type"] == "sunday"
        assert days[5]["type"] == "weekday"
        assert days[5]["is_weekend"] is False


class TestCalendarManager:

    def test_scoped_by_tags_and_date(self, holidays_file):
        manager = CalendarManager(holidays_file)
        assert manager.get_holidays(2025, 1) == ["2025-01-01", "2025-01-07"]
        assert manager.get_holidays(2025, 3) == ["2025-03-08"]
        assert manager.get_holidays(2024, 12) == ["2024-12-31"]

    def test_plain_list_file(self, tmp_path):
        path = tmp_path / "holidays.json"
        path.write_text(json.dumps(["2025-05-01", "2025-05-01", "2025-05-09"]), encoding="utf-8")
        assert CalendarManager(path).get_holidays(2025, 5) == ["2025-05-01", "2025-05-09"]

    def test_missing_file(self, tmp_path):
        assert CalendarManager(tmp_path / "nope.json").get_holidays(2025, 1) == []

    def test_malformed_tags_skipped(self, tmp_path, caplog):
        path = tmp_path / "holidays.json"
        path.write_text(json.dumps({"holidays": [
            {"date": "2025-01-02", "year": "двадцать пятый", "month": 1},
            {"date": "2025-01-03", "year": 2025, "month": [1]},
            {"date": "2025-01-06", "year": "2025", "month": "1"},
        ]}), encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="kpi_timesheet.calendar_manager"):
            assert CalendarManager(path).get_holidays(2025, 1) == ["2025-01-06"]
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 2
