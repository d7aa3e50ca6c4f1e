"""
Tests for the area, library and availability models.
"""

import pytest
from pydantic import ValidationError

from calil_book_search.models import (
    Area,
    AvailabilityEntry,
    AvailabilityReport,
    CheckResponse,
    LendingStatus,
    LibraryRecord,
    SystemStatus,
    system_ids,
)


class TestArea:
    """Test the Area selector."""

    def test_prefecture_only(self):
        area = Area(prefecture="東京都")
        assert area.city is None

    def test_whitespace_is_stripped(self):
        area = Area(prefecture=" 千葉県 ", city=" 千葉市 ")
        assert area.prefecture == "千葉県"
        assert area.city == "千葉市"

    def test_blank_city_becomes_none(self):
        assert Area(prefecture="千葉県", city="   ").city is None

    def test_blank_prefecture_is_invalid(self):
        with pytest.raises(ValidationError):
            Area(prefecture="  ")

    def test_area_is_immutable(self):
        area = Area(prefecture="千葉県")
        with pytest.raises(ValidationError):
            area.prefecture = "東京都"


class TestLibraryRecord:
    """Test library records."""

    def test_defaults(self):
        record = LibraryRecord()
        assert record.systemid == ""
        assert record.formal == ""
        assert record.faid is None

    def test_record_is_immutable(self):
        record = LibraryRecord(libid="1")
        with pytest.raises(ValidationError):
            record.libid = "2"

    def test_summary_falls_back_to_short_name(self):
        record = LibraryRecord(libid="1", short="中央", systemid="Chiba_Chiba")
        assert record.to_summary()["name"] == "中央"

    def test_system_ids_are_distinct_and_ordered(self):
        libraries = [
            LibraryRecord(libid="1", systemid="B"),
            LibraryRecord(libid="2", systemid="A"),
            LibraryRecord(libid="3", systemid="B"),
            LibraryRecord(libid="4", systemid=""),
        ]
        assert system_ids(libraries) == ["B", "A"]

    def test_system_ids_of_nothing(self):
        assert system_ids([]) == []


class TestCheckResponse:
    """Test normalization of check payloads."""

    def test_full_payload(self):
        response = CheckResponse.model_validate(
            {
                "session": "abc",
                "continue": 1,
                "books": {
                    "4299062647": {
                        "Chiba_Chiba": {
                            "status": "Running",
                            "libkey": {"中央": "貸出可"},
                            "reserveurl": "https://example.jp/{isbn}",
                        }
                    }
                },
            }
        )

        assert response.continue_ == 1
        assert response.poll_session.session == "abc"
        assert response.poll_session.is_complete is False
        system = response.books["4299062647"]["Chiba_Chiba"]
        assert system.status == SystemStatus.RUNNING.value
        assert system.libkey == {"中央": "貸出可"}

    def test_nulls_are_normalized(self):
        response = CheckResponse.model_validate(
            {
                "session": "abc",
                "continue": 0,
                "books": {"1": {"S": {"status": "OK", "libkey": None, "reserveurl": None}}},
            }
        )

        system = response.books["1"]["S"]
        assert system.libkey == {}
        assert system.reserveurl == ""
        assert response.poll_session.is_complete is True

    def test_missing_status_is_not_usable(self):
        response = CheckResponse.model_validate(
            {
                "session": "abc",
                "continue": 0,
                "books": {"1": {"S": {"libkey": {"A": "貸出可"}}, "T": {"status": None}}},
            }
        )

        assert response.books["1"]["S"].status == ""
        assert response.books["1"]["T"].status == ""
        assert not SystemStatus.is_usable(response.books["1"]["S"].status)

    def test_null_session(self):
        response = CheckResponse.model_validate({"session": None, "continue": 0, "books": {}})
        assert response.session == ""
        assert response.poll_session.is_complete is True

    def test_null_books(self):
        response = CheckResponse.model_validate({"session": "s", "continue": 0, "books": None})
        assert response.books == {}

    def test_continue_must_be_flag(self):
        with pytest.raises(ValidationError):
            CheckResponse.model_validate({"session": "s", "continue": 2})

    def test_system_status_usability(self):
        assert SystemStatus.is_usable("OK")
        assert SystemStatus.is_usable("Cache")
        assert not SystemStatus.is_usable("Running")
        assert not SystemStatus.is_usable("Error")


class TestAvailabilityReport:
    """Test report helpers."""

    def test_empty_report_without_libraries(self):
        report = AvailabilityReport(isbn="4299062647")
        assert report.entries == []
        assert report.has_libraries is False

    def test_entry_availability(self):
        entry = AvailabilityEntry(
            libid="1", systemid="S", libkey="A", status=LendingStatus.AVAILABLE.value
        )
        assert entry.is_available is True
        assert entry.reserve_url is None

        on_loan = entry.model_copy(update={"status": LendingStatus.ON_LOAN.value})
        assert on_loan.is_available is False

    def test_lending_vocabulary(self):
        assert {status.value for status in LendingStatus} == {
            "貸出可",
            "蔵書あり",
            "館内のみ",
            "貸出中",
            "予約中",
            "準備中",
            "休館中",
            "蔵書なし",
            "指定館ではない",
            "-",
        }
