from datetime import date

import pytest

from dailyload.entities import E5_COLUMNS
from dailyload.errors import RecordDecodeError
from dailyload.fixed_width import INVALID_DATE_DEFAULT, SENTINEL_DATE, ColumnSpec, DecodeWarning, decode, slice_columns


def test_decode_reads_typed_fields(make_e5_line) -> None:
    record = decode(make_e5_line(), list(E5_COLUMNS))

    assert not isinstance(record, DecodeWarning)
    assert record["outputcd"] == "E5"
    assert record["empasgmtnum"] == 21011234
    assert record["empname"] == "DOE JANE"
    assert record["entextractdt"] == date(2026, 10, 21)
    assert record["email"] == "jane.doe@example.gov"
    assert record["gs12cnt"] == 2


def test_decode_short_line_is_a_warning_not_an_exception() -> None:
    result = decode("E5 too short\n", list(E5_COLUMNS))

    assert isinstance(result, DecodeWarning)
    assert result.line_length == len("E5 too short")
    assert result.required_length == 206
    assert result.message.startswith("WARNING")


def test_zero_filled_date_takes_sentinel(make_e5_line) -> None:
    record = decode(make_e5_line(empupdatedt="00000000"), list(E5_COLUMNS))

    assert record["empupdatedt"] == SENTINEL_DATE


def test_unparseable_numbers_default_to_zero(make_e5_line) -> None:
    record = decode(make_e5_line(empasgmtnum="ABCDEFGH", areacd="   "), list(E5_COLUMNS))

    assert record["empasgmtnum"] == 0
    assert record["areacd"] == 0


def test_unparseable_date_takes_default(make_e5_line) -> None:
    defaults: list[tuple[str, str, date]] = []

    record = decode(
        make_e5_line(empupdatedt="20260231"),
        list(E5_COLUMNS),
        on_default=lambda column, raw, value: defaults.append((column.name, raw, value)),
    )

    assert record["empupdatedt"] == INVALID_DATE_DEFAULT
    assert defaults == [("empupdatedt", "20260231", INVALID_DATE_DEFAULT)]


def test_zero_date_is_not_reported_as_default(make_e5_line) -> None:
    defaults: list[str] = []

    decode(make_e5_line(empupdatedt="00000000"), list(E5_COLUMNS), on_default=lambda *args: defaults.append("x"))

    assert defaults == []


def test_bytes_are_decoded_with_extract_encoding(make_e5_line) -> None:
    line = make_e5_line(empname="JOSÉ DOE").encode("latin-1")

    record = decode(line, list(E5_COLUMNS), encoding="latin-1")

    assert record["empname"] == "JOSÉ DOE"


def test_undecodable_bytes_are_a_decode_error(make_e5_line) -> None:
    line = make_e5_line(empname="JOSÉ DOE").encode("latin-1")

    with pytest.raises(RecordDecodeError, match="not valid utf-8"):
        decode(line, list(E5_COLUMNS), encoding="utf-8")


def test_decoded_record_always_has_full_field_set(make_e5_line) -> None:
    record = decode(make_e5_line(empname="", seid="", empupdatedt="00000000"), list(E5_COLUMNS))

    assert list(record) == [column.name for column in E5_COLUMNS]
    assert record["empname"] == ""


def test_encode_then_decode_recovers_values(make_e5_line, e5_values) -> None:
    expected = e5_values(empname="SMITH JOHN", phone=7654321, entextractdt=date(2026, 12, 31))
    record = decode(make_e5_line(empname="SMITH JOHN", phone=7654321, entextractdt=date(2026, 12, 31)), list(E5_COLUMNS))

    assert record == expected


def test_slice_columns_is_one_based_inclusive() -> None:
    line = "E5" + "20261021" + "X" * 10

    assert slice_columns(line, 3, 10) == "20261021"


def test_column_spec_rejects_bad_definitions() -> None:
    with pytest.raises(ValueError):
        ColumnSpec("amount", 1, 4, "decimal")
    with pytest.raises(ValueError):
        ColumnSpec("amount", 5, 4)
