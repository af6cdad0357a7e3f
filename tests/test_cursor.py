import uuid

import pytest

from pg_redis_sync.core.cursor import CursorType, describe
from pg_redis_sync.core.exceptions import (
    ConfigurationError,
    ConversionError,
    CursorComparisonError,
)


class TestDescribe:
    @pytest.mark.parametrize(
        "type_name, default, expected",
        [
            ("int64", "-1", -1),
            ("int32", "0", 0),
            ("int", "42", 42),
            ("string", "", ""),
            ("uuid", "00000000-0000-7300-8f14-e6ee9ef0c3f1", "00000000-0000-7300-8f14-e6ee9ef0c3f1"),
        ],
    )
    def test_parses_default(self, type_name, default, expected):
        descriptor = describe(type_name, default)
        assert descriptor.cursor_type is CursorType(type_name)
        assert descriptor.default == expected
        assert descriptor.column == "id"

    def test_unsupported_type(self):
        with pytest.raises(ConfigurationError, match="unsupported cursor type"):
            describe("float", "0")

    def test_invalid_default(self):
        with pytest.raises(ConversionError):
            describe("int64", "abc")


class TestConvert:
    def test_int64_parses_persisted_text(self):
        assert describe("int64", "-1").convert("12345678901") == 12345678901

    @pytest.mark.parametrize("text", ["abc", "1.5", "", " 3", "1_000", "3\n"])
    def test_int_rejects_malformed_text(self, text):
        with pytest.raises(ConversionError):
            describe("int64", "-1").convert(text)

    def test_int64_range(self):
        descriptor = describe("int64", "-1")
        assert descriptor.convert(str(2**63 - 1)) == 2**63 - 1
        with pytest.raises(ConversionError):
            descriptor.convert(str(2**63))

    def test_int32_range(self):
        descriptor = describe("int32", "-1")
        assert descriptor.convert(str(-(2**31))) == -(2**31)
        with pytest.raises(ConversionError):
            descriptor.convert(str(2**31))

    def test_int_is_unbounded(self):
        assert describe("int", "0").convert(str(2**70)) == 2**70

    def test_uuid_text_is_kept_verbatim(self):
        descriptor = describe("uuid", "00000000-0000-0000-0000-000000000000")
        assert (
            descriptor.convert("01926CC6-6430-7359-8BA1-02F348B55D36")
            == "01926CC6-6430-7359-8BA1-02F348B55D36"
        )

    def test_uuid_format_round_trips(self):
        descriptor = describe("uuid", "00000000-0000-0000-0000-000000000000")
        value = descriptor.coerce("BBBBBBBB-0000-7000-8000-000000000001")
        assert descriptor.convert(descriptor.format(value)) == value

    def test_uuid_rejects_malformed_text(self):
        descriptor = describe("uuid", "00000000-0000-0000-0000-000000000000")
        with pytest.raises(ConversionError):
            descriptor.convert("not-a-uuid")

    def test_string_is_identity(self):
        assert describe("string", "").convert("2024-01-01") == "2024-01-01"


class TestCompare:
    def test_integers_compare_numerically(self):
        descriptor = describe("int64", "-1")
        assert descriptor.compare(9, 10) == -1
        assert descriptor.compare(10, 10) == 0
        assert descriptor.compare(11, 10) == 1

    def test_strings_compare_lexicographically(self):
        descriptor = describe("string", "")
        assert descriptor.compare("9", "10") == 1
        assert descriptor.compare("a", "b") == -1

    def test_uuid_accepts_uuid_objects(self):
        descriptor = describe("uuid", "00000000-0000-7300-8f14-e6ee9ef0c3f1")
        newer = uuid.UUID("01926cc6-6430-7359-8ba1-02f348b55d36")
        assert descriptor.compare(descriptor.default, newer) == -1
        assert descriptor.coerce(newer) == "01926cc6-6430-7359-8ba1-02f348b55d36"

    @pytest.mark.parametrize("value", ["10", 1.5, True, None])
    def test_integer_type_mismatch(self, value):
        descriptor = describe("int64", "-1")
        with pytest.raises(CursorComparisonError):
            descriptor.compare(1, value)

    def test_string_type_mismatch(self):
        descriptor = describe("string", "")
        with pytest.raises(CursorComparisonError):
            descriptor.compare("a", 1)

    def test_format(self):
        assert describe("int64", "-1").format(3) == "3"
        assert describe("string", "").format("abc") == "abc"
