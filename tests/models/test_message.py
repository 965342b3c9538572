"""Unit tests for message records and participant addresses."""

import pytest
from pydantic import ValidationError

from models.message import (
    ADDRESS_TOKEN_SENTINEL,
    Address,
    Message,
    MessageBox,
    MessageStatus,
    is_real_address,
    normalize_phone_number,
)
from tests.fixtures.messages import create_message, create_message_record


class TestMessageInstantiation:
    """Test building messages from device records."""

    def test_numeric_thread_id_becomes_string(self):
        """Verify the device's numeric thread ids are held as strings."""
        message = create_message(thread_id=42)

        assert message.thread_id == "42"

    def test_defaults(self):
        """Verify optional fields default sensibly."""
        message = Message(thread_id="1", date=5, type=1)

        assert message.read == MessageStatus.UNREAD
        assert message.body is None
        assert message.addresses == []

    def test_missing_thread_id_rejected(self):
        """Verify a record without a thread id fails validation."""
        with pytest.raises(ValidationError):
            Message.model_validate({"thread_id": None, "date": 1, "type": 1})

    def test_boolean_thread_id_rejected(self):
        """Verify booleans aren't mistaken for thread ids."""
        with pytest.raises(ValidationError):
            Message.model_validate({"thread_id": True, "date": 1, "type": 1})

    def test_unknown_fields_kept(self):
        """Verify extra device fields survive a dump."""
        message = create_message(sub_id=99, event=1)

        dumped = message.to_dict()
        assert dumped["sub_id"] == 99
        assert dumped["event"] == 1

    def test_to_dict_is_json_compatible(self):
        """Verify enums are dumped as plain ints."""
        dumped = create_message(read=MessageStatus.READ).to_dict()

        assert dumped["read"] == 1
        assert type(dumped["read"]) is int
        assert dumped["addresses"] == [{"address": "+15551234567"}]


class TestMessageProperties:
    """Test derived message properties."""

    def test_box_for_valid_type(self):
        assert create_message(type=MessageBox.SENT).box == MessageBox.SENT

    def test_box_for_invalid_type(self):
        """Verify out-of-range types have no box."""
        assert create_message(type=9).box is None

    def test_placeholder(self):
        assert create_message(type=MessageBox.ALL).is_placeholder
        assert not create_message(type=MessageBox.INBOX).is_placeholder

    def test_is_read(self):
        assert create_message(read=MessageStatus.READ).is_read
        assert not create_message(read=MessageStatus.UNREAD).is_read

    @pytest.mark.parametrize("value,expected", [(0, True), (5, True), (-1, False), (6, False), ("1", False)])
    def test_is_valid_box(self, value, expected):
        assert MessageBox.is_valid(value) is expected


class TestMessageMerge:
    """Test field-level merging of redelivered messages."""

    def test_merge_overwrites_carried_fields(self):
        """Verify fields sent in the later record win."""
        cached = create_message(body="draft", read=MessageStatus.UNREAD)
        later = create_message(body="final", read=MessageStatus.READ)

        assert cached.merge_from(later) is True
        assert cached.body == "final"
        assert cached.is_read

    def test_merge_keeps_fields_not_carried(self):
        """Verify a partial record doesn't blank out cached fields."""
        cached = create_message(body="keep me")
        partial = Message.model_validate(
            {"thread_id": 1, "date": 1000, "type": 1, "read": 1}
        )

        cached.merge_from(partial)

        assert cached.body == "keep me"
        assert cached.is_read

    def test_merge_identical_reports_no_change(self):
        cached = create_message()

        assert cached.merge_from(create_message()) is False

    def test_merge_carries_extra_fields(self):
        cached = create_message()

        assert cached.merge_from(create_message(sub_id=2)) is True
        assert cached.to_dict()["sub_id"] == 2


class TestAddresses:
    """Test participant address handling."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+1 (555) 123-4567", "15551234567"),
            ("0044 20 7946 0000", "442079460000"),
            ("5551234567", "5551234567"),
            ("alice@example.com", "alice@example.com"),
            ("BANK", "BANK"),
        ],
    )
    def test_normalize_phone_number(self, raw, expected):
        assert normalize_phone_number(raw) == expected

    def test_matches_ignores_formatting_and_country_code(self):
        assert Address(address="+1 (555) 123-4567").matches(Address(address="5551234567"))
        assert Address(address="5551234567").matches(Address(address="+15551234567"))

    def test_different_numbers_do_not_match(self):
        assert not Address(address="5551234567").matches(Address(address="5559876543"))

    def test_is_real_address(self):
        assert is_real_address({"address": "+15551234567"})
        assert is_real_address(Address(address="+15551234567"))
        assert not is_real_address({"address": ADDRESS_TOKEN_SENTINEL})
        assert not is_real_address({"address": None})
        assert not is_real_address({})
        assert not is_real_address("+15551234567")

    def test_record_fixture_shape(self):
        """Verify the record fixture matches the device's layout."""
        record = create_message_record(addresses=["1", "2"])

        assert record["addresses"] == [{"address": "1"}, {"address": "2"}]
