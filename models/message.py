"""SMS/MMS message records as delivered by the paired device."""

import re
from enum import IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinel the peer's input layer injects in place of a real address.
ADDRESS_TOKEN_SENTINEL = "insert-address-token"

_PHONE_STRIP = re.compile(r"^0*|[ ()+-]")
_HAS_LETTERS = re.compile(r"[a-zA-Z]")


class MessageBox(IntEnum):
    """Android Telephony message box, carried in the record's ``type`` field.

    ALL doubles as the placeholder type used by conversation-listing stubs.
    """

    ALL = 0
    INBOX = 1
    SENT = 2
    DRAFT = 3
    OUTBOX = 4
    FAILED = 5

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        """Check whether a raw ``type`` value is a known box."""
        return isinstance(value, int) and cls.ALL <= value <= cls.FAILED


PLACEHOLDER_TYPE = MessageBox.ALL


class MessageStatus(IntEnum):
    """Read state, matching the peer's ``read`` field."""

    UNREAD = 0
    READ = 1


def normalize_phone_number(value: str) -> str:
    """Reduce a phone number to comparable digits.

    Leading zeros, spaces, parentheses, ``+`` and ``-`` are removed. Values
    containing letters (email addresses, short-code names) are returned
    unchanged.

    Args:
        value: The raw address string.

    Returns:
        The stripped number, or the original value if it isn't numeric.
    """
    stripped = _PHONE_STRIP.sub("", value)
    if stripped and not _HAS_LETTERS.search(stripped):
        return stripped
    return value


class Address(BaseModel):
    """One participant address on a message.

    Args:
        address: Phone number or other identifier as sent by the peer.
    """

    model_config = ConfigDict(extra="allow")

    address: str = Field(description="Phone number or identifier")

    @property
    def normalized(self) -> str:
        """Address reduced for comparison."""
        return normalize_phone_number(self.address)

    def matches(self, other: "Address") -> bool:
        """Loose equality used to match participants across threads.

        Two numbers match when either normalized form is a suffix of the
        other, so "+1 (555) 123-4567" matches "5551234567".
        """
        ours = self.normalized
        theirs = other.normalized
        return ours.endswith(theirs) or theirs.endswith(ours)


def is_real_address(raw: Any) -> bool:
    """Check a raw address entry before it is stored.

    Args:
        raw: An address dict (or Address) from an inbound record.

    Returns:
        False for entries with no address value or the peer's sentinel.
    """
    if isinstance(raw, Address):
        value = raw.address
    elif isinstance(raw, dict):
        value = raw.get("address")
    else:
        return False
    return value is not None and value != ADDRESS_TOKEN_SENTINEL


class Message(BaseModel):
    """A single SMS/MMS event within a conversation.

    Fields the peer sends that aren't modeled here (``_id``, ``event``,
    ``sub_id``, attachments...) are kept as extras so they survive a
    snapshot round-trip and are merged like any other field.

    Args:
        thread_id: Conversation key, always held as a string.
        date: Epoch milliseconds; unique within a thread.
        type: Raw message box value (see MessageBox).
        read: Read status.
        body: Text content, if any.
        addresses: Participants in the order the peer sent them.
    """

    model_config = ConfigDict(extra="allow")

    thread_id: str = Field(description="Conversation key")
    date: int = Field(description="Epoch milliseconds")
    type: int = Field(description="Message box value")
    read: MessageStatus = Field(
        default=MessageStatus.UNREAD,
        description="Read status",
    )
    body: Optional[str] = Field(default=None, description="Text content")
    addresses: list[Address] = Field(
        default_factory=list,
        description="Participant addresses",
    )

    @field_validator("thread_id", mode="before")
    @classmethod
    def coerce_thread_id(cls, v: Any) -> str:
        """Peers send thread ids as numbers; keys are strings."""
        if isinstance(v, bool) or v is None:
            raise ValueError("thread_id is required")
        return str(v)

    @property
    def box(self) -> Optional[MessageBox]:
        """The message box, or None when ``type`` is out of range."""
        if MessageBox.is_valid(self.type):
            return MessageBox(self.type)
        return None

    @property
    def is_placeholder(self) -> bool:
        """True for the content-free stub that announces a thread."""
        return self.type == PLACEHOLDER_TYPE

    @property
    def is_read(self) -> bool:
        return self.read == MessageStatus.READ

    def merge_from(self, other: "Message") -> bool:
        """Overwrite fields with those explicitly carried by ``other``.

        Fields ``other`` was built without keep their current value.

        Args:
            other: A later delivery of the message with the same date.

        Returns:
            True if any field value changed.
        """
        changed = False
        for name in other.model_fields_set & type(other).model_fields.keys():
            value = getattr(other, name)
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed = True

        extra = self.model_extra
        for name, value in (other.model_extra or {}).items():
            if name not in extra or extra[name] != value:
                extra[name] = value
                changed = True
        return changed

    def to_dict(self) -> dict[str, Any]:
        """Convert message to its wire/snapshot shape.

        Returns:
            JSON-compatible dictionary of this record.
        """
        return self.model_dump(mode="json")
