"""Requests the sync engine hands to the device transport.

Each model knows its packet type and dumps its body under the field names
the peer expects.
"""

from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.config import DEFAULT_FETCH_NUMBER
from models.message import Address


class UpstreamRequest(BaseModel):
    """Base for everything sent to the paired device."""

    model_config = ConfigDict(populate_by_name=True)

    packet_type: ClassVar[str] = ""

    def to_body(self) -> dict[str, Any]:
        """Packet body as the peer expects it."""
        return self.model_dump(by_alias=True, exclude={"kind"})

    def to_packet(self) -> dict[str, Any]:
        return {"type": self.packet_type, "body": self.to_body()}


class ConversationRequest(UpstreamRequest):
    """Ask for one page of a single thread's history.

    The range start travels as a string: millisecond timestamps exceed what
    some transports carry as a native number.

    Args:
        thread_id: Thread to page.
        number_to_request: Page size.
        range_start_timestamp: Only messages older than this are wanted.
    """

    packet_type: ClassVar[str] = "kdeconnect.sms.request_conversation"

    kind: Literal["conversation"] = "conversation"
    thread_id: str = Field(alias="threadID")
    number_to_request: int = Field(
        default=DEFAULT_FETCH_NUMBER,
        ge=1,
        alias="numberToRequest",
    )
    range_start_timestamp: str = Field(alias="rangeStartTimestamp")

    @field_validator("thread_id", "range_start_timestamp", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return str(v)


class ConversationsRequest(UpstreamRequest):
    """Ask for the latest message of every conversation changed since a watermark.

    Args:
        range_start_timestamp: The store's last full-digest sync, or -1.
    """

    packet_type: ClassVar[str] = "kdeconnect.sms.request_conversations"

    kind: Literal["conversations"] = "conversations"
    range_start_timestamp: int = Field(alias="rangeStartTimestamp")


class SendMessageRequest(UpstreamRequest):
    """Ask the device to send an SMS.

    Args:
        addresses: Recipients; the first one is used for plain SMS.
        body: Message text.
    """

    packet_type: ClassVar[str] = "kdeconnect.sms.request"

    kind: Literal["send"] = "send"
    addresses: list[Address] = Field(min_length=1)
    body: str

    def to_body(self) -> dict[str, Any]:
        return {
            "sendSms": True,
            "phoneNumber": self.addresses[0].address,
            "messageBody": self.body,
        }


AnyUpstreamRequest = Union[ConversationRequest, ConversationsRequest, SendMessageRequest]
