"""
Message Schema
==============

Pydantic models for the envelopes delivered by the Signal REST API over
its ``/v1/receive/<account>`` WebSocket.

Wire Contract (from the Signal REST API):
    {
        "envelope": {
            "source": "+15551234567",
            "sourceNumber": "+15551234567",
            "sourceUuid": "8c6b...",
            "sourceName": "Alice",
            "sourceDevice": 1,
            "timestamp": 1707321234567,
            "dataMessage": {
                "timestamp": 1707321234567,
                "message": "hello",
                "expiresInSeconds": 0,
                "viewOnce": false
            }
        },
        "account": "+15557654321"
    }

Exactly one of ``dataMessage``, ``typingMessage``, ``receiptMessage`` or
``syncMessage`` is normally populated.

Design Rules:
    - Keys are camelCase on the wire, snake_case in Python
    - Unknown fields are kept and re-emitted untouched
    - Absent optional variants are omitted on output
    - A null scalar keeps its default, as the upstream decoder does

Example:
    from signal_api_receiver.models.message import Message

    raw = await websocket.recv()
    message = Message.model_validate_json(raw)
    print(message.envelope.data_message.message)
"""

from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """
    Base for every wire type: camelCase aliases, extra fields preserved.

    Upstream sends ``null`` for empty scalars; a null on a field that is
    not Optional leaves the field at its default instead of failing.
    Fields listed in ``omit_when_empty`` are dropped from the output when
    they are null or an empty list; every other field is always emitted.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    omit_when_empty: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def _null_means_default(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        defaulted = set()
        for name, field in cls.model_fields.items():
            if field.default is None:
                continue
            defaulted.add(name)
            defaulted.add(field.alias or name)

        return {key: value for key, value in data.items() if value is not None or key not in defaulted}

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler) -> Dict[str, Any]:
        data = handler(self)
        for name in self.omit_when_empty:
            for key in (name, to_camel(name)):
                if key in data and data[key] in (None, []):
                    del data[key]
        return data

    def to_wire(self) -> Dict[str, Any]:
        """Dump as a JSON-ready dict using the upstream field names."""
        return self.model_dump(mode="json", by_alias=True)

class Attachment(WireModel):
    """File attached to a data message or a quote."""

    content_type: str = ""
    id: str = ""
    filename: Optional[str] = None
    size: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    caption: Optional[str] = None
    upload_timestamp: Optional[int] = None


class ReceiptMessage(WireModel):
    """Delivery/read/viewed receipt for previously sent messages."""

    when: int = 0
    is_delivery: bool = False
    is_read: bool = False
    is_viewed: bool = False
    timestamps: List[int] = Field(default_factory=list)


class TypingMessage(WireModel):
    """Typing indicator (``STARTED`` / ``STOPPED``)."""

    action: str = ""
    timestamp: int = 0


class SyncMessage(WireModel):
    """Multi-device sync payload. Contents are opaque to the receiver."""


class GroupInfo(WireModel):
    group_id: str = ""
    group_name: str = ""
    revision: int = 0
    type: str = ""


class Quote(WireModel):
    """Reference to the message being replied to."""

    id: int = 0
    author: str = ""
    author_number: str = ""
    author_uuid: str = ""
    text: str = ""
    attachments: List[Attachment] = Field(default_factory=list)


class Mention(WireModel):
    name: str = ""
    number: str = ""
    uuid: str = ""
    start: int = 0
    length: int = 0


class Sticker(WireModel):
    pack_id: str = ""
    sticker_id: int = 0


class RemoteDelete(WireModel):
    timestamp: int = 0


class DataMessage(WireModel):
    """
    User-authored content.

    ``message`` is None for attachment-only messages, stickers, remote
    deletes and group updates. It is always emitted on output, as null
    when absent.
    """

    omit_when_empty: ClassVar[Tuple[str, ...]] = (
        "group_info",
        "quote",
        "mentions",
        "sticker",
        "attachments",
        "remote_delete",
    )

    timestamp: int = 0
    message: Optional[str] = None
    expires_in_seconds: int = 0
    view_once: bool = False
    group_info: Optional[GroupInfo] = None
    quote: Optional[Quote] = None
    mentions: Optional[List[Mention]] = None
    sticker: Optional[Sticker] = None
    attachments: Optional[List[Attachment]] = None
    remote_delete: Optional[RemoteDelete] = None


class Envelope(WireModel):
    """
    Decoded representation of one inbound frame.

    Tagged by which of the message-kind fields is populated; see
    ``signal_api_receiver.models.kinds.classify_envelope``.
    """

    omit_when_empty: ClassVar[Tuple[str, ...]] = (
        "receipt_message",
        "typing_message",
        "data_message",
        "sync_message",
    )

    source: str = ""
    source_number: str = ""
    source_uuid: str = ""
    source_name: str = ""
    source_device: int = 0
    timestamp: int = 0
    receipt_message: Optional[ReceiptMessage] = None
    typing_message: Optional[TypingMessage] = None
    data_message: Optional[DataMessage] = None
    sync_message: Optional[SyncMessage] = None


class Message(WireModel):
    """
    Unit stored in the receive buffer.

    Attributes:
        envelope: The decoded envelope
        account: Account number the envelope was received for
    """

    envelope: Envelope = Field(default_factory=Envelope)
    account: str = ""
