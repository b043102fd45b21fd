"""
Data Models
===========

Pydantic models for the Signal API receiver.

Models:
    Wire:
        - Message: Buffered unit, ``{"envelope": ..., "account": ...}``
        - Envelope: One inbound frame, tagged by populated variant
        - DataMessage, TypingMessage, ReceiptMessage, SyncMessage: Variants
        - Attachment, GroupInfo, Quote, Mention, Sticker, RemoteDelete

    Classification:
        - EnvelopeKind: Enum of envelope variants
        - classify_envelope: Envelope -> EnvelopeKind
"""

from signal_api_receiver.models.message import (
    Attachment,
    DataMessage,
    Envelope,
    GroupInfo,
    Mention,
    Message,
    Quote,
    ReceiptMessage,
    RemoteDelete,
    Sticker,
    SyncMessage,
    TypingMessage,
)
from signal_api_receiver.models.kinds import EnvelopeKind, classify_envelope

__all__ = [
    # Wire
    "Message",
    "Envelope",
    "DataMessage",
    "TypingMessage",
    "ReceiptMessage",
    "SyncMessage",
    "Attachment",
    "GroupInfo",
    "Quote",
    "Mention",
    "Sticker",
    "RemoteDelete",
    # Classification
    "EnvelopeKind",
    "classify_envelope",
]
