"""
Envelope Kinds
==============

Classification of envelopes into the variant that was populated.

The upstream schema is a tagged union without an explicit tag: the kind
of an envelope is decided by which message field is present. Data
messages are further split by whether they carry text, since only text
messages are of interest to most consumers.
"""

from enum import Enum

from signal_api_receiver.models.message import Envelope


class EnvelopeKind(str, Enum):
    """
    Classified envelope variant.

    Attributes:
        DATA: Data message with non-null text
        DATA_WITHOUT_TEXT: Attachment-only, sticker, reaction or remote delete
        GROUP_UPDATE: Data message carrying only group metadata
        TYPING: Typing indicator
        RECEIPT: Delivery/read/viewed receipt
        SYNC: Multi-device sync message
        UNKNOWN: None of the known variants populated
    """

    DATA = "data"
    DATA_WITHOUT_TEXT = "data_without_text"
    GROUP_UPDATE = "group_update"
    TYPING = "typing"
    RECEIPT = "receipt"
    SYNC = "sync"
    UNKNOWN = "unknown"


def classify_envelope(envelope: Envelope) -> EnvelopeKind:
    """
    Map an envelope to exactly one kind.

    A data message wins over every other variant.
    """
    data = envelope.data_message
    if data is not None:
        if data.message is not None:
            return EnvelopeKind.DATA
        if data.group_info is not None:
            return EnvelopeKind.GROUP_UPDATE
        return EnvelopeKind.DATA_WITHOUT_TEXT

    if envelope.typing_message is not None:
        return EnvelopeKind.TYPING
    if envelope.receipt_message is not None:
        return EnvelopeKind.RECEIPT
    if envelope.sync_message is not None:
        return EnvelopeKind.SYNC
    return EnvelopeKind.UNKNOWN
