"""
Message Filter
==============

Decides which classified envelopes are buffered.

The accept-set is configurable because the upstream schema changed over
time; the default only keeps data messages that carry text.
"""

from typing import Iterable, Optional

from signal_api_receiver.models.kinds import EnvelopeKind, classify_envelope
from signal_api_receiver.models.message import Message


DEFAULT_ACCEPTED_KINDS = frozenset({EnvelopeKind.DATA})


class MessageFilter:
    """
    Accept/reject policy over envelope kinds.

    Attributes:
        accepted_kinds: Kinds that are buffered; everything else is dropped

    Example:
        policy = MessageFilter()                      # text messages only
        policy = MessageFilter(["data", "receipt"])   # also keep receipts

        if policy.accepts(policy.classify(message)):
            buffer.append(message)
    """

    def __init__(self, accepted_kinds: Optional[Iterable[str]] = None) -> None:
        """
        Initialize filter.

        Args:
            accepted_kinds: Kind names or EnvelopeKind members. None keeps
                the default (text data messages only).

        Raises:
            ValueError: If a kind name is not a known EnvelopeKind.
        """
        if accepted_kinds is None:
            self.accepted_kinds = DEFAULT_ACCEPTED_KINDS
        else:
            self.accepted_kinds = frozenset(EnvelopeKind(k) for k in accepted_kinds)

    def classify(self, message: Message) -> EnvelopeKind:
        return classify_envelope(message.envelope)

    def accepts(self, kind: EnvelopeKind) -> bool:
        """Whether messages of this kind should be buffered."""
        return kind in self.accepted_kinds

    def __repr__(self) -> str:
        kinds = ", ".join(sorted(k.value for k in self.accepted_kinds))
        return f"MessageFilter(accepted_kinds=[{kinds}])"
