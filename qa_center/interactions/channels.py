"""Interaction channels as a tagged variant.

``InteractionChannel`` is one of ``Call``, ``Email`` or ``Chat``. Rendering
choices (titles, labels, how message text is prepared) are picked by matching
on the variant instead of comparing channel strings at each call site.
"""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Call:
    value: str = "call"


@dataclass(frozen=True)
class Email:
    value: str = "email"


@dataclass(frozen=True)
class Chat:
    value: str = "chat"


InteractionChannel = Union[Call, Email, Chat]

_BY_VALUE = {
    "call": Call(),
    "voice": Call(),
    "email": Email(),
    "chat": Chat(),
    "sms": Chat(),
    "whatsapp": Chat(),
    "messenger": Chat(),
}


def channel_from_value(value: Optional[str]) -> InteractionChannel:
    """Map a stored channel name to its variant. Unknown names are treated as chat."""
    if not value:
        return Call()
    return _BY_VALUE.get(value.strip().lower(), Chat())


def display_title(channel: InteractionChannel) -> str:
    match channel:
        case Email():
            return "Email Thread"
        case Chat():
            return "Message Conversation"
        case Call():
            return "Call Transcript"


def item_noun(channel: InteractionChannel, count: int = 1) -> str:
    """What one entry of the conversation is called, pluralized for ``count``."""
    match channel:
        case Email():
            noun = "email"
        case Chat():
            noun = "message"
        case Call():
            noun = "utterance"
    return noun if count == 1 else f"{noun}s"


def badge_label(channel: InteractionChannel) -> str:
    match channel:
        case Email():
            return "Email"
        case Chat():
            return "Chat"
        case Call():
            return "Call"


def stats_labels(channel: InteractionChannel) -> dict:
    """Column labels for the per-speaker counters."""
    match channel:
        case Email():
            return {"customer": "Customer emails", "agent": "Agent replies"}
        case Chat():
            return {"customer": "Customer messages", "agent": "Agent messages"}
        case Call():
            return {"customer": "Customer turns", "agent": "Agent turns"}


def has_threaded_bodies(channel: InteractionChannel) -> bool:
    """Only email bodies carry quoted history that needs splitting."""
    match channel:
        case Email():
            return True
        case _:
            return False
