"""Split an email body into the new reply and the quoted history below it."""
import re
from dataclasses import dataclass
from typing import List

# "On Mon, 3 Jun 2024 at 10:00, Jane <jane@example.com> wrote:" may wrap over two lines
_ON_WROTE = re.compile(r"^On\b[^\n]*(?:\n[^\n]*)?\bwrote:[ \t]*$", re.IGNORECASE | re.MULTILINE)
_ORIGINAL_MESSAGE = re.compile(r"^\s*-{2,}\s*Original Message\s*-{2,}\s*$", re.IGNORECASE | re.MULTILINE)
_FORWARDED = re.compile(r"^\s*-{2,}\s*Forwarded message\s*-{2,}\s*$", re.IGNORECASE | re.MULTILINE)
_FROM_HEADER = re.compile(r"^\s*From:\s*.+$", re.IGNORECASE | re.MULTILINE)
_SENT_HEADER = re.compile(r"^\s*(Sent|Date):\s*.+$", re.IGNORECASE | re.MULTILINE)


@dataclass
class EmailParts:
    reply: str
    quoted: str

    @property
    def has_quoted(self) -> bool:
        return bool(self.quoted)


def _header_block_start(text: str) -> int:
    """Offset of a ``From:`` line followed within a few lines by ``Sent:``/``Date:``."""
    for match in _FROM_HEADER.finditer(text):
        following = text[match.end():].split("\n", 4)[:4]
        if any(_SENT_HEADER.match(line) for line in following):
            return match.start()
    return -1


def _quote_block_start(lines: List[str]) -> int:
    """Index of the first line of a trailing run of ``>`` quoted lines."""
    start = -1
    for index, line in enumerate(lines):
        if line.lstrip().startswith(">"):
            if start == -1:
                start = index
        elif line.strip() and start != -1:
            # Text after the quote means this is inline quoting, not history
            start = -1
    return start


def split_email_thread(text: str) -> EmailParts:
    """
    Separate the newest reply from quoted history.

    Recognized markers, earliest one wins:
    ``On ... wrote:``, ``-----Original Message-----``, ``Forwarded message``
    separators, ``From:`` + ``Sent:`` header blocks and a trailing run of
    ``>`` quoted lines.
    """
    if not text:
        return EmailParts(reply="", quoted="")

    normalized = text.replace("\r\n", "\n")
    candidates = []
    for pattern in (_ON_WROTE, _ORIGINAL_MESSAGE, _FORWARDED):
        match = pattern.search(normalized)
        if match:
            candidates.append(match.start())

    header_start = _header_block_start(normalized)
    if header_start >= 0:
        candidates.append(header_start)

    lines = normalized.split("\n")
    quote_line = _quote_block_start(lines)
    if quote_line >= 0:
        candidates.append(len("\n".join(lines[:quote_line])) + (1 if quote_line else 0))

    cut = min(candidates) if candidates else -1
    if cut < 0:
        return EmailParts(reply=normalized.strip(), quoted="")
    return EmailParts(reply=normalized[:cut].strip(), quoted=normalized[cut:].strip())
