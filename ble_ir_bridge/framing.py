"""
Command framing for text streamed over the BLE characteristic.

A phone (or any BLE central) writes UTF-8 text to the characteristic, possibly
split over several writes. A complete command looks like:

    <dummycmd>PROTOCOL:SCANCODE</dummycmd>

e.g. "<dummycmd>sony12:0x10001</dummycmd>" or "<dummycmd>nec:0x40</dummycmd>".

Only one command is taken per buffer-clear: once a closing marker is seen the
whole buffer is cleared, so anything after it in the same delivery is lost.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

OPEN_MARKER = "<dummycmd>"
CLOSE_MARKER = "</dummycmd>"
SEPARATOR = ":"


class MalformedCommandError(ValueError):
    """A framed command without a PROTOCOL:SCANCODE separator."""


@dataclass(frozen=True)
class ParsedCommand:
    protocol: str
    scancode: str

    @property
    def send_value(self) -> str:
        """Value for ir-ctl's -S flag."""
        return f"{self.protocol}{SEPARATOR}{self.scancode}"


def parse_command_text(text: str) -> ParsedCommand:
    """Split "PROTOCOL:SCANCODE" on the first colon."""
    protocol, sep, scancode = text.partition(SEPARATOR)
    if not sep:
        raise MalformedCommandError(f"No '{SEPARATOR}' in command {text!r}")
    return ParsedCommand(protocol=protocol, scancode=scancode)


class CommandBuffer:
    """Text accumulated from the incoming stream, owned by one bridge loop."""

    def __init__(self, text: str = ""):
        self._text = text

    @property
    def text(self) -> str:
        return self._text

    def append(self, text: str):
        self._text += text

    def clear(self):
        self._text = ""

    def __len__(self):
        return len(self._text)

    def __repr__(self):
        return f"CommandBuffer({self._text!r})"


class CommandFramer:
    """Extracts at most one tagged command from a CommandBuffer per call."""

    def process(self, buffer: CommandBuffer):
        """
        Take a complete command out of the buffer, if there is one.

        Returns a ParsedCommand, or None when the command is still incomplete
        (buffer left as is) or was malformed (buffer cleared).
        """
        text = buffer.text
        end = text.find(CLOSE_MARKER)
        if end == -1:
            return None

        start = text.rfind(OPEN_MARKER, 0, end)
        if start == -1:
            logger.warning(f"Closing marker without opening marker, dropping {text!r}")
            buffer.clear()
            return None

        command_text = text[start + len(OPEN_MARKER):end]
        logger.debug(f"command_text: {command_text!r}")

        try:
            command = parse_command_text(command_text)
        except MalformedCommandError as e:
            logger.warning(f"Dropping malformed command: {e}")
            buffer.clear()
            return None

        # Trailing bytes after the closing marker go too.
        buffer.clear()
        return command
