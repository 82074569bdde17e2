"""Terminal control."""

import sys
from typing import Optional, TextIO

CLEAR_SEQUENCE = "\x1b[2J\x1b[H"


def clear_screen(stream: Optional[TextIO] = None) -> None:
    """Clear the terminal and home the cursor. No-op when not attached to a tty."""
    stream = stream or sys.stdout
    if not stream.isatty():
        return
    stream.write(CLEAR_SEQUENCE)
    stream.flush()
