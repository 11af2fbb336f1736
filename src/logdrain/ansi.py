from __future__ import annotations

import re

# ESC, then anything up to the first "m" (SGR colour codes and friends)
ANSI_ESCAPE_RE = re.compile("\x1b[^m]*m")


def strip_ansi(message: str) -> str:
    return ANSI_ESCAPE_RE.sub("", message)
