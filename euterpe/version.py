"""Version information for the media server."""

from __future__ import annotations

import platform
from typing import TextIO

VERSION = "dev-unreleased"


def print_version(out: TextIO) -> None:
    """Write plain text version and build information to ``out``."""
    out.write(f"Euterpe Media Server {VERSION}\n")
    out.write(
        f"Build with {platform.python_implementation()} {platform.python_version()}\n"
    )