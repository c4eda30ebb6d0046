"""
types.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

StrOrPath = str | Path
Clock = Callable[[], datetime]
