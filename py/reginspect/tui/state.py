"""Runtime state for reginspect-tui."""

from __future__ import annotations

from reginspect.enums import ValueFormat
from reginspect.regmap import Block


class AppState:
    """Application-level state."""

    def __init__(self, config_path: str | None, target_str: str = '') -> None:
        self.config_path = config_path
        self.target_str = target_str
        self.root: Block | None = None
        self.value_format: ValueFormat = ValueFormat.HEX
        self.only_bad: bool = False
        self.probe_count: int = 0
        self.num_failures: int = 0
