#!/usr/bin/env python3
"""
Sarosis Configuration Manager

Stores scan defaults and run statistics in a .sarosis directory under the
user's home (or $SAROSIS_HOME).
"""

import json
import os
import pathlib
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

DEFAULT_IGNORE_PATTERNS = [".*", "node_modules", "__pycache__"]


def _default_stats() -> dict:
    return {"total_runs": 0, "total_reclaimed_bytes": 0}


@dataclass
class SarosisConfig:
    """Scan defaults and bookkeeping for Sarosis"""

    version: str = "1.0"
    default_roots: list[str] = field(default_factory=list)
    max_depth: Optional[int] = None
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    rules_file: Optional[str] = None
    nested_projects: bool = False
    last_run: Optional[str] = None
    stats: dict = field(default_factory=_default_stats)

    def get_default_roots(self) -> list[pathlib.Path]:
        return [pathlib.Path(p).expanduser() for p in self.default_roots]

    def get_rules_path(self) -> Optional[pathlib.Path]:
        return pathlib.Path(self.rules_file).expanduser() if self.rules_file else None

    def record_run(self, reclaimed: int):
        """Count a completed clean run"""
        self.stats["total_runs"] = self.stats.get("total_runs", 0) + 1
        self.stats["total_reclaimed_bytes"] = self.stats.get("total_reclaimed_bytes", 0) + reclaimed
        self.last_run = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SarosisConfig":
        """Create from dictionary, falling back to defaults for missing keys"""
        default = cls()
        max_depth = data.get("max_depth", default.max_depth)
        return cls(
            version=data.get("version", default.version),
            default_roots=list(data.get("default_roots", default.default_roots)),
            max_depth=int(max_depth) if max_depth is not None else None,
            ignore_patterns=list(data.get("ignore_patterns", default.ignore_patterns)),
            rules_file=data.get("rules_file", default.rules_file),
            nested_projects=bool(data.get("nested_projects", default.nested_projects)),
            last_run=data.get("last_run"),
            stats={**_default_stats(), **data.get("stats", {})},
        )


class SharedConfigManager:
    """Loads and saves the Sarosis configuration file"""

    def __init__(self, config_dir: Optional[pathlib.Path] = None):
        """Initialize configuration manager

        Args:
            config_dir: Override default .sarosis directory location
        """
        if config_dir:
            self.config_dir = pathlib.Path(config_dir)
        elif os.environ.get("SAROSIS_HOME"):
            self.config_dir = pathlib.Path(os.environ["SAROSIS_HOME"])
        else:
            self.config_dir = pathlib.Path.home() / ".sarosis"

        self.config_file = self.config_dir / "config.json"

    def load(self) -> SarosisConfig:
        """Load configuration from file"""
        if self.config_file.exists():
            try:
                with self.config_file.open() as f:
                    data = json.load(f)
                return SarosisConfig.from_dict(data)
            except (json.JSONDecodeError, AttributeError, TypeError, ValueError):
                # If config is corrupted, return default
                return SarosisConfig()
        return SarosisConfig()

    def save(self, config: SarosisConfig):
        """Save configuration to file"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with self.config_file.open("w") as f:
            json.dump(config.to_dict(), f, indent=2)

    def reset(self) -> SarosisConfig:
        config = SarosisConfig()
        self.save(config)
        return config
