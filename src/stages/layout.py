# src/stages/layout.py — v2
"""Stage directory layout.

Maps every Stage to the directory that holds documents in that stage. The
mapping is a pure function of the (frozen) settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from scanflow.config.settings import Settings
from scanflow.core.models import Stage


@dataclass(frozen=True)
class StageLayout:
    """Resolved stage directories."""

    directories: dict[Stage, Path]

    @classmethod
    def from_settings(cls, settings: Settings) -> StageLayout:
        return cls({stage: settings.stage_directory(stage) for stage in Stage})

    def directory_for(self, stage: Stage) -> Path:
        return self.directories[stage]

    @property
    def scan_root(self) -> Path:
        return self.directories[Stage.SCANNED]

    def stage_for_directory(self, directory: Path) -> Stage | None:
        """Stage whose directory is exactly `directory`, if any."""
        directory = Path(directory).absolute()
        for stage, path in self.directories.items():
            if path == directory:
                return stage
        return None

    def ensure_directories(self) -> None:
        """Create every stage directory.

        Raises:
            OSError: If a directory cannot be created.
        """
        for path in self.directories.values():
            path.mkdir(parents=True, exist_ok=True)
