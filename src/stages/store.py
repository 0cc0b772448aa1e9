# src/stages/store.py — v1
"""Stage store: the filesystem is the state machine.

A document's stage is the directory containing it and a rename is the only
transition. A crash mid-stage leaves the file in its previous, consistent
stage.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from scanflow.core.models import STAGE_GRAPH, Document, Stage
from scanflow.stages.layout import StageLayout

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Requested move does not follow the stage graph."""

    def __init__(self, path: Path, source: Stage | None, target: Stage):
        self.path = path
        self.source = source
        self.target = target
        src = source.value if source else "outside any stage"
        super().__init__(f"Cannot move {path.name} from {src} to {target.value}")


class StageStore:
    """Derive stages from directories and execute transitions as renames."""

    def __init__(self, layout: StageLayout, extension: str = ".pdf") -> None:
        self._layout = layout
        self._extension = extension.lower()

    @property
    def layout(self) -> StageLayout:
        return self._layout

    def is_document(self, path: Path) -> bool:
        return path.name.lower().endswith(self._extension) and not path.name.startswith(".")

    def stage_of(self, path: Path) -> Stage | None:
        """Stage of a document path, from its parent directory.

        Documents inside an immediate sub-directory of the scan root belong to
        a batch and are in SCANNED.
        """
        parent = Path(path).absolute().parent
        stage = self._layout.stage_for_directory(parent)
        if stage is not None:
            return stage
        if parent.parent == self._layout.scan_root:
            return Stage.SCANNED
        return None

    def document(self, path: Path) -> Document:
        stage = self.stage_of(path)
        if stage is None:
            raise ValueError(f"{path} is not inside a stage directory")
        return Document.from_path(Path(path), stage)

    def list_documents(self, stage: Stage) -> list[Path]:
        """Documents currently in a stage directory, sorted by name."""
        directory = self._layout.directory_for(stage)
        if not directory.is_dir():
            return []
        return sorted(
            p for p in directory.iterdir() if p.is_file() and self.is_document(p)
        )

    def counts(self) -> dict[Stage, int]:
        return {stage: len(self.list_documents(stage)) for stage in Stage}

    def transition(self, path: Path, target: Stage) -> Path:
        """Move a document to `target` and return its new location.

        Raises:
            InvalidTransitionError: If the edge is not in the stage graph.
            FileNotFoundError: If the document vanished.
            FileExistsError: If the target already holds a file of that name.
        """
        path = Path(path).absolute()
        source = self.stage_of(path)
        if source is None or target not in STAGE_GRAPH[source]:
            raise InvalidTransitionError(path, source, target)

        destination = self._layout.directory_for(target) / path.name
        if destination.exists():
            raise FileExistsError(
                errno.EEXIST, f"{target.value} already contains {path.name}", str(destination)
            )
        if not path.exists():
            raise FileNotFoundError(errno.ENOENT, "Document vanished", str(path))

        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.rename(path, destination)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            # Stage directories on different devices cannot be renamed across.
            shutil.move(str(path), str(destination))

        logger.debug("%s: %s -> %s", path.name, source.value, target.value)
        return destination
