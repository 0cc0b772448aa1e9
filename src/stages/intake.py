# src/stages/intake.py — v1
"""Intake: move newly scanned documents from the scan root into LINEARIZED.

Two triggers:
    - a new sub-directory of the scan root (a batch), handled once its
      document count is stable;
    - a single document dropped directly into the scan root.

Every document is handled in isolation: a failed move is audited and the
rest of the batch continues. The batch directory is removed only after every
listed document has been processed, and only if it is then empty.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from scanflow.core.models import BatchOutcome, Stage
from scanflow.extraction.pdf_metadata import read_document_metadata
from scanflow.logging.context import set_document_context
from scanflow.stages.stability import StabilityDetector
from scanflow.stages.store import StageStore
from scanflow.tracking.audit import AuditLog
from scanflow.tracking.report import MetadataReport

logger = logging.getLogger(__name__)


class Intake:
    """Handle arrivals under the scan root."""

    def __init__(
        self,
        store: StageStore,
        detector: StabilityDetector,
        audit: AuditLog,
        report: MetadataReport | None = None,
        extension: str = ".pdf",
        settle_delay_s: float = 2.0,
    ) -> None:
        self._store = store
        self._detector = detector
        self._audit = audit
        self._report = report
        self._extension = extension.lower()
        self._settle_delay_s = settle_delay_s

    async def on_new_batch(self, directory: Path) -> BatchOutcome:
        """Process a newly observed batch directory."""
        directory = Path(directory).absolute()
        set_document_context(directory.name, Stage.SCANNED.value)
        outcome = BatchOutcome(directory=str(directory))

        logger.info("New folder detected: %s", directory)
        self._audit.record(directory, "", "Info", "Folder Detected", str(directory))

        try:
            await self._detector.wait_for_stable_count(directory, self._extension)
            documents = sorted(
                p for p in directory.iterdir()
                if p.is_file() and self._store.is_document(p)
            )
        except FileNotFoundError:
            logger.warning("Folder %s vanished before processing", directory)
            self._audit.record(
                directory, "", "Fail", "Folder Vanished",
                "Folder removed before it stabilized",
            )
            return outcome

        outcome.documents_found = len(documents)
        if not documents:
            logger.warning("No documents found in %s", directory)
            self._audit.record(
                directory, "", "Fail", "No PDFs", "No PDF files found",
            )
            outcome.directory_removed = self._remove_if_empty(directory)
            return outcome

        logger.info("%d document(s) found in %s", len(documents), directory)
        self._audit.record(
            directory, "", "Pass", "PDFs Found", f"{len(documents)} PDFs",
        )

        for path in documents:
            if await self._linearize(path, directory):
                outcome.moved.append(path.name)
            else:
                outcome.failed.append(path.name)

        outcome.directory_removed = self._remove_if_empty(directory)
        logger.info(
            "Batch %s: %d moved, %d failed, folder %s",
            directory.name, len(outcome.moved), len(outcome.failed),
            "removed" if outcome.directory_removed else "kept",
        )
        return outcome

    async def on_new_document(self, path: Path) -> bool:
        """Process a document dropped directly into the scan root."""
        path = Path(path).absolute()
        set_document_context(path.name, Stage.SCANNED.value)
        if self._settle_delay_s > 0:
            await asyncio.sleep(self._settle_delay_s)
        if not path.exists():
            logger.info("%s vanished before intake, skipping", path.name)
            return False
        return await self._linearize(path, path.parent)

    async def _linearize(self, path: Path, folder: Path) -> bool:
        """Record metadata, then move one document to LINEARIZED."""
        set_document_context(path.name, Stage.SCANNED.value)
        try:
            metadata = await asyncio.to_thread(read_document_metadata, path)
            if self._report is not None:
                self._report.append(metadata)
            logger.info(
                "Report generated for %s (%d pages, %s MB)",
                path.name, metadata.page_count, metadata.size_mb,
            )
        except OSError as e:
            # Metadata is best effort; the move below decides the outcome.
            logger.warning("Could not record metadata for %s: %s", path.name, e)

        try:
            destination = self._store.transition(path, Stage.LINEARIZED)
        except Exception as e:
            logger.error("Failed to move %s: %s", path.name, e)
            self._audit.record(folder, path.name, "Fail", "Move Failed", str(e))
            return False

        self._audit.record(folder, path.name, "Pass", "Linearized", str(destination))
        return True

    def _remove_if_empty(self, directory: Path) -> bool:
        try:
            directory.rmdir()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Folder %s not removed: %s", directory, e)
            self._audit.record(
                directory, "", "Fail", "Folder Not Removed",
                "Folder still contains files",
            )
            return False
        self._audit.record(directory, "", "Info", "Folder Removed", str(directory))
        return True
