# src/stages/verification.py — v2
"""Verification: confirm a document's identity before it may be uploaded.

The recognized barcode must equal the filename stem. Offline is a soft
condition (the document stays in LINEARIZED for a later trigger); every other
failure is terminal and routes the document to ERROR. A document whose
outcome could not be routed is remembered and not verified again
during the lifetime of the stage.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from scanflow.collaborators.base import (
    BaseReachabilityProbe,
    BaseRecognitionClient,
    RecognitionError,
)
from scanflow.collaborators.retry import RetryConfig, retry_with_backoff
from scanflow.core.models import Stage, VerificationOutcome
from scanflow.logging.context import set_document_context
from scanflow.stages.store import StageStore
from scanflow.tracking.audit import AuditLog

logger = logging.getLogger(__name__)


class VerificationStage:
    """Route LINEARIZED documents to UPLOAD_QUEUED or ERROR."""

    def __init__(
        self,
        store: StageStore,
        recognition: BaseRecognitionClient,
        probe: BaseReachabilityProbe,
        audit: AuditLog,
        retry: RetryConfig | None = None,
    ) -> None:
        self._store = store
        self._recognition = recognition
        self._probe = probe
        self._audit = audit
        self._retry = retry or RetryConfig(max_attempts=3, base_delay_s=2.0)
        self._in_flight: set[Path] = set()
        self._failed: set[Path] = set()

    @property
    def in_flight(self) -> frozenset[Path]:
        return frozenset(self._in_flight)

    @property
    def failed(self) -> frozenset[Path]:
        return frozenset(self._failed)

    async def verify(self, path: Path) -> VerificationOutcome:
        """Verify one document; repeated triggers for a document in progress are ignored."""
        path = Path(path).absolute()
        if path in self._in_flight:
            logger.debug("%s already being verified", path.name)
            return VerificationOutcome.SKIPPED
        if path in self._failed:
            logger.debug("%s already failed verification, skipping", path.name)
            return VerificationOutcome.SKIPPED

        self._in_flight.add(path)
        try:
            return await self._verify(path)
        finally:
            self._in_flight.discard(path)

    async def _verify(self, path: Path) -> VerificationOutcome:
        set_document_context(path.name, Stage.LINEARIZED.value)
        folder = path.parent
        if not path.exists():
            logger.debug("%s no longer in %s, skipping", path.name, folder)
            return VerificationOutcome.SKIPPED

        if not await self._probe.is_online():
            logger.warning("Offline, verification of %s deferred", path.name)
            self._audit.record(
                folder, path.name, "Info", "Network Offline", "Verification deferred",
            )
            return VerificationOutcome.DEFERRED

        expected = path.stem
        try:
            content = await asyncio.to_thread(path.read_bytes)
            barcode = await retry_with_backoff(
                lambda: self._recognition.recognize(path.name, content),
                self._retry,
                label=f"Barcode recognition of {path.name}",
                retry_on=(RecognitionError,),
            )
        except FileNotFoundError:
            logger.info("%s vanished during verification, skipping", path.name)
            return VerificationOutcome.SKIPPED
        except Exception as e:
            logger.error("Verification of %s failed: %s", path.name, e)
            self._fail(path, "Verification Failed", str(e))
            return VerificationOutcome.FAILED

        actual = barcode.strip()
        if actual and actual == expected:
            logger.info("Barcode verified for %s", path.name)
            moved = self._route(
                path, Stage.UPLOAD_QUEUED, "Pass", "Barcode Verified",
                f"Barcode {actual} matches",
            )
            if not moved:
                self._failed.add(path)
                return VerificationOutcome.FAILED
            return VerificationOutcome.PASSED

        logger.warning(
            "Barcode mismatch for %s: expected %r, got %r", path.name, expected, actual,
        )
        self._fail(
            path, "Barcode Mismatch", f"Expected {expected}, got {actual or '<empty>'}",
        )
        return VerificationOutcome.MISMATCH

    def _fail(self, path: Path, action: str, message: str) -> None:
        if not self._route(path, Stage.ERROR, "Fail", action, message):
            self._failed.add(path)

    def _route(
        self, path: Path, target: Stage, status: str, action: str, message: str,
    ) -> bool:
        """Move to `target` and audit; a failed move is audited instead."""
        try:
            destination = self._store.transition(path, target)
        except Exception as e:
            logger.error("Failed to move %s to %s: %s", path.name, target.value, e)
            self._audit.record(
                path.parent, path.name, "Fail", "Move Failed",
                f"{action}: {message}; move to {target.value} failed: {e}",
            )
            return False
        self._audit.record(
            path.parent, path.name, status, action,  # type: ignore[arg-type]
            f"{message} -> {destination}",
        )
        return True
