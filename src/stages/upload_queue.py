# src/stages/upload_queue.py — v2
"""Upload queue: deduplicating, single-flight submission to the remote service.

Two disjoint collections track every path the queue has seen:
    queued     awaiting processing, in first-discovered order
    processed  already attempted (uploaded or permanently failed)

A path in either collection is never enqueued again during the lifetime of
the queue, so redundant filesystem events cannot cause a second upload. At
most one upload request is in flight at any time.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from scanflow.collaborators.base import (
    BaseReachabilityProbe,
    BaseUploadClient,
    UploadError,
    UploadFile,
)
from scanflow.collaborators.retry import RetryConfig, retry_with_backoff
from scanflow.core.models import CompressionResult, Stage, UploadOutcome
from scanflow.logging.context import clear_context, set_document_context
from scanflow.stages.compression import CompressionStage
from scanflow.stages.store import StageStore
from scanflow.tracking.audit import AuditLog

logger = logging.getLogger(__name__)

UPLOAD_ACTION = "System Upload"


def _normalize(path: Path | str) -> Path:
    return Path(path).absolute()


class UploadQueue:
    """Serialize uploads of UPLOAD_QUEUED documents."""

    def __init__(
        self,
        store: StageStore,
        compression: CompressionStage,
        uploader: BaseUploadClient,
        probe: BaseReachabilityProbe,
        audit: AuditLog,
        retry: RetryConfig | None = None,
        batch_size: int = 1,
    ) -> None:
        self._store = store
        self._compression = compression
        self._uploader = uploader
        self._probe = probe
        self._audit = audit
        self._retry = retry or RetryConfig(max_attempts=3, base_delay_s=2.0)
        self._batch_size = max(1, min(batch_size, uploader.max_files_per_request))

        # dict keeps insertion order: first discovered, first drained.
        self._queued: dict[Path, None] = {}
        self._processed: set[Path] = set()
        self._draining = False
        self._drain_task: asyncio.Task[None] | None = None
        self._outcomes: dict[Path, UploadOutcome] = {}

    # --- State ---

    @property
    def queued(self) -> list[Path]:
        return list(self._queued)

    @property
    def processed(self) -> frozenset[Path]:
        return frozenset(self._processed)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def outcome(self, path: Path | str) -> UploadOutcome | None:
        """Last outcome recorded for a path, if any."""
        return self._outcomes.get(_normalize(path))

    def is_file_handled(self, path: Path | str) -> bool:
        """Whether a path is already queued or processed."""
        key = _normalize(path)
        return key in self._queued or key in self._processed

    # --- Operations ---

    def enqueue(self, paths: list[Path] | list[str]) -> int:
        """Queue unknown paths and make sure a drain is running.

        Must be called from the event loop thread. Re-enqueuing a known path
        is a no-op, but any call resumes a drain that stopped while offline.

        Returns:
            Number of newly queued paths.
        """
        added = 0
        for path in paths:
            key = _normalize(path)
            if self.is_file_handled(key):
                logger.debug("%s already handled, not enqueued", key.name)
                continue
            self._queued[key] = None
            added += 1

        if added:
            logger.info("%d document(s) queued for upload (%d waiting)", added, len(self._queued))

        if self._queued and not self._draining:
            self._draining = True
            self._drain_task = asyncio.get_running_loop().create_task(
                self._drain(), name="upload-queue-drain",
            )
        return added

    async def join(self) -> None:
        """Wait for the current drain, if any, to finish."""
        task = self._drain_task
        if task is not None and not task.done():
            await asyncio.shield(task)

    # --- Drain loop ---

    async def _drain(self) -> None:
        try:
            while self._queued:
                clear_context()
                batch = list(self._queued)[: self._batch_size]
                if not await self._probe.is_online():
                    logger.warning(
                        "Offline, %d upload(s) deferred", len(self._queued),
                    )
                    self._audit.record(
                        batch[0].parent, batch[0].name, "Info", "Network Offline",
                        "Upload deferred",
                    )
                    return
                try:
                    outcomes = await self._process(batch)
                except Exception as e:
                    logger.exception(
                        "Unexpected error uploading %s", ", ".join(p.name for p in batch),
                    )
                    outcomes = {}
                    for path in batch:
                        if path not in self._processed:
                            self._fail(path, str(e))
                            outcomes[path] = UploadOutcome.FAILED
                finally:
                    for path in batch:
                        self._queued.pop(path, None)
                self._outcomes.update(outcomes)
        finally:
            self._draining = False

    async def _process(self, batch: list[Path]) -> dict[Path, UploadOutcome]:
        """Compress and upload one request's worth of documents."""
        outcomes: dict[Path, UploadOutcome] = {}
        ready: list[tuple[Path, CompressionResult]] = []

        for path in batch:
            set_document_context(path.name, Stage.UPLOAD_QUEUED.value)
            try:
                result = await self._compress(path)
            except FileNotFoundError:
                logger.warning("%s vanished before upload", path.name)
                self._processed.add(path)
                self._audit.record(
                    path.parent, path.name, "Fail", UPLOAD_ACTION,
                    "File not found before upload",
                )
                outcomes[path] = UploadOutcome.FAILED
                continue
            except Exception as e:
                logger.error("Preparing %s for upload failed: %s", path.name, e)
                self._fail(path, f"Could not read document: {e}")
                outcomes[path] = UploadOutcome.FAILED
                continue
            ready.append((path, result))

        if not ready:
            return outcomes

        names = ", ".join(path.name for path, _ in ready)
        try:
            response = await retry_with_backoff(
                lambda: self._uploader.upload(
                    [UploadFile(path.name, result.data) for path, result in ready]
                ),
                self._retry,
                label=f"Upload of {names}",
                retry_on=(UploadError,),
            )
        except Exception as e:
            # No second attempt within this queue's lifetime.
            logger.error("Upload of %s failed: %s", names, e)
            for path, _ in ready:
                self._fail(path, str(e))
                outcomes[path] = UploadOutcome.FAILED
            return outcomes

        logger.info("Uploaded %s", names)
        summary = _summarize(response)
        for path, result in ready:
            self._processed.add(path)
            self._audit.record(
                path.parent, path.name, "Pass", UPLOAD_ACTION,
                f"Uploaded {len(result.data)} bytes; response: {summary}",
            )
            self._move(path, Stage.UPLOADED)
            outcomes[path] = UploadOutcome.UPLOADED
        return outcomes

    async def _compress(self, path: Path) -> CompressionResult:
        if not path.exists():
            raise FileNotFoundError(path)
        result = await self._compression.compress(path)
        if result.compressed:
            self._audit.record(
                path.parent, path.name, "Pass", "Compressed",
                f"{result.original_size} -> {result.final_size} bytes "
                f"({result.reduction_pct:.2f}% reduction)",
            )
        else:
            self._audit.record(
                path.parent, path.name, "Info", "Compression Skipped",
                "Compression failed, uploading original",
            )
        return result

    def _fail(self, path: Path, message: str) -> None:
        """Mark a document processed, audit the failure and park it in UPLOAD_ERROR."""
        self._processed.add(path)
        self._audit.record(path.parent, path.name, "Fail", UPLOAD_ACTION, message)
        self._move(path, Stage.UPLOAD_ERROR)

    def _move(self, path: Path, target: Stage) -> None:
        if not path.exists():
            return
        try:
            destination = self._store.transition(path, target)
        except Exception as e:
            logger.error("Failed to move %s to %s: %s", path.name, target.value, e)
            self._audit.record(
                path.parent, path.name, "Fail", "Move Failed",
                f"Move to {target.value} failed: {e}",
            )
            return
        logger.debug("%s moved to %s", path.name, destination)


def _summarize(response: dict, limit: int = 200) -> str:
    text = str(response)
    return text if len(text) <= limit else text[:limit] + "..."
