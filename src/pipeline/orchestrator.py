# src/pipeline/orchestrator.py — v3
"""Pipeline orchestrator: wires the stages to the watched directories.

Routing of filesystem arrivals:
    new sub-directory of the scan root   -> Intake.on_new_batch
    new document at the scan root        -> file stability, Intake.on_new_document
    document arriving in LINEARIZED      -> VerificationStage.verify
    document arriving in UPLOAD_QUEUED   -> UploadQueue.enqueue

A move is both the completion of one stage and the trigger of the next, so a
document's stages run strictly in order. At startup, batches and documents
already sitting in the scan root are taken in as if they had just arrived. A
sweep of LINEARIZED and UPLOAD_QUEUED at startup and then periodically retries
deferred documents and picks up work left behind by a previous process.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine

from scanflow.collaborators.factory import Collaborators, create_collaborators
from scanflow.collaborators.retry import RetryConfig
from scanflow.config.settings import Settings
from scanflow.core.models import Stage
from scanflow.stages.compression import CompressionStage
from scanflow.stages.intake import Intake
from scanflow.stages.layout import StageLayout
from scanflow.stages.stability import StabilityDetector
from scanflow.stages.store import StageStore
from scanflow.stages.upload_queue import UploadQueue
from scanflow.stages.verification import VerificationStage
from scanflow.tracking.audit import AuditLog
from scanflow.tracking.report import MetadataReport
from scanflow.watch.watcher import DirectoryWatcher, WatchEvent

logger = logging.getLogger(__name__)


class ScanPipeline:
    """Top-level runtime for the staged document pipeline.

    Args:
        settings: Frozen application settings.
        collaborators: External adapters; built from settings when omitted.
        watcher: Directory watcher; built from the layout when omitted.
    """

    def __init__(
        self,
        settings: Settings,
        collaborators: Collaborators | None = None,
        watcher: DirectoryWatcher | None = None,
    ) -> None:
        self._settings = settings
        self._collaborators = collaborators or create_collaborators(settings)
        self.layout = StageLayout.from_settings(settings)
        self.store = StageStore(self.layout, settings.document_extension)

        self.audit = AuditLog(
            settings.audit_log_file, settings.scanner_id, settings.station_id,
        )
        self.report = MetadataReport(
            settings.report_file, settings.scanner_id, settings.station_id,
        )
        self.detector = StabilityDetector(
            quiet_period_s=settings.batch_quiet_period_s,
            poll_interval_s=settings.batch_poll_interval_s,
            file_quiet_period_s=settings.file_quiet_period_s,
            file_poll_interval_s=settings.file_poll_interval_s,
        )
        retry = RetryConfig(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
            strategy="linear",
        )
        self.intake = Intake(
            self.store, self.detector, self.audit, self.report,
            extension=settings.document_extension,
            settle_delay_s=settings.settle_delay_s,
        )
        self.verification = VerificationStage(
            self.store, self._collaborators.recognition, self._collaborators.probe,
            self.audit, retry=retry,
        )
        self.upload_queue = UploadQueue(
            self.store,
            CompressionStage(self._collaborators.compressor),
            self._collaborators.uploader,
            self._collaborators.probe,
            self.audit,
            retry=retry,
            batch_size=settings.upload_batch_size,
        )
        self.watcher = watcher or DirectoryWatcher([
            self.layout.scan_root,
            self.layout.directory_for(Stage.LINEARIZED),
            self.layout.directory_for(Stage.UPLOAD_QUEUED),
        ])

        self._tasks: set[asyncio.Task[Any]] = set()
        # Scan-root entries with an intake task running.
        self._claimed: set[Path] = set()

    # --- Lifecycle ---

    def prepare(self) -> None:
        """Create stage directories and the audit file.

        Raises:
            OSError: Unrecoverable startup condition.
        """
        self.layout.ensure_directories()
        self.audit.open()

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Run until `stop` is set (or forever)."""
        self.prepare()
        self.watcher.start()
        self.audit.record(
            self.layout.scan_root, "", "Info", "Watcher Started",
            "Started watching scanned folder",
        )
        logger.info("Watching folder: %s", self.layout.scan_root)
        self.recover()

        consumer = asyncio.create_task(self._consume_events(), name="watch-events")
        sweeper = asyncio.create_task(self._sweep_loop(), name="stage-sweep")
        try:
            if stop is None:
                await asyncio.Event().wait()
            else:
                await stop.wait()
        finally:
            self.watcher.stop()
            for task in (consumer, sweeper):
                task.cancel()
            await asyncio.gather(consumer, sweeper, return_exceptions=True)
            await self.drain()
            logger.info("Pipeline stopped")

    async def drain(self) -> None:
        """Wait for in-flight stage tasks and the upload queue."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.upload_queue.join()

    # --- Routing ---

    async def _consume_events(self) -> None:
        while True:
            event = await self.watcher.events.get()
            try:
                self.dispatch(event)
            except Exception as e:
                self._watcher_error(e)

    def dispatch(self, event: WatchEvent) -> None:
        """Route one arrival to the stage responsible for its directory."""
        path = event.path
        parent = event.parent
        scan_root = self.layout.scan_root

        if parent == scan_root:
            if path in self._claimed:
                logger.debug("%s already being taken in", path.name)
            elif event.kind == "directory":
                if self.layout.stage_for_directory(path) is None:
                    self._claim(path, self.intake.on_new_batch(path), f"batch:{path.name}")
            elif self.store.is_document(path):
                self._claim(path, self._intake_single(path), f"intake:{path.name}")
            return

        if event.kind != "file" or not self.store.is_document(path):
            return

        stage = self.layout.stage_for_directory(parent)
        if stage is Stage.LINEARIZED:
            self._spawn(self.verification.verify(path), f"verify:{path.name}")
        elif stage is Stage.UPLOAD_QUEUED:
            self.upload_queue.enqueue([path])

    async def _intake_single(self, path: Path) -> None:
        try:
            await self.detector.wait_for_file_stable(path)
        except FileNotFoundError:
            logger.info("%s vanished while being written", path.name)
            return
        await self.intake.on_new_document(path)

    # --- Sweeps ---

    def recover(self) -> None:
        """Take in batches and documents left in the scan root by a previous process."""
        for entry in sorted(self.layout.scan_root.iterdir()):
            entry = entry.absolute()
            if entry.is_dir():
                self.dispatch(WatchEvent("directory", entry))
            elif entry.is_file():
                self.dispatch(WatchEvent("file", entry))

    def sweep(self) -> None:
        """Re-observe documents waiting in LINEARIZED and UPLOAD_QUEUED."""
        for path in self.store.list_documents(Stage.LINEARIZED):
            if path not in self.verification.in_flight and path not in self.verification.failed:
                self._spawn(self.verification.verify(path), f"verify:{path.name}")
        waiting = self.store.list_documents(Stage.UPLOAD_QUEUED)
        self.upload_queue.enqueue(waiting)

    async def _sweep_loop(self) -> None:
        self.sweep()
        interval = self._settings.sweep_interval_s
        if interval <= 0:
            return
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except OSError as e:
                self._watcher_error(e)

    # --- Task bookkeeping ---

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _claim(self, path: Path, coro: Coroutine[Any, Any, Any], name: str) -> None:
        self._claimed.add(path)
        task = self._spawn(coro, name)
        task.add_done_callback(lambda _: self._claimed.discard(path))

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._watcher_error(exc, task.get_name())

    def _watcher_error(self, exc: BaseException, where: str = "watcher") -> None:
        logger.error("Unhandled error in %s: %s", where, exc, exc_info=exc)
        self.audit.record(
            self.layout.scan_root, "", "Fail", "Watcher Error", f"{where}: {exc}",
        )
