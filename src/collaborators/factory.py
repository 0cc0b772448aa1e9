# src/collaborators/factory.py — v1
"""Factory: instantiate the collaborator adapters from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scanflow.collaborators.base import (
    BaseCompressor,
    BaseReachabilityProbe,
    BaseRecognitionClient,
    BaseUploadClient,
)
from scanflow.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """The four external dependencies of the pipeline."""

    compressor: BaseCompressor
    recognition: BaseRecognitionClient
    uploader: BaseUploadClient
    probe: BaseReachabilityProbe


def create_collaborators(settings: Settings) -> Collaborators:
    """Build Ghostscript, HTTP and DNS adapters from settings."""
    from scanflow.collaborators.adapters.dns_probe import DnsReachabilityProbe
    from scanflow.collaborators.adapters.ghostscript import GhostscriptCompressor
    from scanflow.collaborators.adapters.http_recognition import HttpRecognitionClient
    from scanflow.collaborators.adapters.http_upload import HttpUploadClient

    logger.debug(
        "Creating collaborators: recognition=%s, upload=%s, gs=%s",
        settings.recognition_url, settings.upload_url, settings.ghostscript_binary,
    )
    return Collaborators(
        compressor=GhostscriptCompressor(
            binary=settings.ghostscript_binary,
            preset=settings.compression_preset,
            compatibility=settings.compression_compatibility,
            timeout_s=settings.compression_timeout_s,
        ),
        recognition=HttpRecognitionClient(
            url=settings.recognition_url,
            field_name=settings.recognition_field_name,
            timeout_s=settings.request_timeout_s,
            api_token=settings.api_token,
        ),
        uploader=HttpUploadClient(
            url=settings.upload_url,
            field_name=settings.upload_field_name,
            timeout_s=settings.request_timeout_s,
            api_token=settings.api_token,
        ),
        probe=DnsReachabilityProbe(host=settings.reachability_host),
    )
