"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


@dataclass(frozen=True)
class PipelineConfig:
    """Batch processing settings for the core pipeline."""

    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    media_group_delay: float = 2.0
    extract_poll_interval: float = 3.0
    extract_poll_timeout: float = 180.0
    summary_poll_interval: float = 3.0
    summary_poll_timeout: float = 180.0
    api_timeout: float = 60.0
