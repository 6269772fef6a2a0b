"""Configuration for the workflow kernel.

Configuration is loaded from:
- keyword arguments (highest precedence)
- environment variables prefixed with ``WORKFLOW_KERNEL_``
- and a local `.env` file (if present)

Nothing here is required; every field has a working default.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KernelSettings(BaseSettings):
    """Settings accepted by :class:`~workflow_kernel.kernel.workflow.coordinator.Coordinator`.

    Environment variables:
    - WORKFLOW_KERNEL_LOG_LEVEL
    - WORKFLOW_KERNEL_MAX_HISTORY_DEPTH        (optional; unbounded when unset)
    - WORKFLOW_KERNEL_MAX_ROUTING_DEPTH
    - WORKFLOW_KERNEL_LISTENER_ERROR_LOG_SIZE
    """

    log_level: str = Field(
        default="INFO",
        description="Root logging level used by the CLI",
    )

    max_history_depth: int | None = Field(
        default=None,
        ge=1,
        description=(
            "Maximum number of commands kept for undo. When exceeded, the oldest command is "
            "evicted. None keeps every command."
        ),
    )

    max_routing_depth: int = Field(
        default=8,
        ge=1,
        description="Maximum nesting of router notifications before a routing cycle is reported",
    )

    listener_error_log_size: int = Field(
        default=100,
        ge=1,
        description="How many recent listener failures the event bus keeps for inspection",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_KERNEL_",
        env_file=".env",
        extra="ignore",
    )
