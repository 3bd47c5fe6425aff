"""Workflow-channel capability.

Legacy mechanism: a group channel whose name is ``<team name><suffix>`` is
treated as the workflow channel of that team. Any authenticated user may
create records there, and team members may read it, without being channel
members. Kept configurable so it can be switched to a real permission once
the host platform grows one.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from workpost.core import Channel, ProjectConfig

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_SUFFIX = "-ky-thuat"
SUFFIX_ENV_VAR = "WORKPOST_WORKFLOW_CHANNEL_SUFFIX"


@dataclass(frozen=True)
class WorkflowChannelPolicy:
    suffix: str = DEFAULT_WORKFLOW_SUFFIX

    def __post_init__(self) -> None:
        if not self.suffix:
            msg = "Workflow channel suffix cannot be empty"
            raise ValueError(msg)

    def allows(self, channel: Channel) -> bool:
        """True when *channel* follows the workflow naming convention."""
        return channel.delete_at == 0 and channel.name.endswith(self.suffix)

    def team_channel_name(self, team_name: str) -> str:
        return f"{team_name}{self.suffix}"


def resolve_suffix(config: ProjectConfig | None = None) -> str:
    """Suffix from the environment, then *config*, then the default."""
    env = os.environ.get(SUFFIX_ENV_VAR, "").strip()
    if env:
        return env
    if config:
        configured = config.get("workflow_channel_suffix", "")
        if isinstance(configured, str) and configured:
            return configured
        if configured:
            logger.warning("Ignoring non-string workflow_channel_suffix in config: %r", configured)
    return DEFAULT_WORKFLOW_SUFFIX
