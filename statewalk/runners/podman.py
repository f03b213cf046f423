"""Container runner shelling out to the podman CLI."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from ..config import PodmanRunnerConfig
from .docker import SECRETS_DIR, DockerRunner

logger = logging.getLogger(__name__)

# podman global options, rendered before the "run" subcommand
_GLOBAL_OPTIONS = (
    ("identity", "--identity"),
    ("log_level", "--log-level"),
    ("root", "--root"),
    ("runroot", "--runroot"),
    ("runtime_flag", "--runtime-flag"),
    ("storage_driver", "--storage-driver"),
    ("storage_opt", "--storage-opt"),
)


class PodmanRunner(DockerRunner):
    """Run ``docker://`` resources with podman.

    Secrets are staged in podman's secret store under a generated name,
    exposed to the container with ``--secret`` and removed after the run.
    """

    executable = "podman"

    def __init__(self, options: Optional[PodmanRunnerConfig] = None) -> None:
        self.options = options or PodmanRunnerConfig()
        super().__init__(network=self.options.network)

    def global_params(self) -> List[str]:
        params = []
        for field, flag in _GLOBAL_OPTIONS:
            value = getattr(self.options, field)
            if value:
                params += [flag, value]
        if self.options.noout:
            params.append("--noout")
        return params

    async def stage_secrets(self, secrets: Dict[str, Any]) -> str:
        secret_name = str(uuid.uuid4())
        exit_status, output = await self.spawn(
            self.global_params() + ["secret", "create", secret_name, "-"],
            stdin=json.dumps(secrets).encode("utf-8"),
        )
        if exit_status != 0:
            raise RuntimeError(
                f"podman secret create failed ({exit_status}): {output.decode(errors='replace')}"
            )
        return secret_name

    def secret_params(self, staged: str) -> List[str]:
        return ["-e", f"_CREDENTIALS={SECRETS_DIR}/{staged}", "--secret", staged]

    async def remove_secrets(self, staged: str) -> None:
        exit_status, output = await self.spawn(
            self.global_params() + ["secret", "rm", staged]
        )
        if exit_status != 0:
            logger.warning(f"Failed to remove podman secret {staged}: {output!r}")
