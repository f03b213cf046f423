"""Container runner shelling out to the docker CLI."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
import tempfile
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..constants import DOCKER_SCHEME
from .base import BaseRunner

logger = logging.getLogger(__name__)

SECRETS_DIR = "/run/secrets"


class DockerRunner(BaseRunner):
    """Run ``docker://image:tag`` resources as throwaway containers.

    Environment entries become ``-e KEY=VALUE`` flags. Secrets are written to
    a temporary JSON file mounted read-only into the container; its path is
    passed as ``_CREDENTIALS`` and the file is removed however the run ends.
    """

    executable = "docker"

    def __init__(self, network: Optional[str] = None, pull_policy: Optional[str] = None) -> None:
        self.network = network
        self.pull_policy = pull_policy

    def image_for(self, resource: Optional[str]) -> str:
        if not resource or not resource.startswith(DOCKER_SCHEME):
            raise ValueError("Invalid resource")
        return resource[len(DOCKER_SCHEME) :]

    def global_params(self) -> List[str]:
        return []

    def run_params(self) -> List[str]:
        params = []
        if self.network:
            params += ["--net", self.network]
        if self.pull_policy:
            params += ["--pull", self.pull_policy]
        return params

    async def run(
        self,
        resource: str,
        env: Optional[Dict[str, str]] = None,
        secrets: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, bytes]:
        image = self.image_for(resource)
        container_name = f"statewalk-{uuid.uuid4()}"

        params = self.global_params() + ["run", "--rm", "--name", container_name]
        params += self.run_params()
        for key, value in (env or {}).items():
            params += ["-e", f"{key}={value}"]

        staged = None
        try:
            if secrets:
                staged = await self.stage_secrets(secrets)
                params += self.secret_params(staged)
            params.append(image)

            logger.debug(f"Running {self.executable}: {shlex.join([self.executable, *params])}")
            try:
                return await self.spawn(params)
            except asyncio.CancelledError:
                logger.info(f"Cancelled, removing container {container_name}")
                await asyncio.shield(
                    self.spawn(self.global_params() + ["rm", "--force", container_name])
                )
                raise
        finally:
            if staged is not None:
                await self.remove_secrets(staged)

    async def stage_secrets(self, secrets: Dict[str, Any]) -> str:
        fd, path = tempfile.mkstemp(prefix="statewalk-", suffix=".json")
        with os.fdopen(fd, "w") as f:
            json.dump(secrets, f)
        return path

    def secret_params(self, staged: str) -> List[str]:
        target = f"{SECRETS_DIR}/{os.path.basename(staged)}"
        return ["-e", f"_CREDENTIALS={target}", "-v", f"{staged}:{target}:ro"]

    async def remove_secrets(self, staged: str) -> None:
        try:
            os.unlink(staged)
        except FileNotFoundError:
            pass

    async def spawn(self, params: List[str], stdin: Optional[bytes] = None) -> Tuple[int, bytes]:
        """Run the CLI with ``params`` and return ``(exit_status, output)``."""
        process = await asyncio.create_subprocess_exec(
            self.executable,
            *params,
            stdin=asyncio.subprocess.PIPE if stdin is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            output, _ = await process.communicate(stdin)
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise
        return process.returncode, output
