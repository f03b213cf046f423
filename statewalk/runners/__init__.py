"""Runner factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import StatewalkConfig, load_config
from .base import BaseRunner
from .docker import DockerRunner
from .inmemory import InMemoryRunner
from .podman import PodmanRunner


def get_runner(
    backend: Optional[str] = None, config: Optional[StatewalkConfig] = None
) -> BaseRunner:
    """Factory function to get the configured runner."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("STATEWALK_RUNNER")
        or config.runner.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryRunner()
    elif backend == "docker":
        docker_conf = config.runner.docker
        return DockerRunner(network=docker_conf.network, pull_policy=docker_conf.pull_policy)
    elif backend == "podman":
        return PodmanRunner(config.runner.podman)
    else:
        raise ValueError(f"Unsupported runner backend: {backend}")


__all__ = ["BaseRunner", "DockerRunner", "InMemoryRunner", "PodmanRunner", "get_runner"]
