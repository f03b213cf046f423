from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_POLL_INTERVAL


class DockerRunnerConfig(BaseModel):
    """Configuration for the docker runner."""

    network: Optional[str] = None
    pull_policy: Optional[str] = None


class PodmanRunnerConfig(BaseModel):
    """Configuration for the podman runner.

    Field names mirror the podman command line options.
    """

    identity: Optional[str] = None
    log_level: Optional[str] = Field(default=None, alias="log-level")
    network: Optional[str] = None
    noout: bool = False
    root: Optional[str] = None
    runroot: Optional[str] = None
    runtime_flag: Optional[str] = Field(default=None, alias="runtime-flag")
    storage_driver: Optional[str] = Field(default=None, alias="storage-driver")
    storage_opt: Optional[str] = Field(default=None, alias="storage-opt")

    model_config = ConfigDict(populate_by_name=True)


class RunnerConfig(BaseModel):
    """Runner selection and backend settings."""

    backend: Literal["docker", "podman", "inmemory"] = "docker"
    docker: DockerRunnerConfig = DockerRunnerConfig()
    podman: PodmanRunnerConfig = PodmanRunnerConfig()


class EngineConfig(BaseModel):
    """Driver settings."""

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    max_concurrency: int = Field(default=0, ge=0)


class StatewalkConfig(BaseModel):
    """Top-level configuration model."""

    runner: RunnerConfig = RunnerConfig()
    engine: EngineConfig = EngineConfig()


def load_config(path: Optional[str] = None) -> StatewalkConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to STATEWALK_CONFIG env
            variable or 'statewalk.yaml' in the current directory.
    """

    config_path = path or os.getenv("STATEWALK_CONFIG", "statewalk.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return StatewalkConfig(**data)
    return StatewalkConfig()
