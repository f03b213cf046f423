"""Tests for configuration loading."""

from statewalk.config import load_config
from statewalk.runners import get_runner
from statewalk.runners.podman import PodmanRunner


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
runner:
  backend: podman
  podman:
    log-level: debug
    network: host
engine:
  poll_interval: 0.5
  max_concurrency: 4
"""
    )
    monkeypatch.setenv("STATEWALK_CONFIG", str(config_path))

    config = load_config()
    assert config.runner.backend == "podman"
    assert config.runner.podman.log_level == "debug"
    assert config.runner.podman.network == "host"
    assert config.engine.poll_interval == 0.5
    assert config.engine.max_concurrency == 4


def test_missing_config_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("STATEWALK_CONFIG", str(tmp_path / "absent.yaml"))
    config = load_config()
    assert config.runner.backend == "docker"
    assert config.engine.poll_interval > 0


def test_get_runner_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
runner:
  backend: podman
  podman:
    root: /tmp/podman-root
"""
    )
    monkeypatch.setenv("STATEWALK_CONFIG", str(config_path))
    monkeypatch.delenv("STATEWALK_RUNNER", raising=False)

    runner = get_runner()
    assert isinstance(runner, PodmanRunner)
    assert runner.global_params() == ["--root", "/tmp/podman-root"]
