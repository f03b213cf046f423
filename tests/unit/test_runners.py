"""Runner tests."""

import asyncio
import json
import os

import pytest

from statewalk.config import PodmanRunnerConfig, StatewalkConfig
from statewalk.runners import DockerRunner, InMemoryRunner, PodmanRunner, get_runner


class SpawnRecorder:
    """Stand-in for ``spawn`` that records the CLI params."""

    def __init__(self, result=(0, b"{}")):
        self.calls = []
        self.result = result

    async def __call__(self, params, stdin=None):
        self.calls.append((params, stdin))
        return self.result


@pytest.mark.asyncio
async def test_inmemory_runner_dispatches_to_handler():
    runner = InMemoryRunner({"docker://hello": lambda env, secrets: {"greeting": env["NAME"]}})
    exit_status, output = await runner.run("docker://hello", {"NAME": "world"})
    assert exit_status == 0
    assert json.loads(output) == {"greeting": "world"}
    assert runner.calls == [("docker://hello", {"NAME": "world"}, {})]


@pytest.mark.asyncio
async def test_inmemory_runner_async_handler_with_status():
    async def handler(env, secrets):
        return 1, "boom"

    runner = InMemoryRunner()
    runner.register("docker://fail", handler)
    assert await runner.run("docker://fail") == (1, b"boom")


@pytest.mark.asyncio
async def test_inmemory_runner_unknown_resource():
    with pytest.raises(ValueError, match="Invalid resource"):
        await InMemoryRunner().run("docker://missing")


@pytest.mark.asyncio
@pytest.mark.parametrize("resource", [None, "", "arn:aws:lambda:fn", "image:latest"])
async def test_docker_runner_rejects_other_schemes(resource):
    with pytest.raises(ValueError, match="Invalid resource"):
        await DockerRunner().run(resource)


@pytest.mark.asyncio
async def test_docker_runner_builds_command(monkeypatch):
    runner = DockerRunner(network="host", pull_policy="never")
    spawn = SpawnRecorder((0, b'{"ok": true}'))
    monkeypatch.setattr(runner, "spawn", spawn)

    result = await runner.run("docker://hello-world:latest", {"FOO": "bar"})

    assert result == (0, b'{"ok": true}')
    params, _ = spawn.calls[0]
    assert params[:2] == ["run", "--rm"]
    assert params[params.index("--net") + 1] == "host"
    assert params[params.index("--pull") + 1] == "never"
    assert params[params.index("-e") + 1] == "FOO=bar"
    assert params[-1] == "hello-world:latest"


@pytest.mark.asyncio
async def test_docker_runner_secrets_file_is_removed(monkeypatch):
    runner = DockerRunner()
    spawn = SpawnRecorder()
    seen = {}

    async def spawn_and_read(params, stdin=None):
        mount = params[params.index("-v") + 1]
        path = mount.split(":")[0]
        with open(path) as f:
            seen["secrets"] = json.load(f)
        seen["path"] = path
        return await spawn(params, stdin)

    monkeypatch.setattr(runner, "spawn", spawn_and_read)
    await runner.run("docker://image", {}, {"token": "s3cret"})

    assert seen["secrets"] == {"token": "s3cret"}
    assert not os.path.exists(seen["path"])
    params, _ = spawn.calls[0]
    assert any(p.startswith("_CREDENTIALS=/run/secrets/") for p in params)
    assert not any("s3cret" in p for p in params)


@pytest.mark.asyncio
async def test_docker_runner_secrets_file_removed_on_failure(monkeypatch):
    runner = DockerRunner()
    seen = {}

    async def failing_spawn(params, stdin=None):
        seen["path"] = params[params.index("-v") + 1].split(":")[0]
        raise OSError("docker not found")

    monkeypatch.setattr(runner, "spawn", failing_spawn)
    with pytest.raises(OSError):
        await runner.run("docker://image", {}, {"token": "s3cret"})
    assert not os.path.exists(seen["path"])


@pytest.mark.asyncio
async def test_docker_runner_cancel_removes_container(monkeypatch):
    runner = DockerRunner()
    calls = []
    started = asyncio.Event()

    async def spawn(params, stdin=None):
        calls.append(params)
        if params[0] == "run":
            started.set()
            await asyncio.sleep(60)
        return 0, b""

    monkeypatch.setattr(runner, "spawn", spawn)
    task = asyncio.ensure_future(runner.run("docker://image"))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    name = calls[0][calls[0].index("--name") + 1]
    assert calls[1] == ["rm", "--force", name]


@pytest.mark.asyncio
async def test_podman_runner_global_options_and_secrets(monkeypatch):
    options = PodmanRunnerConfig(
        **{"log-level": "debug", "root": "/var/lib/podman", "noout": True, "network": "none"}
    )
    runner = PodmanRunner(options)
    spawn = SpawnRecorder()
    monkeypatch.setattr(runner, "spawn", spawn)

    await runner.run("docker://hello-world:latest", {"A": "1"}, {"token": "s3cret"})

    create, run, remove = (params for params, _ in spawn.calls)
    globals_ = ["--log-level", "debug", "--root", "/var/lib/podman", "--noout"]

    assert create[: len(globals_)] == globals_
    assert create[len(globals_) : len(globals_) + 2] == ["secret", "create"]
    secret_name = create[len(globals_) + 2]
    assert json.loads(spawn.calls[0][1]) == {"token": "s3cret"}

    assert run[: len(globals_)] == globals_
    assert run[len(globals_)] == "run"
    assert run[run.index("--net") + 1] == "none"
    assert run[run.index("--secret") + 1] == secret_name
    assert f"_CREDENTIALS=/run/secrets/{secret_name}" in run
    assert run[-1] == "hello-world:latest"

    assert remove == globals_ + ["secret", "rm", secret_name]


@pytest.mark.asyncio
async def test_podman_runner_removes_secret_on_failure(monkeypatch):
    runner = PodmanRunner()
    calls = []

    async def spawn(params, stdin=None):
        calls.append(params)
        if params[0] == "run":
            raise OSError("podman crashed")
        return 0, b""

    monkeypatch.setattr(runner, "spawn", spawn)
    with pytest.raises(OSError):
        await runner.run("docker://image", {}, {"token": "x"})
    assert calls[-1][:2] == ["secret", "rm"]


def test_get_runner_backends(monkeypatch):
    monkeypatch.delenv("STATEWALK_RUNNER", raising=False)
    config = StatewalkConfig()
    assert isinstance(get_runner("inmemory", config), InMemoryRunner)
    assert type(get_runner("docker", config)) is DockerRunner
    assert isinstance(get_runner("podman", config), PodmanRunner)
    with pytest.raises(ValueError):
        get_runner("kubernetes", config)


def test_get_runner_env_override(monkeypatch):
    monkeypatch.setenv("STATEWALK_RUNNER", "inmemory")
    assert isinstance(get_runner(config=StatewalkConfig()), InMemoryRunner)
