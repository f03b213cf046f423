"""Task state, Retry and Catch tests."""

import asyncio
import json

import pytest

from statewalk.constants import STATES_TASK_FAILED, STATES_TIMEOUT


def task_workflow(**fields):
    state = {"Type": "Task", "Resource": "docker://worker", "End": True}
    state.update(fields)
    return {"StartAt": "Work", "States": {"Work": state}}


@pytest.mark.asyncio
async def test_task_passes_input_as_env(execute, runner):
    runner.register("docker://worker", lambda env, secrets: {"echo": env})
    execution = await execute(task_workflow(), {"name": "x", "count": 2, "nested": {"a": [1]}})

    assert execution.status == "success"
    assert execution.output == {"echo": {"name": "x", "count": "2", "nested": '{"a": [1]}'}}


@pytest.mark.asyncio
async def test_task_parameters_result_selector_and_result_path(execute, runner):
    runner.register("docker://worker", lambda env, secrets: {"value": int(env["n"]) * 2, "noise": 1})
    definition = task_workflow(
        Parameters={"n.$": "$.number"},
        ResultSelector={"doubled.$": "$.value"},
        ResultPath="$.result",
    )
    execution = await execute(definition, {"number": 21})
    assert execution.output == {"number": 21, "result": {"doubled": 42}}


@pytest.mark.asyncio
async def test_task_output_last_line_json(execute, runner):
    runner.register("docker://worker", lambda env, secrets: "log line\nmore logs\n{\"ok\": true}\n")
    execution = await execute(task_workflow())
    assert execution.output == {"ok": True}


@pytest.mark.asyncio
async def test_task_plain_text_output(execute, runner):
    runner.register("docker://worker", lambda env, secrets: "hello")
    execution = await execute(task_workflow())
    assert execution.output == "hello"


@pytest.mark.asyncio
async def test_task_credentials_are_secrets(execute, runner):
    runner.register("docker://worker", lambda env, secrets: secrets)
    definition = task_workflow(Credentials={"token.$": "$.api_token"})
    execution = await execute(definition, {"a": 1}, credentials={"api_token": "s3cret"})

    assert execution.output == {"token": "s3cret"}
    resource, env, secrets = runner.calls[0]
    assert "s3cret" not in json.dumps(env)


@pytest.mark.asyncio
async def test_task_failure_without_handlers(execute, runner):
    runner.register("docker://worker", lambda env, secrets: (1, "something broke"))
    execution = await execute(task_workflow())

    assert execution.status == "failure"
    assert execution.output == {"Error": STATES_TASK_FAILED, "Cause": "something broke"}


@pytest.mark.asyncio
async def test_task_failure_with_error_object(execute, runner):
    runner.register(
        "docker://worker",
        lambda env, secrets: (2, json.dumps({"Error": "Custom.Error", "Cause": "bad"})),
    )
    execution = await execute(task_workflow())
    assert execution.context.execution["Error"] == "Custom.Error"
    assert execution.context.execution["Cause"] == "bad"


@pytest.mark.asyncio
async def test_task_invalid_resource_fails(execute, runner):
    execution = await execute(task_workflow())
    assert execution.status == "failure"
    assert execution.output["Error"] == STATES_TASK_FAILED
    assert "Invalid resource" in execution.output["Cause"]


@pytest.mark.asyncio
async def test_task_non_object_input_fails(execute, runner):
    runner.register("docker://worker", lambda env, secrets: {})
    execution = await execute(task_workflow(), [1, 2])
    assert execution.output["Error"] == "States.Runtime"


@pytest.mark.asyncio
async def test_retry_then_succeed(execute, runner):
    attempts = []

    def flaky(env, secrets):
        attempts.append(1)
        if len(attempts) < 3:
            return 1, json.dumps({"Error": "Flaky"})
        return {"attempts": len(attempts)}

    runner.register("docker://worker", flaky)
    definition = task_workflow(
        Retry=[{"ErrorEquals": ["Flaky"], "IntervalSeconds": 0.01, "MaxAttempts": 3}]
    )
    execution = await execute(definition, {"in": 1})

    assert execution.status == "success"
    assert execution.output == {"attempts": 3}
    assert execution.context.state["RetryCount"] == 2
    assert [s["Input"] for s in execution.context.state_history] == [{"in": 1}] * 3


@pytest.mark.asyncio
async def test_retry_exhausted_then_caught(execute, runner):
    runner.register("docker://worker", lambda env, secrets: (1, json.dumps({"Error": "Boom", "Cause": "x"})))
    definition = {
        "StartAt": "Work",
        "States": {
            "Work": {
                "Type": "Task",
                "Resource": "docker://worker",
                "Retry": [{"ErrorEquals": ["Boom"], "IntervalSeconds": 0.01, "MaxAttempts": 2}],
                "Catch": [{"ErrorEquals": ["States.ALL"], "Next": "Recover", "ResultPath": "$.error"}],
                "End": True,
            },
            "Recover": {"Type": "Pass", "End": True},
        },
    }
    execution = await execute(definition, {"in": 1})

    assert len(runner.calls) == 3
    assert execution.status == "success"
    assert execution.output == {"in": 1, "error": {"Error": "Boom", "Cause": "x"}}


@pytest.mark.asyncio
async def test_retrier_attempts_are_counted_per_rule(execute, runner):
    errors = ["A", "B", "A", "B"]

    def fail_in_turn(env, secrets):
        if errors:
            return 1, json.dumps({"Error": errors.pop(0)})
        return {"ok": True}

    runner.register("docker://worker", fail_in_turn)
    definition = task_workflow(
        Retry=[
            {"ErrorEquals": ["A"], "IntervalSeconds": 0.01, "MaxAttempts": 2},
            {"ErrorEquals": ["B"], "IntervalSeconds": 0.01, "MaxAttempts": 2},
        ]
    )
    execution = await execute(definition)

    assert execution.output == {"ok": True}
    assert execution.context.state["RetryAttempts"] == {"0": 2, "1": 2}


@pytest.mark.asyncio
async def test_catch_default_result_path_replaces_input(execute, runner):
    runner.register("docker://worker", lambda env, secrets: (1, "nope"))
    definition = {
        "StartAt": "Work",
        "States": {
            "Work": {
                "Type": "Task",
                "Resource": "docker://worker",
                "Catch": [{"ErrorEquals": [STATES_TASK_FAILED], "Next": "Handled"}],
                "End": True,
            },
            "Handled": {"Type": "Succeed"},
        },
    }
    execution = await execute(definition, {"in": 1})
    assert execution.output == {"Error": STATES_TASK_FAILED, "Cause": "nope"}


@pytest.mark.asyncio
async def test_task_timeout(execute, runner):
    async def slow(env, secrets):
        await asyncio.sleep(5)
        return {}

    runner.register("docker://worker", slow)
    execution = await execute(task_workflow(TimeoutSeconds=0.05))

    assert execution.status == "failure"
    assert execution.output["Error"] == STATES_TIMEOUT


@pytest.mark.asyncio
async def test_task_timeout_waits_for_runner_cleanup(execute, runner):
    cleaned = []

    async def slow(env, secrets):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            await asyncio.sleep(0.05)
            cleaned.append(True)
            raise
        return {}

    runner.register("docker://worker", slow)
    execution = await execute(task_workflow(TimeoutSeconds=0.05))

    assert execution.output["Error"] == STATES_TIMEOUT
    assert cleaned == [True]


@pytest.mark.asyncio
async def test_task_failed_catches_custom_errors(execute, runner):
    runner.register(
        "docker://worker",
        lambda env, secrets: (1, json.dumps({"Error": "MyError", "Cause": "boom"})),
    )
    definition = {
        "StartAt": "Work",
        "States": {
            "Work": {
                "Type": "Task",
                "Resource": "docker://worker",
                "Catch": [{"ErrorEquals": [STATES_TASK_FAILED], "Next": "Handled"}],
                "End": True,
            },
            "Handled": {"Type": "Pass", "Result": "handled", "End": True},
        },
    }
    execution = await execute(definition)

    assert execution.status == "success"
    assert execution.output == "handled"


@pytest.mark.asyncio
async def test_task_failed_does_not_catch_timeout(execute, runner):
    async def slow(env, secrets):
        await asyncio.sleep(5)
        return {}

    runner.register("docker://worker", slow)
    definition = {
        "StartAt": "Work",
        "States": {
            "Work": {
                "Type": "Task",
                "Resource": "docker://worker",
                "TimeoutSeconds": 0.05,
                "Catch": [{"ErrorEquals": [STATES_TASK_FAILED], "Next": "Handled"}],
                "End": True,
            },
            "Handled": {"Type": "Succeed"},
        },
    }
    execution = await execute(definition)

    assert execution.status == "failure"
    assert execution.output["Error"] == STATES_TIMEOUT


@pytest.mark.asyncio
async def test_states_all_does_not_catch_runtime(execute, runner):
    definition = {
        "StartAt": "Work",
        "States": {
            "Work": {
                "Type": "Task",
                "Resource": "docker://worker",
                "Catch": [{"ErrorEquals": ["States.ALL"], "Next": "Handled"}],
                "End": True,
            },
            "Handled": {"Type": "Succeed"},
        },
    }
    runner.register("docker://worker", lambda env, secrets: {})
    execution = await execute(definition, "not an object")
    assert execution.status == "failure"
    assert execution.output["Error"] == "States.Runtime"
