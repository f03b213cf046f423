"""Choice state tests."""

import pytest

from statewalk.constants import STATES_NO_CHOICE_MATCHED
from statewalk.states.choice_rules import ChoiceRule


def choice_workflow(choices, default="Fallback"):
    states = {
        "Decide": {"Type": "Choice", "Choices": choices},
        "Matched": {"Type": "Pass", "Result": "matched", "End": True},
        "Fallback": {"Type": "Pass", "Result": "fallback", "End": True},
    }
    if default:
        states["Decide"]["Default"] = default
    return {"StartAt": "Decide", "States": states}


def rule(payload):
    return ChoiceRule.build(payload, top_level=False)


@pytest.mark.asyncio
async def test_first_matching_rule_wins(execute):
    definition = choice_workflow(
        [
            {"Variable": "$.n", "NumericGreaterThan": 10, "Next": "Fallback"},
            {"Variable": "$.n", "NumericLessThanEquals": 10, "Next": "Matched"},
        ]
    )
    execution = await execute(definition, {"n": 3})
    assert execution.output == "matched"


@pytest.mark.asyncio
async def test_default_when_nothing_matches(execute):
    definition = choice_workflow([{"Variable": "$.s", "StringEquals": "yes", "Next": "Matched"}])
    execution = await execute(definition, {"s": "no"})
    assert execution.output == "fallback"


@pytest.mark.asyncio
async def test_no_choice_matched(execute):
    definition = choice_workflow(
        [{"Variable": "$.s", "StringEquals": "yes", "Next": "Matched"}], default=None
    )
    execution = await execute(definition, {"s": "no"})
    assert execution.status == "failure"
    assert execution.output["Error"] == STATES_NO_CHOICE_MATCHED


@pytest.mark.asyncio
async def test_choice_passes_input_through(execute):
    definition = {
        "StartAt": "Decide",
        "States": {
            "Decide": {
                "Type": "Choice",
                "Choices": [{"Variable": "$.go", "BooleanEquals": True, "Next": "Done"}],
            },
            "Done": {"Type": "Succeed"},
        },
    }
    execution = await execute(definition, {"go": True, "x": 1})
    assert execution.output == {"go": True, "x": 1}


@pytest.mark.parametrize(
    "payload, input, expected",
    [
        ({"Variable": "$.s", "StringEquals": "a"}, {"s": "a"}, True),
        ({"Variable": "$.s", "StringLessThan": "b"}, {"s": "a"}, True),
        ({"Variable": "$.s", "StringGreaterThanEquals": "b"}, {"s": "a"}, False),
        ({"Variable": "$.s", "StringMatches": "log-*.txt"}, {"s": "log-2024.txt"}, True),
        ({"Variable": "$.s", "StringMatches": "a\\*"}, {"s": "ab"}, False),
        ({"Variable": "$.s", "StringMatches": "a\\*"}, {"s": "a*"}, True),
        ({"Variable": "$.n", "NumericEquals": 1}, {"n": 1.0}, True),
        ({"Variable": "$.n", "NumericEquals": 1}, {"n": True}, False),
        ({"Variable": "$.n", "NumericGreaterThanEqualsPath": "$.m"}, {"n": 2, "m": 2}, True),
        ({"Variable": "$.b", "BooleanEquals": False}, {"b": False}, True),
        ({"Variable": "$.b", "BooleanEquals": False}, {"b": 0}, False),
        (
            {"Variable": "$.t", "TimestampLessThan": "2024-01-02T00:00:00Z"},
            {"t": "2024-01-01T23:00:00-00:30"},
            True,
        ),
        (
            {"Variable": "$.t", "TimestampEquals": "2024-01-01T00:00:00Z"},
            {"t": "2024-01-01T01:00:00+01:00"},
            True,
        ),
        ({"Variable": "$.t", "TimestampEquals": "2024-01-01T00:00:00Z"}, {"t": "nope"}, False),
        (
            {"Variable": "$.t", "TimestampGreaterThanPath": "$.u"},
            {"t": "2024-01-02T00:00:00Z", "u": "2024-01-01T00:00:00Z"},
            True,
        ),
        (
            {"Variable": "$.t", "TimestampGreaterThanPath": "$.u"},
            {"t": "2024-01-02T00:00:00Z", "u": 5},
            False,
        ),
        ({"Variable": "$.x", "IsNull": True}, {"x": None}, True),
        ({"Variable": "$.x", "IsPresent": False}, {}, True),
        ({"Variable": "$.x", "IsPresent": True}, {"x": None}, True),
        ({"Variable": "$.x", "IsNull": False}, {}, False),
        ({"Variable": "$.x", "IsNumeric": True}, {"x": 1.5}, True),
        ({"Variable": "$.x", "IsString": True}, {"x": 1}, False),
        ({"Variable": "$.x", "IsBoolean": True}, {"x": False}, True),
        ({"Variable": "$.x", "IsTimestamp": True}, {"x": "2024-01-01T00:00:00Z"}, True),
        ({"Variable": "$.x", "StringEquals": "a"}, {}, False),
    ],
)
def test_data_rules(payload, input, expected):
    assert rule(payload).true({}, input) is expected


def test_combinators():
    both = rule(
        {
            "And": [
                {"Variable": "$.n", "NumericGreaterThan": 0},
                {"Not": {"Variable": "$.s", "StringEquals": "skip"}},
            ]
        }
    )
    assert both.true({}, {"n": 1, "s": "go"})
    assert not both.true({}, {"n": 1, "s": "skip"})

    either = rule(
        {"Or": [{"Variable": "$.a", "IsPresent": True}, {"Variable": "$.b", "IsPresent": True}]}
    )
    assert either.true({}, {"b": 1})
    assert not either.true({}, {})


def test_context_variable():
    assert rule({"Variable": "$$.Execution.Name", "StringEquals": "run"}).true(
        {"Execution": {"Name": "run"}}, {}
    )
