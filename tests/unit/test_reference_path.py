"""ReferencePath tests."""

import pytest

from statewalk.errors import InvalidWorkflowError, PathError
from statewalk.paths import ReferencePath


def test_dollar_replaces_whole_value():
    assert ReferencePath("$").set({"a": 1}, {"b": 2}) == {"b": 2}


def test_sets_nested_key():
    input = {"a": {"b": 1}}
    output = ReferencePath("$.a.c").set(input, 2)
    assert output == {"a": {"b": 1, "c": 2}}
    assert input == {"a": {"b": 1}}


def test_creates_missing_intermediate_objects():
    assert ReferencePath("$.a.b").set({}, 1) == {"a": {"b": 1}}


def test_sets_array_index():
    assert ReferencePath("$.items[1]").set({"items": [1, 2]}, 5) == {"items": [1, 5]}


def test_appends_at_array_length():
    assert ReferencePath("$.items[2]").set({"items": [1, 2]}, 3) == {"items": [1, 2, 3]}


def test_index_out_of_range():
    with pytest.raises(PathError):
        ReferencePath("$.items[5]").set({"items": []}, 1)


def test_descend_into_scalar():
    with pytest.raises(PathError):
        ReferencePath("$.a.b").set({"a": "text"}, 1)


def test_index_into_object():
    with pytest.raises(PathError):
        ReferencePath("$.a[0]").set({"a": {}}, 1)


def test_context_paths_are_rejected():
    with pytest.raises(InvalidWorkflowError):
        ReferencePath("$$.Execution")
