"""Tests for nested error-message extraction."""

from chatwindow.error_text import first_error_message


def test_message_at_root():
    assert first_error_message({"message": "name is required"}) == "name is required"


def test_first_leaf_in_nested_form_errors():
    errors = {
        "security": {
            "contextMaxLen": {"type": "min", "message": "must be at least 1"},
            "domain": {"message": "not reached"},
        },
        "name": {"message": "also not reached"},
    }
    assert first_error_message(errors) == "must be at least 1"


def test_pydantic_style_error_list():
    errors = [
        {"loc": ("timeout",), "msg": "Input should be greater than 0", "type": "greater_than"},
        {"loc": ("base_url",), "msg": "second"},
    ]
    assert first_error_message(errors) == "Input should be greater than 0"


def test_skips_empty_branches():
    errors = {"a": {}, "b": [None, {"c": {"message": ""}}], "d": {"message": "found"}}
    assert first_error_message(errors) == "found"


def test_object_with_message_attribute():
    class FieldError:
        message = "bad value"

    assert first_error_message({"field": FieldError()}) == "bad value"


def test_default_when_nothing_found():
    assert first_error_message(None) == "invalid input"
    assert first_error_message({"a": [1, 2, {"b": 3}]}, default="oops") == "oops"


def test_depth_is_bounded():
    deep: dict = {"message": "too deep"}
    for _ in range(50):
        deep = {"next": deep}
    assert first_error_message(deep, max_depth=10) == "invalid input"
    assert first_error_message(deep, max_depth=60) == "too deep"


def test_cyclic_structure_terminates():
    node: dict = {}
    node["self"] = node
    assert first_error_message(node, max_depth=5) == "invalid input"


def test_self_referencing_fan_out_terminates():
    node: list = []
    node.extend([node] * 6)
    assert first_error_message(node) == "invalid input"


def test_shared_subtree_searched_once_and_still_found():
    shared: dict = {"inner": [{"code": 1}]}
    errors = {"a": shared, "b": shared, "c": {"msg": "after shared"}}
    assert first_error_message(errors) == "after shared"
