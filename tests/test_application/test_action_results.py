"""
Tests for the success/failure action result helpers.
"""
import pytest
from pydantic import BaseModel

from redemption.application.actions import error_result, ok, safe_action, validated_action
from redemption.domain.errors import NotFoundError, ValidationError


class Payload(BaseModel):
    name: str
    amount: int


def test_ok():
    assert ok([1, 2]) == {"success": True, "data": [1, 2]}
    assert ok() == {"success": True, "data": None}


def test_error_result_carries_field_errors():
    assert error_result(NotFoundError("Bank not found")) == {"success": False, "error": "Bank not found"}
    assert error_result(ValidationError({"name": "Required"})) == {
        "success": False, "error": "Validation failed", "field_errors": {"name": "Required"},
    }


def test_safe_action_turns_domain_errors_into_results():
    def missing():
        raise NotFoundError("Document not found")

    assert safe_action(lambda x: x * 2, 21) == {"success": True, "data": 42}
    assert safe_action(missing) == {"success": False, "error": "Document not found"}


def test_safe_action_lets_bugs_propagate():
    def broken():
        raise KeyError("oops")

    with pytest.raises(KeyError):
        safe_action(broken)


def test_validated_action():
    result = validated_action(Payload, {"name": "x", "amount": 2}, lambda p: p.amount + 1)
    assert result == {"success": True, "data": 3}

    failed = validated_action(Payload, {"name": "x"}, lambda p: p.amount)
    assert failed["success"] is False
    assert set(failed["field_errors"]) == {"amount"}
