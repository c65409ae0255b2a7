"""Tests for infrastructure.operations.classifiers module."""

import pytest

from infrastructure.operations import (
    OperationStatus,
    classify_exception,
    classify_store_error,
)
from infrastructure.persistence import StoreError

pytestmark = pytest.mark.unit


class TestClassifyStoreError:
    """Store error codes map onto the operation error taxonomy."""

    def test_no_rows_is_not_found(self):
        result = classify_store_error(
            StoreError("0 rows", code="PGRST116"), "Group not found"
        )

        assert result.status == OperationStatus.VALIDATION_ERROR
        assert result.error_code == "NOT_FOUND"
        assert result.message == "Group not found"

    @pytest.mark.parametrize("code", ["PGRST301", "42501"])
    def test_policy_refusal_is_permission_denied(self, code):
        result = classify_store_error(StoreError("row-level security", code=code))

        assert result.status == OperationStatus.PERMISSION_DENIED
        assert result.error_code == code

    def test_unique_violation_is_conflict(self):
        result = classify_store_error(StoreError("duplicate key", code="23505"))

        assert result.status == OperationStatus.CONFLICT

    @pytest.mark.parametrize("code", ["23503", "23502", "23514", "22P02"])
    def test_constraint_codes_are_validation(self, code):
        result = classify_store_error(StoreError("violates constraint", code=code))

        assert result.status == OperationStatus.VALIDATION_ERROR
        assert result.error_code == code

    @pytest.mark.parametrize(
        "error",
        [
            StoreError("JWT expired", code="PGRST303"),
            StoreError("token has expired", code=None),
        ],
    )
    def test_expired_session_is_auth(self, error):
        assert classify_store_error(error).status == OperationStatus.UNAUTHORIZED

    @pytest.mark.parametrize(
        "error",
        [
            StoreError("connection reset", code="CONNECTION_ERROR"),
            StoreError("something odd", code="XX000"),
            StoreError("", code=None),
        ],
    )
    def test_everything_else_is_transient(self, error):
        result = classify_store_error(error)

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.is_retryable


class TestClassifyException:
    """Unexpected exceptions become results instead of propagating."""

    def test_generic_exception_is_transient(self):
        result = classify_exception(RuntimeError("boom"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "UNEXPECTED_ERROR"
        assert "RuntimeError: boom" in result.message

    def test_session_loss_is_auth(self):
        result = classify_exception(ValueError("JWT expired"))

        assert result.status == OperationStatus.UNAUTHORIZED
