"""Unit tests for domain errors."""

import pytest

from keel.domain import errors


class TestPropertyNotFoundError:
    """Tests for PropertyNotFoundError."""

    @staticmethod
    def test_attributes() -> None:
        """The owner type and property name are kept on the error."""
        error = errors.PropertyNotFoundError("Customer", "nickname")
        assert error.owner_type == "Customer"
        assert error.property_name == "nickname"

    @staticmethod
    def test_error_message_is_not_quoted_like_a_key_error() -> None:
        """str() gives the plain message even though it is a KeyError."""
        error = errors.PropertyNotFoundError("Customer", "nickname")
        assert str(error) == "Customer has no property named 'nickname'."

    @staticmethod
    def test_is_a_key_error() -> None:
        """Callers using mapping idioms can catch KeyError."""
        with pytest.raises(KeyError):
            raise errors.PropertyNotFoundError("Customer", "nickname")


class TestPropertyReadOnlyError:
    """Tests for PropertyReadOnlyError."""

    @staticmethod
    def test_error_message() -> None:
        """The message names the property."""
        error = errors.PropertyReadOnlyError("phone_count")
        assert error.property_name == "phone_count"
        assert str(error) == "Property 'phone_count' is read-only."


class TestSaveOperationError:
    """Tests for SaveOperationError."""

    @staticmethod
    @pytest.mark.parametrize("reason", list(errors.SaveFailureReason))
    def test_attributes(reason: errors.SaveFailureReason) -> None:
        """The entity type and reason are kept on the error."""
        error = errors.SaveOperationError("Customer", reason)
        assert error.entity_type == "Customer"
        assert error.reason is reason
        assert "Customer" in str(error)


class TestAggregateBoundaryError:
    """Tests for AggregateBoundaryError."""

    @staticmethod
    def test_error_message() -> None:
        """The message names the item and the list."""
        error = errors.AggregateBoundaryError("Phone", "PhoneList")
        assert error.item_type == "Phone"
        assert error.list_type == "PhoneList"
        assert str(error).startswith("Cannot add Phone to PhoneList")
        assert "different aggregate" in str(error)
        assert not error.owns_list

    @staticmethod
    def test_owner_message() -> None:
        """An owner added to its own list gets a message of its own."""
        error = errors.AggregateBoundaryError("Customer", "PhoneList", owns_list=True)
        assert error.owns_list
        assert str(error).endswith("An object cannot be its own child.")


class TestUnknownIdGeneratorError:
    """Tests for UnknownIdGeneratorError."""

    @staticmethod
    def test_error_message_lists_supported_generators() -> None:
        """The message lists the supported names."""
        error = errors.UnknownIdGeneratorError("snowflake", ("simple", "ulid"))
        assert error.name == "snowflake"
        assert str(error) == "Unknown id generator 'snowflake'. Supported: simple, ulid."


class TestStateTransferError:
    """Tests for StateTransferError."""

    @staticmethod
    def test_error_message() -> None:
        """The message names the node type and the reason."""
        error = errors.StateTransferError("Customer", "snapshot is of x:Y")
        assert str(error) == "Cannot restore Customer: snapshot is of x:Y"


class TestHierarchy:
    """All keel errors share a base class."""

    @staticmethod
    @pytest.mark.parametrize(
        "error",
        [
            errors.OperationCancelledError(),
            errors.PropertyReadOnlyError("x"),
            errors.ChildObjectBusyError("replace x"),
            errors.RuleNotAddedError("Rule"),
            errors.InvalidTriggerError("Rule"),
            errors.NoEventLoopError("Rule x"),
            errors.EntityDestroyedError("Customer"),
            errors.DuplicateItemError("Phone", "PhoneList"),
            errors.ServicesNotConfiguredError(),
        ],
    )
    def test_subclasses_keel_error(error: Exception) -> None:
        """Every error can be caught as KeelError."""
        assert isinstance(error, errors.KeelError)
