from __future__ import annotations

import pytest

from src.app.domain.errors import (
    CatalogError,
    CatalogRepositoryError,
    DuplicateNameError,
    InUseError,
    InvalidStateError,
    LimitExceededError,
    MissingReasonError,
    NotFoundError,
    ScopeMismatchError,
    SelfMergeError,
    SourceNotFoundError,
    TargetNotFoundError,
)


class TestNotFoundError:
    def test_attributes(self) -> None:
        error = NotFoundError("Ingredient", "i-1")

        assert error.kind == "NotFound"
        assert error.target_type == "Ingredient"
        assert error.target_id == "i-1"
        assert "i-1" in str(error)

    def test_source_and_target_variants(self) -> None:
        source = SourceNotFoundError("Tag", "t-1")
        target = TargetNotFoundError("Tag", "t-2")

        assert isinstance(source, NotFoundError)
        assert isinstance(target, NotFoundError)
        assert str(source).startswith("Source tag")
        assert str(target).startswith("Target tag")


class TestInvalidStateError:
    def test_message(self) -> None:
        error = InvalidStateError("Ingredient", "APPROVED", "approve")

        assert error.kind == "InvalidState"
        assert error.status == "APPROVED"
        assert str(error) == "Cannot approve ingredient with status APPROVED"


class TestDuplicateNameError:
    def test_default_field(self) -> None:
        error = DuplicateNameError("Tag", "vegan")

        assert error.field == "name"
        assert "vegan" in str(error)

    def test_custom_field(self) -> None:
        error = DuplicateNameError("Unit", "g", field="abbreviation")

        assert str(error) == "Unit abbreviation already exists: g"


class TestOtherErrors:
    def test_in_use_carries_count(self) -> None:
        error = InUseError("Unit", "u-1", 3)

        assert error.usage_count == 3
        assert "3 time(s)" in str(error)

    def test_limit_exceeded(self) -> None:
        assert LimitExceededError(100).limit == 100

    def test_scope_mismatch(self) -> None:
        error = ScopeMismatchError("t-1", "c-1")

        assert error.kind == "ScopeMismatch"
        assert error.community_id == "c-1"

    def test_repository_error(self) -> None:
        error = CatalogRepositoryError("transaction", "database is locked")

        assert error.operation == "transaction"
        assert "database is locked" in str(error)

    @pytest.mark.parametrize(
        "error",
        [
            SelfMergeError("Ingredient"),
            MissingReasonError(),
            LimitExceededError(5),
            CatalogRepositoryError("flush", "boom"),
        ],
    )
    def test_all_are_catalog_errors(self, error) -> None:
        assert isinstance(error, CatalogError)
