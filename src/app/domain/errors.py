from __future__ import annotations

from typing import Optional


class CatalogError(Exception):
    kind = "CatalogError"


class NotFoundError(CatalogError):
    kind = "NotFound"

    def __init__(self, target_type: str, target_id: Optional[str]):
        super().__init__(f"{target_type} not found: {target_id}")
        self.target_type = target_type
        self.target_id = target_id


class SourceNotFoundError(NotFoundError):
    def __init__(self, target_type: str, target_id: Optional[str]):
        super().__init__(target_type, target_id)
        self.args = (f"Source {target_type.lower()} not found: {target_id}",)


class TargetNotFoundError(NotFoundError):
    def __init__(self, target_type: str, target_id: Optional[str]):
        super().__init__(target_type, target_id)
        self.args = (f"Target {target_type.lower()} not found: {target_id}",)


class InvalidStateError(CatalogError):
    kind = "InvalidState"

    def __init__(self, target_type: str, status: str, action: str):
        super().__init__(f"Cannot {action} {target_type.lower()} with status {status}")
        self.target_type = target_type
        self.status = status
        self.action = action


class DuplicateNameError(CatalogError):
    kind = "DuplicateName"

    def __init__(self, target_type: str, name: str, field: str = "name"):
        super().__init__(f"{target_type} {field} already exists: {name}")
        self.target_type = target_type
        self.name = name
        self.field = field


class SelfMergeError(CatalogError):
    kind = "SelfMerge"

    def __init__(self, target_type: str):
        super().__init__(f"Cannot merge {target_type.lower()} into itself")
        self.target_type = target_type


class MissingTargetError(CatalogError):
    kind = "MissingTarget"

    def __init__(self, message: str = "Target id is required"):
        super().__init__(message)


class MissingReasonError(CatalogError):
    kind = "MissingReason"

    def __init__(self, message: str = "A rejection reason is required"):
        super().__init__(message)


class InvalidReferenceError(CatalogError):
    kind = "InvalidReference"

    def __init__(self, reference_type: str, reference_id: str):
        super().__init__(f"Referenced {reference_type.lower()} does not exist: {reference_id}")
        self.reference_type = reference_type
        self.reference_id = reference_id


class InUseError(CatalogError):
    kind = "InUse"

    def __init__(self, target_type: str, target_id: str, usage_count: int):
        super().__init__(
            f"Cannot delete {target_type.lower()} {target_id}: still referenced {usage_count} time(s)"
        )
        self.target_type = target_type
        self.target_id = target_id
        self.usage_count = usage_count


class InvalidNameError(CatalogError):
    kind = "InvalidName"

    def __init__(self, message: str = "Name is required"):
        super().__init__(message)


class InvalidCategoryError(CatalogError):
    kind = "InvalidCategory"

    def __init__(self, category: Optional[str]):
        super().__init__(f"Invalid unit category: {category}")
        self.category = category


class ScopeMismatchError(CatalogError):
    kind = "ScopeMismatch"

    def __init__(self, target_id: str, community_id: str):
        super().__init__(f"Tag {target_id} does not belong to community {community_id}")
        self.target_id = target_id
        self.community_id = community_id


class LimitExceededError(CatalogError):
    kind = "LimitExceeded"

    def __init__(self, limit: int):
        super().__init__(f"Community tag limit reached ({limit})")
        self.limit = limit


class CatalogRepositoryError(CatalogError):
    kind = "RepositoryError"

    def __init__(self, operation: str, reason: str):
        super().__init__(f"Catalog repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason
