"""Custom exceptions for Warikan."""


class WarikanError(Exception):
    """Base exception for all Warikan errors."""

    pass


class ConfigurationError(WarikanError):
    """Raised when configuration is invalid or missing."""

    pass


class StorageError(WarikanError):
    """Raised when the snapshot store cannot be read or written."""

    pass


class ProjectNotFoundError(WarikanError):
    """Raised when a project id does not exist in the ledger state."""

    def __init__(self, project_id: str, message: str | None = None):
        self.project_id = project_id
        super().__init__(message or f"Project {project_id} not found")


class MemberNotFoundError(WarikanError):
    """Raised when a member id or name cannot be resolved in a project."""

    pass


class LastProjectError(WarikanError):
    """Raised when attempting to delete the only remaining project."""

    pass


class CategoryInUseError(WarikanError):
    """Raised when deleting a category that expenses still reference."""

    def __init__(self, category_name: str, message: str | None = None):
        self.category_name = category_name
        super().__init__(
            message
            or f"Category '{category_name}' is used by expenses and cannot be deleted"
        )


class InvalidExpenseError(WarikanError):
    """Raised when a new expense has a bad amount or no participants."""

    pass


class InvalidAdjustmentError(WarikanError):
    """Raised when an adjustment has a bad amount or from/to pair."""

    pass


class InvalidSnapshotError(WarikanError):
    """Raised when a project references members or categories it does not have."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(
            "Project snapshot is structurally invalid:\n  " + "\n  ".join(problems)
        )
