class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ScheduleError(AppError):
    """Failure of a schedule reconciliation pass, surfaced to the user as a notification."""
    title = "Update Failed"
    level = "error"

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        super().__init__(message, status_code=status_code, details=details)


class PermissionDeniedError(ScheduleError):
    """Raised when the caller lacks the capability for the requested write."""
    title = "Permission Denied"
    level = "warning"

    def __init__(self, action: str, entity_kind: str = "schedules"):
        self.action = action
        super().__init__(
            f"You don't have permission to {action} {entity_kind}.",
            status_code=403,
            details={"action": action, "entity_kind": entity_kind},
        )


class ValidationFailedError(ScheduleError):
    """Raised with every missing requirement collected, never only the first."""
    title = "Validation Failed"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors), status_code=422, details={"errors": self.errors})


class TermLockedError(ScheduleError):
    """Raised when the effective term is archived or locked and the caller is not privileged."""
    title = "Semester Locked"
    level = "warning"

    def __init__(self, term: str, action: str = "Editing"):
        self.term = term
        super().__init__(
            f"Schedules for {term} are archived or locked. {action} is disabled.",
            status_code=423,
            details={"term": term},
        )


class ReferenceNotFoundError(ScheduleError):
    """Raised when an edit refers to backing records that no longer exist."""

    def __init__(self, missing_ids: list[str], message: str | None = None):
        self.missing_ids = list(missing_ids)
        super().__init__(
            message or "Original schedule not found.",
            status_code=404,
            details={"missing_ids": self.missing_ids},
        )


class PartialWriteFailureError(ScheduleError):
    """Raised when a write fails after earlier writes of the same pass were committed."""

    def __init__(
        self,
        cause: Exception,
        *,
        created: list[str] | None = None,
        updated: list[str] | None = None,
        deleted: list[str] | None = None,
    ):
        self.cause = cause
        self.created = list(created or [])
        self.updated = list(updated or [])
        self.deleted = list(deleted or [])
        super().__init__(
            f"Failed to update schedule: {cause}",
            status_code=500,
            details={
                "created": self.created,
                "updated": self.updated,
                "deleted": self.deleted,
            },
        )
