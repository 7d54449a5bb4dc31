"""
Platform-wide exception hierarchy.

Services raise these; blueprints register one handler per type and map
them to the standard error envelope (see workspace_hub.utils.errors).

Usage:
    from workspace_hub.core.exceptions import NotFoundError, ScopeResolutionError

    raise NotFoundError(resource="Workspace", resource_id=ws_id)
    raise ScopeResolutionError("current workspace is required")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Workspace").
        resource_id: The id that was looked up. Logged, echoed in the message.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AccessDeniedError(Exception):
    """Raised when a user is not a member of the workspace they act in."""

    def __init__(self, user_id: str | None, workspace_id: str | None) -> None:
        self.user_id = user_id
        self.workspace_id = workspace_id
        super().__init__(f"user {user_id} has no access to workspace {workspace_id}")


class ScopeResolutionError(Exception):
    """Raised when the set of workspaces to aggregate over cannot be determined.

    Fatal to an aggregation run. Per-workspace fetch failures are NOT
    reported through this type; they are isolated and listed in the result.
    """

    def __init__(self, message: str, *, user_id: str | None = None, workspace_id: str | None = None) -> None:
        self.user_id = user_id
        self.workspace_id = workspace_id
        super().__init__(message)
