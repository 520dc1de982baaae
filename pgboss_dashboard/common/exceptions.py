# pgboss_dashboard/common/exceptions.py


class DashboardException(Exception):
    """Base exception for the pgboss dashboard."""

    pass


class QueryParseError(DashboardException):
    """Raised when a structured query expression cannot be parsed."""

    def __init__(self, message: str, position: int = 0):
        super().__init__(f"{message} (at offset {position})")
        self.position = position


class JobNotFoundError(DashboardException):
    """Raised when a job id no longer exists in the store."""

    pass


class InvalidClearScopeError(DashboardException):
    """Raised when a clear-queue request names an unknown scope."""

    pass


class StoreError(DashboardException):
    """Raised when the external job store cannot answer a request."""

    pass


class ConfigurationError(DashboardException):
    pass
