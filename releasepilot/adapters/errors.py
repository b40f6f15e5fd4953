"""Error taxonomy shared by the GitHub adapters and the release services."""

from enum import Enum

# The GraphQL endpoint answers 502 while its cache warms up; a repeat
# request generally succeeds.
TRANSIENT_STATUSES = frozenset({502})


class GitHubClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(GitHubClientError):
    """Raised when a listing fails in a way that points at missing repository access."""

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message, status_code=401)


class FileNotFoundOnBranchError(GitHubClientError):
    def __init__(self, path: str, branch: str) -> None:
        super().__init__(f"Could not find requested path: {path} (branch {branch})", status_code=404)
        self.path = path
        self.branch = branch


class ErrorKind(str, Enum):
    TRANSIENT_UPSTREAM = "transient_upstream"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    AUTHORIZATION_FAILURE = "authorization_failure"
    UNCLASSIFIED = "unclassified"


def status_of(exc: BaseException) -> int | None:
    """Return the numeric HTTP status carried by an exception, if any.

    Injected capabilities may raise their own exception types; both the
    ``status_code`` attribute (httpx style) and ``status`` (octokit style)
    are honoured.
    """
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify(exc: BaseException) -> ErrorKind:
    status = status_of(exc)
    if status in TRANSIENT_STATUSES:
        return ErrorKind.TRANSIENT_UPSTREAM
    if status == 403:
        return ErrorKind.PERMISSION_DENIED
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 401:
        return ErrorKind.AUTHORIZATION_FAILURE
    return ErrorKind.UNCLASSIFIED
