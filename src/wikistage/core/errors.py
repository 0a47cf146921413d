"""Error taxonomy for wiki requests.

Core operations raise these exceptions; the HTTP boundary translates them
into plain-text responses using ``status`` and ``message``.
"""


class WikiError(Exception):
    """Base class for errors that terminate a single request."""

    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PageNotFoundError(WikiError):
    """Page or asset does not exist under the root."""

    status = 404


class TraversalError(WikiError):
    """Page name attempted to escape the wiki root.

    Rendered to clients like a missing page, but kept distinct so that the
    attempt can be logged as a security event.
    """

    status = 404

    def __init__(self, name: str) -> None:
        super().__init__(f"open {name}: directory traversal attempt")
        self.name = name


class LockConflictError(WikiError):
    """Page is locked by a different token."""

    status = 409


class AuthRequiredError(WikiError):
    """Session cookie is missing or does not match the shared secret."""

    status = 403


class MalformedRequestError(WikiError):
    """Request is not acceptable as sent (e.g., empty lock token)."""

    status = 400


class MethodNotAllowedError(MalformedRequestError):
    """HTTP method is not supported on this path."""

    status = 405

    def __init__(self, message: str, allowed: tuple[str, ...]) -> None:
        super().__init__(message)
        self.allowed = allowed


class RenderError(WikiError):
    """Generated markup could not be parsed or serialised."""

    status = 500
