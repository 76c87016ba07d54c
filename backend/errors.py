# backend/errors.py


class TreeViewError(Exception):
    """Base for every failure the listing API turns into an error payload."""

    status_code = 500

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.message = message
        self.path = path

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict:
        return {"error": self.message, "code": self.code, "path": self.path}


class InvalidPath(TreeViewError):
    status_code = 400


class PathEscape(InvalidPath):
    pass


class NotFound(TreeViewError):
    status_code = 404


class NotADirectory(TreeViewError):
    status_code = 400


class MetadataUnavailable(TreeViewError):
    pass


class MissingMetadataEntry(TreeViewError):
    pass


class StatFailure(TreeViewError):
    """Raised by the generator; aborts the whole run."""
