from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Repository, path or revision does not resolve."""

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, detail, headers)


class InvalidInputError(HTTPException):
    """Malformed identifier, or a path that resolves to the wrong kind of object."""

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, headers)


class ConflictError(HTTPException):
    """Checkout refused because of uncommitted local changes."""

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(status.HTTP_409_CONFLICT, detail, headers)


class InternalError(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail, headers)
