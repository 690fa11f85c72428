"""
Error kinds raised by the ordered collection engine and the unit of work.

HTTP status mapping lives in app.register_error_handlers.
"""

from typing import Any, Iterable, List, Optional


def _sorted_ids(ids: Optional[Iterable[Any]]) -> List[Any]:
    """Ids in ascending order; mixed, unorderable types fall back to repr order."""
    ids = list(ids or [])
    try:
        return sorted(ids)
    except TypeError:
        return sorted(ids, key=repr)


class ServiceError(Exception):
    """Base class for errors carrying an HTTP status and a JSON body."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'success': False, 'message': self.message}


class OrderingError(ServiceError):
    """Base class for every error surfaced by the ordering layer."""


class PermissionDenied(ServiceError):
    """The member exists but belongs to another user."""

    status_code = 403


class NotFoundError(OrderingError):
    """A referenced member or scope does not exist (or is outside the scope)."""

    status_code = 404


class InvalidPosition(OrderingError, ValueError):
    """A target position is not a non-negative integer."""

    status_code = 400


class ReorderMismatch(OrderingError):
    """
    The id list passed to reorder does not match the scope's membership.

    Raised before any write is issued.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        missing: Optional[Iterable[int]] = None,
        extra: Optional[Iterable[int]] = None,
        duplicates: Optional[Iterable[int]] = None,
    ):
        super().__init__(message)
        self.missing = _sorted_ids(missing)
        self.extra = _sorted_ids(extra)
        self.duplicates = _sorted_ids(duplicates)

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'missing_ids': self.missing,
            'extra_ids': self.extra,
            'duplicate_ids': self.duplicates,
        })
        return data


class InvariantViolation(OrderingError):
    """Duplicate (scope, position) detected by the store. Internal consistency bug."""

    status_code = 500


class StoreFailure(OrderingError):
    """Transaction control or statement execution failed in the store."""

    status_code = 503
