"""Graph pipeline errors.

Every fatal error carries the HTTP status the route layer should answer with.
"""

from __future__ import annotations

from fastapi import status


class GraphException(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UnknownGraphType(GraphException):
    """No renderer is registered for the requested graph type."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(GraphException):
    """Missing or invalid user identity, or missing administrator privileges."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidArgument(GraphException):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidState(GraphException):
    """An internal invariant was violated, usually by a renderer."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "AuthError",
    "GraphException",
    "InvalidArgument",
    "InvalidState",
    "UnknownGraphType",
]
