"""
Service error taxonomy.

Each error carries the HTTP status it maps to. `main` registers one exception
handler for `ServiceError` that renders `{"detail": message}`, the same shape
FastAPI uses for `HTTPException`.
"""

from __future__ import annotations


class ServiceError(RuntimeError):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# Malformed resource address.
class RoutingError(ServiceError):
    status_code = 400


# Missing or invalid request body.
class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


# Connection failure, constraint violation, or timeout talking to the backend.
class StoreError(ServiceError):
    status_code = 500


class InternalError(ServiceError):
    status_code = 500
