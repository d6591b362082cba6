from __future__ import annotations


class ServiceError(Exception):
    """Base class for domain/service layer failures."""


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")


class BadRequestError(ServiceError):
    """Raised when request data is semantically invalid for the service."""


class ConflictError(ServiceError):
    """Raised when an assignment would put a teacher in two places at once."""

    def __init__(self, teacher_id: str, period: int, message: str):
        self.teacher_id = teacher_id
        self.period = period
        super().__init__(message)


class DuplicateAssignmentError(ConflictError):
    def __init__(self, teacher_id: str, class_id: str, period: int):
        self.class_id = class_id
        super().__init__(
            teacher_id,
            period,
            f"Teacher '{teacher_id}' is already assigned to class '{class_id}' in period {period}",
        )
