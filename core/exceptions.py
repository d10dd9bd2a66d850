"""
Custom exceptions for Lishka Upload Service.
"""

from typing import Any, Dict, Optional
from fastapi import status
from models.upload_model import UploadErrorType


class LishkaException(Exception):
    """Base exception for all Lishka-specific errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERIC_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(LishkaException):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"field": field, **(details or {})}
        )


class ResourceNotFoundException(LishkaException):
    """Exception raised when a resource is not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"{resource} with identifier '{identifier}' not found",
            error_code="RESOURCE_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": identifier, **(details or {})}
        )


class DatabaseException(LishkaException):
    """Exception raised for database-related errors."""

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"operation": operation, **(details or {})}
        )


class UploadServiceException(LishkaException):
    """
    Base for failures at the classification/upload service boundary.

    Carries a tagged ``error_type`` so callers never need to inspect the
    message text to decide how to present the failure.
    """

    def __init__(
        self,
        message: str,
        error_type: UploadErrorType,
        retryable: bool = True,
        error_code: str = "UPLOAD_ERROR",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_type = error_type
        self.retryable = retryable
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details={"type": error_type.value, "retryable": retryable, **(details or {})}
        )


class ClassificationException(UploadServiceException):
    """Exception raised when an image could not be classified."""

    def __init__(self, message: str = "Failed to classify image", filename: Optional[str] = None):
        super().__init__(
            message=message,
            error_type=UploadErrorType.CLASSIFICATION,
            error_code="CLASSIFICATION_ERROR",
            details={"filename": filename}
        )


class UploadStreamException(UploadServiceException):
    """Exception raised when an upload stream fails."""

    def __init__(self, message: str = "Upload failed", path: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            error_type=UploadErrorType.UPLOAD,
            error_code="UPLOAD_STREAM_ERROR",
            details={"path": path, "upstream_status": status_code}
        )


class PayloadTooLargeException(UploadServiceException):
    """Exception raised when the backend rejects the upload body as too large."""

    def __init__(self, path: Optional[str] = None):
        super().__init__(
            message="The selected files are too large to upload. Try fewer or smaller photos.",
            error_type=UploadErrorType.UPLOAD,
            retryable=False,
            error_code="PAYLOAD_TOO_LARGE",
            status_code=413,
            details={"path": path}
        )


class UploadTimeoutException(UploadServiceException):
    """Exception raised when the backend did not answer in time."""

    def __init__(self, path: Optional[str] = None):
        super().__init__(
            message="The upload timed out. Please check your connection and try again.",
            error_type=UploadErrorType.TIMEOUT,
            error_code="UPLOAD_TIMEOUT",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details={"path": path}
        )


class NetworkException(UploadServiceException):
    """Exception raised when the backend could not be reached."""

    def __init__(self, message: str = "Network error while uploading. Please try again.", path: Optional[str] = None):
        super().__init__(
            message=message,
            error_type=UploadErrorType.NETWORK,
            error_code="NETWORK_ERROR",
            details={"path": path}
        )
