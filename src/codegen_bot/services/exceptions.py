"""Exceptions for collaborator services."""


class ServiceError(Exception):
    """Base exception for history and file-service operations."""


class ProjectFileNotFoundError(ServiceError):
    """Raised when a requested project or file does not exist."""
