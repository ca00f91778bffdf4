"""Collaborator services: patch history and project file serving."""

from codegen_bot.services.exceptions import ProjectFileNotFoundError, ServiceError
from codegen_bot.services.file_service import ProjectFileService
from codegen_bot.services.history import (
    InMemoryPatchHistory,
    JsonlPatchHistory,
    PatchHistory,
    rollback_files,
)

__all__ = [
    "InMemoryPatchHistory",
    "JsonlPatchHistory",
    "PatchHistory",
    "ProjectFileNotFoundError",
    "ProjectFileService",
    "ServiceError",
    "rollback_files",
]
