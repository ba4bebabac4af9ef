"""Local storage for pending uploads and session files."""

from .file_manager import FileManager, PendingUpload

__all__ = ["FileManager", "PendingUpload"]
