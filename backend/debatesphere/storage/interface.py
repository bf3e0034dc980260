"""
Storage Interface - Abstract document store used by every repository.
Implementations can be swapped (local disk today, object storage later)
without touching the repositories built on top.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class StorageInterface(ABC):
    """
    Contract for a path-addressed document store.

    Paths are relative and slash-separated, e.g. "sessions/<id>/session.json".
    """

    @abstractmethod
    async def save(
        self,
        path: str,
        content: bytes | str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Save content to the specified path, replacing any previous content.

        Args:
            path: Relative path of the document
            content: Text or bytes to write
            metadata: Optional metadata stored alongside the document

        Returns:
            bool: True if save was successful, False otherwise
        """
        pass

    @abstractmethod
    async def load(self, path: str) -> Optional[bytes]:
        """
        Load content from the specified path.

        Returns:
            Optional[bytes]: Document content, or None if it doesn't exist
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        pass

    @abstractmethod
    async def list(
        self,
        path: str,
        pattern: Optional[str] = None,
        recursive: bool = False
    ) -> List[str]:
        """
        List documents under a directory.

        Args:
            path: Directory path to list
            pattern: Optional glob pattern to filter files (e.g., "*.json")
            recursive: Whether to descend into subdirectories

        Returns:
            List[str]: Sorted relative paths
        """
        pass
