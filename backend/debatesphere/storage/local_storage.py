"""
Local Filesystem Storage Implementation.
Documents live under a base directory on the server's disk.
"""

import glob as glob_module
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Local filesystem storage.
    Stores all documents in a base directory on the server.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored documents
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, path: str) -> Path:
        """Resolve a relative path, refusing anything outside base_dir."""
        full_path = (self.base_dir / path).resolve()

        if not full_path.is_relative_to(self.base_dir):
            raise ValueError(f"Invalid path: {path} - path traversal detected")

        return full_path

    async def save(
        self,
        path: str,
        content: bytes | str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Write content to disk through a temp file and an atomic rename."""
        try:
            full_path = self._get_full_path(path)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = full_path.with_suffix(full_path.suffix + '.tmp')

            if isinstance(content, str):
                async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                    await f.write(content)
            else:
                async with aiofiles.open(tmp_path, 'wb') as f:
                    await f.write(content)
            tmp_path.replace(full_path)

            if metadata:
                metadata_path = full_path.with_suffix(full_path.suffix + '.meta')
                async with aiofiles.open(metadata_path, 'w', encoding='utf-8') as f:
                    await f.write(json.dumps(metadata, indent=2))

            return True
        except (OSError, ValueError) as e:
            logger.error(
                f"Error saving file {path}: {e}",
                extra={"extra_fields": {"path": path, "error": str(e)}}
            )
            return False

    async def load(self, path: str) -> Optional[bytes]:
        """Load content from disk."""
        try:
            full_path = self._get_full_path(path)
            if not full_path.exists():
                return None

            async with aiofiles.open(full_path, 'rb') as f:
                return await f.read()
        except (OSError, ValueError) as e:
            logger.error(
                f"Error loading file {path}: {e}",
                extra={"extra_fields": {"path": path, "error": str(e)}}
            )
            return None

    async def exists(self, path: str) -> bool:
        try:
            return self._get_full_path(path).exists()
        except ValueError:
            return False

    async def delete(self, path: str) -> bool:
        try:
            full_path = self._get_full_path(path)
            if not full_path.exists():
                return False
            full_path.unlink()

            metadata_path = full_path.with_suffix(full_path.suffix + '.meta')
            if metadata_path.exists():
                metadata_path.unlink()
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Error deleting file {path}: {e}")
            return False

    async def list(
        self,
        path: str,
        pattern: Optional[str] = None,
        recursive: bool = False
    ) -> List[str]:
        """List documents in a directory, skipping metadata and temp files."""
        try:
            full_path = self._get_full_path(path)
            if not full_path.exists():
                return []

            if pattern:
                if recursive:
                    files = glob_module.glob(str(full_path / "**" / pattern), recursive=True)
                else:
                    files = glob_module.glob(str(full_path / pattern))
            elif recursive:
                files = [str(p) for p in full_path.rglob("*") if p.is_file()]
            else:
                files = [str(p) for p in full_path.glob("*") if p.is_file()]

            return sorted(
                str(Path(file_path).relative_to(self.base_dir))
                for file_path in files
                if not file_path.endswith(('.meta', '.tmp'))
            )
        except (OSError, ValueError) as e:
            logger.error(f"Error listing files in {path}: {e}")
            return []
