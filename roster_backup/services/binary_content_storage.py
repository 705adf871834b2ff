"""
Binary Content Storage
Stores file bytes on local disk, keyed by binary content id.
"""

import logging
import os
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import BinaryIO, Callable, Optional

logger = logging.getLogger(__name__)


class StorageTimeoutError(TimeoutError):
    """A write did not finish within the configured timeout."""
    pass


class BinaryContentStorage:
    """
    Service for managing stored file bytes.

    Responsibilities:
    - Write bytes for a binary content id (file, raw bytes or text)
    - Resolve and open stored files for download
    - Delete stored files (idempotent)

    Writes go to a private ``.part`` file first and are renamed into place,
    so a failed write never leaves a file under the final name. A write that
    outlives ``write_timeout_seconds`` is abandoned: it deletes its own
    ``.part`` file when it finally finishes and never publishes.
    """

    def __init__(self, root: Path = Path("data/binary_contents"), write_timeout_seconds: Optional[float] = None):
        """
        Initialize the storage service.

        Args:
            root: Directory holding stored files
            write_timeout_seconds: Upper bound for a single write (None = unbounded)
        """
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.write_timeout_seconds = write_timeout_seconds
        self._executor: Optional[ThreadPoolExecutor] = None

    def put_file(self, content_id: int, source: Path) -> int:
        """
        Copy a staged file into storage.

        Returns:
            Number of bytes stored
        """
        def copy(target: BinaryIO) -> None:
            with open(source, 'rb') as f:
                shutil.copyfileobj(f, target)

        return self._write(content_id, copy)

    def put_bytes(self, content_id: int, data: bytes) -> int:
        """Store raw bytes and return their length."""
        return self._write(content_id, lambda target: target.write(data))

    def put_text(self, content_id: int, text: str, encoding: str = "utf-8") -> int:
        """Store text (e.g. an error log) and return the encoded byte length."""
        return self.put_bytes(content_id, text.encode(encoding))

    def get_path(self, content_id: int) -> Path:
        """
        Get path to a stored file.

        Raises:
            FileNotFoundError: If nothing is stored for content_id
        """
        file_path = self._path_for(content_id)
        if not file_path.exists():
            raise FileNotFoundError(f"Binary content not found: {content_id}")
        return file_path

    def exists(self, content_id: int) -> bool:
        return self._path_for(content_id).exists()

    def open(self, content_id: int) -> BinaryIO:
        """Open a stored file for reading. Caller closes it."""
        return open(self.get_path(content_id), 'rb')

    def get_size(self, content_id: int) -> int:
        return self.get_path(content_id).stat().st_size

    def delete(self, content_id: int) -> bool:
        """
        Delete a stored file.

        Returns:
            True if a file was deleted, False if none existed
        """
        file_path = self._path_for(content_id)
        if file_path.exists():
            file_path.unlink()
            logger.debug(f"Deleted stored file for binary content {content_id}")
            return True
        return False

    def close(self) -> None:
        """Release the write worker, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _path_for(self, content_id: int) -> Path:
        return self.root / str(int(content_id))

    def _write(self, content_id: int, writer: Callable[[BinaryIO], object]) -> int:
        target = self._path_for(content_id)
        # Unique per write so an abandoned write never touches a later one's file
        fd, name = tempfile.mkstemp(dir=self.root, prefix=f"{int(content_id)}.", suffix=".part")
        partial = Path(name)
        publish_lock = threading.Lock()
        state = {"abandoned": False, "published": False}

        def write() -> int:
            try:
                with os.fdopen(fd, 'wb') as f:
                    writer(f)
                    f.flush()
                    os.fsync(f.fileno())
                size = partial.stat().st_size
                with publish_lock:
                    if state["abandoned"]:
                        logger.info(f"Discarding late write for binary content {content_id}")
                        partial.unlink(missing_ok=True)
                        return size
                    os.replace(partial, target)
                    state["published"] = True
            except BaseException:
                partial.unlink(missing_ok=True)
                raise
            return size

        if self.write_timeout_seconds is None:
            return write()

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="binary-content-write")
        future = self._executor.submit(write)
        try:
            return future.result(timeout=self.write_timeout_seconds)
        except FutureTimeoutError:
            with publish_lock:
                if not state["published"]:
                    state["abandoned"] = True
            if not state["abandoned"]:
                # Finished while the timeout fired
                return future.result()

            # The stuck write keeps its worker; later writes get a fresh one
            self._executor.shutdown(wait=False)
            self._executor = None
            raise StorageTimeoutError(
                f"Writing binary content {content_id} exceeded {self.write_timeout_seconds}s"
            )
