"""
Chunked upload engine.

Moves one local file into object storage through the catalog's upload
endpoints. Files smaller than the chunk size go up in a single presigned
PUT. Larger files go through a multipart session: the file is cut into
chunk-size parts, all part URLs are requested in one call, parts are PUT
one after another in part-number order, and the session is completed with
the ordered (part number, ETag) list. Once a session is open, any failure
or cancellation aborts it exactly once before the error reaches the caller.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import math
import mimetypes
import os
import threading

import requests

from app.client.errors import UploadCancelled, UploadError
from app.config import settings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]  # (bytes sent, total bytes)

READ_BLOCK_SIZE = 64 * 1024


class UploadState(str, Enum):
    IDLE = "idle"
    STRATEGY_SELECTED = "strategy_selected"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    ABORTED = "aborted"


class UploadStrategy(str, Enum):
    SIMPLE = "simple"
    CHUNKED = "chunked"


class _ProgressReader:
    """
    Streams a byte range of an open file as a request body

    Reports bytes as they are read and raises UploadCancelled as soon as
    the cancel event is set.
    """

    def __init__(self, file, length: int, on_read: Callable[[int], None], cancelled: threading.Event):
        self._file = file
        self._remaining = length
        self._length = length
        self._on_read = on_read
        self._cancelled = cancelled

    def __len__(self) -> int:
        return self._length

    def read(self, size: int = -1) -> bytes:
        if self._remaining <= 0:
            return b""
        if self._cancelled.is_set():
            raise UploadCancelled("Upload cancelled")
        if size is None or size < 0 or size > self._remaining:
            size = self._remaining
        data = self._file.read(size)
        self._remaining -= len(data)
        if data:
            self._on_read(len(data))
        return data

    def __iter__(self):
        while True:
            block = self.read(READ_BLOCK_SIZE)
            if not block:
                break
            yield block


class ChunkedUploadEngine:
    """
    Uploads exactly one file

    Create one engine per transfer; concurrent uploads use separate
    engines sharing only the catalog client.
    """

    def __init__(self, api, chunk_size: Optional[int] = None, http=None):
        """
        Initialize upload engine

        Args:
            api: Catalog client acting as the storage collaborator
            chunk_size: Part size and strategy threshold in bytes (defaults to settings.upload_chunk_size)
            http: requests.Session used for the presigned PUTs
        """
        self.api = api
        self.chunk_size = chunk_size or settings.upload_chunk_size
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self.http = http or requests.Session()

        self.state = UploadState.IDLE
        self.strategy: Optional[UploadStrategy] = None
        self.upload_id: Optional[str] = None
        self.object_key: Optional[str] = None
        self.parts: List[Dict[str, Any]] = []
        self.total_bytes = 0
        self.bytes_sent = 0

        self._cancelled = threading.Event()
        self._on_progress: Optional[ProgressCallback] = None
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Ask the transfer to stop; it raises UploadCancelled at the next check"""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise UploadCancelled("Upload cancelled")

    def _report(self, sent: int) -> None:
        # Never let reported progress move backwards
        if sent < self.bytes_sent:
            return
        self.bytes_sent = sent
        if self._on_progress:
            self._on_progress(sent, self.total_bytes)

    def start(self, path: str, project_id: str, on_progress: Optional[ProgressCallback] = None,
              content_type: Optional[str] = None) -> str:
        """
        Upload a file

        Args:
            path: Local file to upload
            project_id: Project the object is namespaced under
            on_progress: Called with (bytes sent, total bytes)
            content_type: MIME type (guessed from the file name when omitted)

        Returns:
            Object key of the stored file

        Raises:
            UploadCancelled: If cancel() was called before completion
            UploadError: If a transfer step failed
            CatalogError: If the catalog rejected a request
        """
        with self._lock:
            if self.state != UploadState.IDLE:
                raise UploadError("This engine has already been used; create a new one per upload")
            self.state = UploadState.STRATEGY_SELECTED

        self._on_progress = on_progress
        file_name = os.path.basename(path)
        content_type = content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        self.total_bytes = os.path.getsize(path)
        self.strategy = UploadStrategy.SIMPLE if self.total_bytes < self.chunk_size else UploadStrategy.CHUNKED
        logger.info(f"Uploading {file_name} ({self.total_bytes} bytes) using {self.strategy.value} strategy")

        try:
            self._check_cancelled()
            if self.strategy == UploadStrategy.SIMPLE:
                object_key = self._upload_simple(path, project_id, file_name, content_type)
            else:
                object_key = self._upload_chunked(path, project_id, file_name, content_type)
        except Exception:
            self.state = UploadState.ABORTED
            raise

        self.state = UploadState.COMPLETED
        logger.info(f"Upload complete: {object_key}")
        return object_key

    def _put(self, url: str, body: _ProgressReader, content_type: Optional[str] = None):
        headers = {"Content-Type": content_type} if content_type else {}
        try:
            response = self.http.put(url, data=body, headers=headers, timeout=settings.request_timeout)
        except UploadCancelled:
            raise
        except requests.RequestException as e:
            raise UploadError(f"Upload request failed: {e}") from e
        self._check_cancelled()
        if response.status_code >= 400:
            raise UploadError(f"Upload failed with status {response.status_code}")
        return response

    def _upload_simple(self, path: str, project_id: str, file_name: str, content_type: str) -> str:
        upload_url, object_key = self.api.issue_put_url(project_id, file_name, content_type)
        self.object_key = object_key
        self._check_cancelled()
        self.state = UploadState.TRANSFERRING

        self._report(0)
        with open(path, "rb") as f:
            reader = _ProgressReader(f, self.total_bytes, self._make_progress(0), self._cancelled)
            self._put(upload_url, reader, content_type)
        self._report(self.total_bytes)
        return object_key

    def _make_progress(self, base: int) -> Callable[[int], None]:
        read = [0]

        def on_read(count: int) -> None:
            read[0] += count
            self._report(base + read[0])

        return on_read

    def _upload_chunked(self, path: str, project_id: str, file_name: str, content_type: str) -> str:
        upload_id, object_key = self.api.open_multipart_session(project_id, file_name, content_type)
        self.upload_id = upload_id
        self.object_key = object_key

        try:
            self._transfer_parts(path, project_id)
            self._check_cancelled()
            self.api.complete_multipart_session(project_id, object_key, upload_id, self.parts)
        except Exception:
            self._abort(project_id)
            raise
        return object_key

    def _transfer_parts(self, path: str, project_id: str) -> None:
        part_count = math.ceil(self.total_bytes / self.chunk_size)
        part_numbers = list(range(1, part_count + 1))

        self._check_cancelled()
        part_urls = self.api.issue_part_urls(project_id, self.object_key, self.upload_id, part_numbers)
        urls = {p.part_number: p.url for p in part_urls}
        missing = [n for n in part_numbers if n not in urls]
        if missing:
            raise UploadError(f"No upload URL issued for parts {missing}")

        self.state = UploadState.TRANSFERRING
        self._report(0)
        completed = 0
        with open(path, "rb") as f:
            for part_number in part_numbers:
                self._check_cancelled()
                offset = (part_number - 1) * self.chunk_size
                length = min(self.chunk_size, self.total_bytes - offset)
                f.seek(offset)
                reader = _ProgressReader(f, length, self._make_progress(completed), self._cancelled)
                response = self._put(urls[part_number], reader)

                etag = response.headers.get("ETag")
                if not etag:
                    raise UploadError(f"No ETag returned for part {part_number}")
                self.parts.append({"part_number": part_number, "etag": etag})

                completed += length
                self._report(completed)
                logger.debug(f"Uploaded part {part_number}/{part_count} of {self.object_key}")

    def _abort(self, project_id: str) -> None:
        """Discard the multipart session; failures are logged, not raised"""
        try:
            self.api.abort_multipart_session(project_id, self.object_key, self.upload_id)
            logger.info(f"Aborted multipart upload {self.upload_id}")
        except Exception as e:
            logger.error(f"Failed to abort multipart upload {self.upload_id}: {e}")


def upload_and_create_version(api, track_id: str, project_id: str, path: str,
                              notes: Optional[str] = None,
                              on_progress: Optional[ProgressCallback] = None,
                              chunk_size: Optional[int] = None, http=None):
    """Upload a file and register it as the track's next (master) version"""
    engine = ChunkedUploadEngine(api, chunk_size=chunk_size, http=http)
    object_key = engine.start(path, project_id, on_progress=on_progress)
    return api.create_version(track_id, object_key, notes=notes)


def upload_and_create_track(api, project_id: str, name: str, path: str,
                            notes: Optional[str] = None,
                            on_progress: Optional[ProgressCallback] = None,
                            chunk_size: Optional[int] = None, http=None):
    """Upload a file and create a track with it as version 1"""
    engine = ChunkedUploadEngine(api, chunk_size=chunk_size, http=http)
    object_key = engine.start(path, project_id, on_progress=on_progress)
    return api.create_track(project_id, name, object_key, notes=notes)
