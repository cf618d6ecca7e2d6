"""
Media Source - resolves image and video references to bytes / paths.

References:
- "/uploads/<relative path>": file under the configured uploads directory
- anything else (images only): fetched over HTTP(S), best effort, no retry
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

import requests

from occupancy_vision.errors import MediaNotFoundError, RemoteFetchFailure

logger = logging.getLogger(__name__)

UPLOADS_PREFIX = "/uploads/"


class MediaSource:
    """
    Loads media referenced by upload events.

    Usage:
        source = MediaSource(uploads_dir=Path("./uploads"), fetch_timeout_s=10.0)
        data = source.load_image("/uploads/places/cafe.jpg")
        path = source.resolve_video("/uploads/videos/clip.mp4")

    Thread Safety:
        Each calling thread fetches through its own requests.Session. An
        injected session is shared as is.
    """

    def __init__(
        self,
        uploads_dir: Union[str, Path],
        fetch_timeout_s: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.uploads_dir = Path(uploads_dir)
        self.fetch_timeout_s = fetch_timeout_s
        self._shared_session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    @staticmethod
    def is_local(ref: str) -> bool:
        return ref.startswith(UPLOADS_PREFIX)

    def resolve_upload(self, ref: str) -> Path:
        """
        Map an "/uploads/..." reference to a file under uploads_dir.

        Raises:
            MediaNotFoundError: If the file is missing or escapes uploads_dir
        """
        relative = ref[len(UPLOADS_PREFIX):]
        root = self.uploads_dir.resolve()
        path = (root / relative).resolve()

        if root != path and root not in path.parents:
            raise MediaNotFoundError(f"Upload reference outside uploads dir: {ref}")
        if not path.is_file():
            raise MediaNotFoundError(f"Uploaded file not found: {ref}")
        return path

    def load_image(self, ref: str) -> bytes:
        """
        Raw bytes of a referenced image.

        Raises:
            MediaNotFoundError: Local upload missing
            RemoteFetchFailure: Remote fetch failed or returned an error status
        """
        if self.is_local(ref):
            return self.resolve_upload(ref).read_bytes()
        return self.fetch_remote(ref)

    def fetch_remote(self, url: str) -> bytes:
        """
        Raises:
            RemoteFetchFailure: On connection error, timeout or non-2xx status
        """
        logger.debug(f"Fetching remote image: {url}")
        try:
            response = self.session.get(url, timeout=self.fetch_timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RemoteFetchFailure(f"Could not fetch remote image {url}: {e}") from e

        return response.content

    def resolve_video(self, ref: str) -> Path:
        """
        Filesystem path of a referenced video (upload ref or plain path).

        Raises:
            MediaNotFoundError: If the file does not exist
        """
        if self.is_local(ref):
            return self.resolve_upload(ref)

        path = Path(ref)
        if not path.is_file():
            raise MediaNotFoundError(f"Video file not found: {ref}")
        return path

    def close(self) -> None:
        """Close every session opened so far, including an injected one."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        if self._shared_session is not None:
            sessions.append(self._shared_session)
        for session in sessions:
            session.close()
