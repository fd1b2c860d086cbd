"""
HTTP client for the catalog API.

Used by the upload engine (as its storage collaborator) and by whatever UI
embeds the playback core. Every non-2xx response is raised as CatalogError
carrying the server's {"error": ...} message.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

import requests

from app.client.errors import CatalogError
from app.config import settings
from app.schemas import CommentInfo, PartUrl, TrackInfo, TrackPage, VersionInfo

logger = logging.getLogger(__name__)


class CatalogClient:
    """Typed wrapper around the catalog REST endpoints"""

    def __init__(self, base_url: Optional[str] = None, user_id: Optional[str] = None,
                 session=None, timeout: Optional[float] = None):
        """
        Initialize catalog client

        Args:
            base_url: API root (defaults to settings.api_base_url)
            user_id: Acting user, sent as X-User-Id
            session: requests.Session or anything with the same request() signature
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.user_id = user_id
        self.session = session or requests.Session()
        self.timeout = timeout or settings.request_timeout

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"X-User-Id": self.user_id} if self.user_id else {}
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise CatalogError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            message = f"Request failed with status {response.status_code}"
            details = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("error") or message
                details = body.get("details")
            raise CatalogError(message, status_code=response.status_code, details=details)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Tracks

    def list_tracks(self, project_id: str, page: int = 1, limit: int = 20,
                    sort_by: str = "last_version_at", sort_order: str = "desc") -> TrackPage:
        data = self._request("GET", f"/api/projects/{project_id}/tracks", params={
            "page": page, "limit": limit, "sort_by": sort_by, "sort_order": sort_order,
        })
        return TrackPage.model_validate(data)

    def get_track(self, track_id: str) -> TrackInfo:
        return TrackInfo.model_validate(self._request("GET", f"/api/tracks/{track_id}"))

    def create_track(self, project_id: str, name: str, audio_key: str,
                     notes: Optional[str] = None) -> TrackInfo:
        """Create a track whose first version points at an uploaded object"""
        data = self._request("POST", f"/api/projects/{project_id}/tracks", json={
            "name": name, "audio_key": audio_key, "notes": notes,
        })
        return TrackInfo.model_validate(data)

    def rename_track(self, track_id: str, name: str) -> TrackInfo:
        return TrackInfo.model_validate(
            self._request("PATCH", f"/api/tracks/{track_id}", json={"name": name})
        )

    def delete_track(self, track_id: str) -> None:
        self._request("DELETE", f"/api/tracks/{track_id}")

    # Versions

    def get_versions(self, track_id: str) -> List[VersionInfo]:
        """All versions of a track, newest first, each with a presigned audio_url"""
        data = self._request("GET", f"/api/tracks/{track_id}/versions")
        return [VersionInfo.model_validate(item) for item in data]

    def create_version(self, track_id: str, audio_key: str, notes: Optional[str] = None) -> VersionInfo:
        data = self._request("POST", f"/api/tracks/{track_id}/versions", json={
            "audio_key": audio_key, "notes": notes,
        })
        return VersionInfo.model_validate(data)

    def update_version_notes(self, track_id: str, version_id: str, notes: Optional[str]) -> VersionInfo:
        data = self._request("PATCH", f"/api/tracks/{track_id}/versions/{version_id}", json={"notes": notes})
        return VersionInfo.model_validate(data)

    def set_master(self, track_id: str, version_id: str) -> VersionInfo:
        data = self._request("PATCH", f"/api/tracks/{track_id}/versions/{version_id}", json={"is_master": True})
        return VersionInfo.model_validate(data)

    def delete_version(self, track_id: str, version_id: str) -> None:
        self._request("DELETE", f"/api/tracks/{track_id}/versions/{version_id}")

    # Comments

    def get_comments(self, track_id: str, version_id: str, include_resolved: bool = False) -> List[CommentInfo]:
        """Top-level comments with their replies nested one level deep"""
        data = self._request(
            "GET",
            f"/api/tracks/{track_id}/versions/{version_id}/comments",
            params={"include_resolved": "true" if include_resolved else "false"},
        )
        return [CommentInfo.model_validate(item) for item in data]

    def create_comment(self, track_id: str, version_id: str, content: str,
                       timestamp: Optional[float] = None, parent_id: Optional[str] = None) -> CommentInfo:
        data = self._request("POST", f"/api/tracks/{track_id}/versions/{version_id}/comments", json={
            "content": content, "timestamp": timestamp, "parent_id": parent_id,
        })
        return CommentInfo.model_validate(data)

    def update_comment(self, track_id: str, version_id: str, comment_id: str, content: str) -> CommentInfo:
        data = self._request(
            "PATCH",
            f"/api/tracks/{track_id}/versions/{version_id}/comments/{comment_id}",
            json={"content": content},
        )
        return CommentInfo.model_validate(data)

    def delete_comment(self, track_id: str, version_id: str, comment_id: str) -> None:
        self._request("DELETE", f"/api/tracks/{track_id}/versions/{version_id}/comments/{comment_id}")

    def resolve_comment(self, track_id: str, version_id: str, comment_id: str) -> CommentInfo:
        data = self._request(
            "POST", f"/api/tracks/{track_id}/versions/{version_id}/comments/{comment_id}/resolve"
        )
        return CommentInfo.model_validate(data)

    def unresolve_comment(self, track_id: str, version_id: str, comment_id: str) -> CommentInfo:
        data = self._request(
            "DELETE", f"/api/tracks/{track_id}/versions/{version_id}/comments/{comment_id}/resolve"
        )
        return CommentInfo.model_validate(data)

    # Storage collaborator

    def issue_put_url(self, project_id: str, file_name: str, file_type: str) -> Tuple[str, str]:
        """
        Ask for a single-shot upload destination

        Returns:
            (upload URL, object key)
        """
        data = self._request("POST", "/api/upload/presigned", json={
            "file_name": file_name, "file_type": file_type, "project_id": project_id,
        })
        return data["upload_url"], data["object_key"]

    def open_multipart_session(self, project_id: str, file_name: str, file_type: str) -> Tuple[str, str]:
        """
        Open a multipart upload session

        Returns:
            (upload id, object key)
        """
        data = self._request("POST", "/api/upload/multipart/initiate", json={
            "file_name": file_name, "file_type": file_type, "project_id": project_id,
        })
        return data["upload_id"], data["object_key"]

    def issue_part_urls(self, project_id: str, object_key: str, upload_id: str,
                        part_numbers: List[int]) -> List[PartUrl]:
        data = self._request("POST", "/api/upload/multipart/chunk-urls", json={
            "object_key": object_key,
            "upload_id": upload_id,
            "project_id": project_id,
            "part_numbers": part_numbers,
        })
        return [PartUrl.model_validate(item) for item in data["chunk_urls"]]

    def complete_multipart_session(self, project_id: str, object_key: str, upload_id: str,
                                   parts: List[Dict[str, Any]]) -> None:
        """
        Finalize a multipart upload

        Args:
            parts: [{"part_number": int, "etag": str}] in part-number order
        """
        self._request("POST", "/api/upload/multipart/complete", json={
            "object_key": object_key,
            "upload_id": upload_id,
            "project_id": project_id,
            "parts": parts,
        })

    def abort_multipart_session(self, project_id: str, object_key: str, upload_id: str) -> None:
        self._request("POST", "/api/upload/multipart/abort", json={
            "object_key": object_key,
            "upload_id": upload_id,
            "project_id": project_id,
        })
