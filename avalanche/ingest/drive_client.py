"""Google Drive v3 client for listing, downloading and exporting published files."""

import logging
import os

import httpx

from avalanche.config.schema import DRIVE_BASE_URL
from avalanche.models.common import RemoteId
from avalanche.models.drive import RemoteFileDescriptor

logger = logging.getLogger(__name__)

LIST_FIELDS = "nextPageToken, files(mimeType, id, name, modifiedTime)"
METADATA_FIELDS = "mimeType, id, name, modifiedTime"


class FetchError(Exception):
    """Raised when Drive cannot be reached or returns an error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        remote_id: RemoteId | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.remote_id = remote_id


class DriveClient:
    """Thin wrapper around the Drive v3 REST API using an API key.

    Only works for files that are shared publicly, which is how the
    published forecast folder is exposed.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DRIVE_BASE_URL,
        timeout: float = 30.0,
    ):
        self.api_key = api_key or os.environ.get("GOOGLE_DRIVE_API_KEY", "")
        if not self.api_key:
            raise FetchError("GOOGLE_DRIVE_API_KEY not set")
        self.base_url = base_url
        self.timeout = timeout

    def _get(
        self, endpoint: str, params: dict, remote_id: RemoteId | None = None
    ) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        params = {**params, "key": self.api_key}
        try:
            resp = httpx.get(url, params=params, timeout=self.timeout)
        except httpx.RequestError as e:
            logger.error("Drive request failed: GET %s -> %s", endpoint, e)
            raise FetchError(f"Request failed: {e}", remote_id=remote_id) from e
        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.error("Drive API %d: GET %s -> %s", resp.status_code, endpoint, message)
            raise FetchError(
                f"HTTP {resp.status_code}: {message}",
                status_code=resp.status_code,
                remote_id=remote_id,
            )
        return resp

    def list_files(self, folder_id: str) -> list[RemoteFileDescriptor]:
        """List all non-trashed files in a folder, following every page."""
        params = {
            "q": f"'{folder_id}' in parents and trashed = false",
            "fields": LIST_FIELDS,
        }
        files: list[RemoteFileDescriptor] = []
        page_token: str | None = None
        while True:
            page_params = dict(params)
            if page_token is not None:
                page_params["pageToken"] = page_token
            data = self._get("/files", page_params).json()
            if "error" in data:
                raise FetchError(
                    f"Drive listing error: {_describe_error(data['error'])}",
                    status_code=data["error"].get("code"),
                )
            files.extend(RemoteFileDescriptor.from_api(f) for f in data.get("files", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        logger.debug("Listed %d files in folder %s", len(files), folder_id)
        return files

    def get_file_metadata(self, file_id: RemoteId) -> RemoteFileDescriptor:
        resp = self._get(f"/files/{file_id}", {"fields": METADATA_FIELDS}, file_id)
        return RemoteFileDescriptor.from_api(resp.json())

    def get_file(self, file_id: RemoteId) -> bytes:
        """Download a file's original content."""
        resp = self._get(f"/files/{file_id}", {"alt": "media"}, file_id)
        return resp.content

    def export_file(self, file_id: RemoteId, mime_type: str) -> bytes:
        """Export a native Google document to ``mime_type``.

        Supported targets: https://developers.google.com/drive/api/guides/ref-export-formats
        """
        resp = self._get(f"/files/{file_id}/export", {"mimeType": mime_type}, file_id)
        return resp.content


def find_file_by_name(
    file_name: str, files: list[RemoteFileDescriptor]
) -> RemoteFileDescriptor | None:
    """Find a file in a listing by name. Names are not unique; first match wins."""
    for file in files:
        if file.display_name == file_name:
            return file
    return None


def find_file_by_id(
    remote_id: RemoteId, files: list[RemoteFileDescriptor]
) -> RemoteFileDescriptor | None:
    for file in files:
        if file.remote_id == remote_id:
            return file
    return None


def _describe_error(error: dict) -> str:
    return f"code: {error.get('code')}, message: {error.get('message', '')}"


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return _describe_error(body["error"])
    return resp.text
