"""Google Drive file metadata models."""

from dataclasses import dataclass
from datetime import datetime

from avalanche.models.common import RemoteId, parse_timestamp

GOOGLE_SHEET_MIME = "application/vnd.google-apps.spreadsheet"
GOOGLE_APPS_MIME_PREFIX = "application/vnd.google-apps."
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MIME = "application/pdf"


@dataclass(frozen=True)
class RemoteFileDescriptor:
    """A file as reported by a Drive listing. Rebuilt on every listing call."""

    remote_id: RemoteId
    display_name: str
    content_kind: str  # MIME type
    last_modified: datetime

    @property
    def is_spreadsheet(self) -> bool:
        return self.content_kind == GOOGLE_SHEET_MIME

    @property
    def is_native_google_document(self) -> bool:
        """Native Google documents can only be exported, not downloaded."""
        return self.content_kind.startswith(GOOGLE_APPS_MIME_PREFIX)

    @classmethod
    def from_api(cls, data: dict) -> "RemoteFileDescriptor":
        return cls(
            remote_id=data["id"],
            display_name=data.get("name", ""),
            content_kind=data.get("mimeType", ""),
            last_modified=parse_timestamp(data["modifiedTime"]),
        )
