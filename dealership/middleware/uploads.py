from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from fastapi import UploadFile

from dealership.exceptions import ValidationError

MB = 1024 * 1024


@dataclass(frozen=True)
class UploadPolicy:
    max_bytes: int
    max_files: int
    content_types: FrozenSet[str]
    extensions: FrozenSet[str] = frozenset()
    label: str = "file"


CSV_UPLOAD = UploadPolicy(
    max_bytes=5 * MB,
    max_files=1,
    content_types=frozenset({"text/csv", "application/csv", "application/vnd.ms-excel"}),
    extensions=frozenset({".csv"}),
    label="CSV file",
)

IMAGE_UPLOAD = UploadPolicy(
    max_bytes=10 * MB,
    max_files=10,
    content_types=frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"}),
    label="image",
)


@dataclass
class BufferedUpload:
    filename: str
    content_type: str
    content: bytes


def _is_allowed_type(upload: UploadFile, policy: UploadPolicy) -> bool:
    if upload.content_type in policy.content_types:
        return True
    name = (upload.filename or "").lower()
    return any(name.endswith(ext) for ext in policy.extensions)


async def read_uploads(uploads: Optional[List[UploadFile]], policy: UploadPolicy) -> List[BufferedUpload]:
    """Buffer uploads in memory, enforcing count, size and type limits."""
    uploads = [u for u in (uploads or []) if u is not None and u.filename]
    if len(uploads) > policy.max_files:
        raise ValidationError(f"Too many files. Maximum {policy.max_files} {policy.label}(s) allowed", "files")

    buffered = []
    for upload in uploads:
        if not _is_allowed_type(upload, policy):
            raise ValidationError(f"Invalid file type for {policy.label}: {upload.content_type}", "files")
        # read one byte past the ceiling to detect oversize files without buffering more
        content = await upload.read(policy.max_bytes + 1)
        if len(content) > policy.max_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {policy.max_bytes // MB}MB per {policy.label}", "files"
            )
        buffered.append(BufferedUpload(
            filename=upload.filename,
            content_type=upload.content_type or "application/octet-stream",
            content=content,
        ))
    return buffered
