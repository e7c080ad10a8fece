from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping, Optional, Union

from drivers.driver_base_drv import FileStat


def parse_modified(value: Union[datetime, str, None]) -> datetime:
    """
    LastModified -> aware datetime (UTC if backend sent a naive one).
    botocore already parses it; raw HTTP dates and ISO strings are accepted too.
    """
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)

    if isinstance(value, str):
        try:
            value = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def clean_etag(etag: Optional[str]) -> Optional[str]:
    if not etag:
        return None
    return etag.strip('"')


def to_file_stat(rel_path: str, head: Mapping[str, Any]) -> FileStat:
    """HeadObject response -> FileStat."""
    size = int(head.get("ContentLength") or 0)
    if size < 0:
        raise ValueError(f"Negative ContentLength for {rel_path}: {size}")

    return FileStat(
        rel_path=rel_path,
        size=size,
        modified=parse_modified(head.get("LastModified")),
        etag=clean_etag(head.get("ETag")),
        content_type=head.get("ContentType"),
    )
