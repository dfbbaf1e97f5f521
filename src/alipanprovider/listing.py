"""Paginated listing aggregator."""

from __future__ import annotations

import logging
from typing import Optional

from alipanprovider.errors import ListingTruncatedError
from alipanprovider.models import RemoteEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 1000


def list_all(
    client,
    authorization: str,
    drive_id: str,
    folder_id: Optional[str],
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[RemoteEntry]:
    """
    Drain a paginated listing into one list, in page order.

    Raises:
        ListingTruncatedError: if max_pages pages were fetched and the remote
            API still returned a non-empty marker.
    """
    entries: list[RemoteEntry] = []
    marker: Optional[str] = None

    for _ in range(max_pages):
        page = client.list_file(authorization, drive_id, folder_id, marker)
        entries.extend(page.items)

        marker = page.next_marker
        if not marker:
            return entries

    logger.warning(
        "Listing of %s/%s did not terminate after %d pages",
        drive_id,
        folder_id,
        max_pages,
    )
    raise ListingTruncatedError(
        "Listing did not terminate",
        details={
            "drive_id": drive_id,
            "folder_id": folder_id,
            "max_pages": max_pages,
            "items": len(entries),
        },
    )
