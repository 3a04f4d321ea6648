"""Combine a generated caption with per-page contact details."""

from __future__ import annotations

from typing import Iterable, List
from urllib.parse import urlparse

from publishing.models import Destination, GeneratedPost

CONTACT_DELIMITER = "\n\n---\n\n"
DEFAULT_PAGE_LABEL = "Default Page"
FALLBACK_PAGE_LABEL = "Your Page Name"


def destination_label(url: str) -> str:
    """Return a short display name for a page URL.

    The last non-empty path segment is used for absolute URLs. Anything
    else, including absolute URLs without a path, is returned as is.
    """
    url = url.strip()
    if not url:
        return DEFAULT_PAGE_LABEL
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url
    segments = [part for part in parsed.path.split("/") if part]
    return segments[-1] if segments else url


def final_caption(base_caption: str, contact_info: str) -> str:
    contact = contact_info.strip()
    if contact:
        return f"{base_caption.strip()}{CONTACT_DELIMITER}{contact}"
    return base_caption.strip()


def assemble(base_caption: str, destinations: Iterable[Destination]) -> List[GeneratedPost]:
    """Build one post per destination.

    Destinations with neither a URL nor contact info are ignored. When
    none remain, a single post with a placeholder label is returned so a
    successful caption always yields at least one post.

    Args:
        base_caption: Caption returned by the caption provider.
        destinations: Pages in display order.

    Returns:
        Posts in the same order as the destinations.
    """
    posts = [
        GeneratedPost(
            url=dest.url,
            label=destination_label(dest.url),
            final_caption=final_caption(base_caption, dest.contact_info),
        )
        for dest in destinations
        if not dest.is_blank()
    ]
    if not posts:
        posts.append(
            GeneratedPost(url="", label=FALLBACK_PAGE_LABEL, final_caption=base_caption.strip())
        )
    return posts
