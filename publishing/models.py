"""Pydantic models for destination pages and generated posts."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


class Destination(BaseModel):
    """A page a post is addressed to.

    Attributes:
        url: Page address, expected to be an absolute URL.
        contact_info: Text appended to the caption for this page.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str = ""
    contact_info: str = Field(default="", alias="contactInfo")

    def is_blank(self) -> bool:
        return not self.url.strip() and not self.contact_info.strip()

    def is_valid(self) -> bool:
        """Whether this destination may be persisted in the store."""
        return bool(_ABSOLUTE_URL.match(self.url.strip()))


class GeneratedPost(BaseModel):
    """A finished caption for one destination."""

    url: str
    label: str
    final_caption: str
