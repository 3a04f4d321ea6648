"""Pydantic models for the watermark pipeline.

``LogoPlacement`` is the value object passed to the compositor. It clamps
scale and opacity into their allowed ranges on construction and maps any
unknown position to ``bottom-right``, so downstream code can use the values
without further checks.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

MIN_SCALE_PERCENT = 5.0
MAX_SCALE_PERCENT = 50.0
MIN_OPACITY_PERCENT = 10.0
MAX_OPACITY_PERCENT = 100.0


class LogoPosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CENTER = "center"


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(low, min(high, number))


class LogoPlacement(BaseModel):
    """Where and how strongly the logo is drawn.

    Attributes:
        position: Anchor of the logo on the base image.
        scale_percent: Logo width as a percentage of the base image width.
        opacity_percent: Uniform blend factor applied to the logo, in percent.
    """

    position: LogoPosition = LogoPosition.BOTTOM_RIGHT
    scale_percent: float = 15.0
    opacity_percent: float = 90.0

    @field_validator("position", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> LogoPosition:
        if isinstance(value, LogoPosition):
            return value
        try:
            return LogoPosition(str(value).strip().lower())
        except ValueError:
            return LogoPosition.BOTTOM_RIGHT

    @field_validator("scale_percent", mode="before")
    @classmethod
    def _clamp_scale(cls, value: Any) -> float:
        return _clamp(value, MIN_SCALE_PERCENT, MAX_SCALE_PERCENT, 15.0)

    @field_validator("opacity_percent", mode="before")
    @classmethod
    def _clamp_opacity(cls, value: Any) -> float:
        return _clamp(value, MIN_OPACITY_PERCENT, MAX_OPACITY_PERCENT, 90.0)

    @property
    def blend_factor(self) -> float:
        return self.opacity_percent / 100.0
