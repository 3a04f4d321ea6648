"""Batch watermarking of uploaded images.

``run_batch`` applies the compositor to each uploaded image in order and
returns the encoded results. The logo is decoded once per batch; a bad base
image is recorded as a failure and skipped so the rest of the batch still
completes. ``WatermarkPreviewController`` keeps the latest batch for the
API and drops results from batches that were superseded while running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from errors import DecodeError
from watermark import image_ops
from watermark.models import LogoPlacement

logger = logging.getLogger(__name__)

MAX_IMAGE_UPLOADS = 50
OUTPUT_FORMAT = "JPEG"


@dataclass(frozen=True)
class WatermarkedImage:
    index: int
    data: bytes
    format: str = OUTPUT_FORMAT
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class BatchFailure:
    index: int
    reason: str


@dataclass
class WatermarkBatch:
    images: List[WatermarkedImage] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)

    def __iter__(self) -> Iterator[WatermarkedImage]:
        return iter(self.images)

    def __len__(self) -> int:
        return len(self.images)

    def __getitem__(self, position: int) -> WatermarkedImage:
        return self.images[position]


def _watermark_one(
    index: int,
    data: bytes,
    logo,
    placement: LogoPlacement,
) -> WatermarkedImage:
    base = image_ops.decode_image(data)
    result = None
    try:
        result = image_ops.composite(base, logo, placement)
        encoded = image_ops.encode_image(result, OUTPUT_FORMAT)
        return WatermarkedImage(
            index=index,
            data=encoded,
            format=OUTPUT_FORMAT,
            width=result.width,
            height=result.height,
        )
    finally:
        if result is not None:
            result.close()
        base.close()


def run_batch(
    images: Sequence[bytes],
    logo: Optional[bytes],
    placement: LogoPlacement,
) -> WatermarkBatch:
    """Watermark up to ``MAX_IMAGE_UPLOADS`` images with the same logo.

    Args:
        images: Encoded base images in display order.
        logo: Encoded logo image, or ``None`` when none was uploaded.
        placement: Position, scale and opacity settings.

    Returns:
        A ``WatermarkBatch`` whose images follow the input order. An empty
        batch is returned when there is no logo or no image.

    Raises:
        DecodeError: If the logo cannot be decoded.
    """
    if not logo or not images:
        return WatermarkBatch()

    if len(images) > MAX_IMAGE_UPLOADS:
        logger.debug("Dropping %d images over the %d image limit", len(images) - MAX_IMAGE_UPLOADS, MAX_IMAGE_UPLOADS)
    selected = list(images)[:MAX_IMAGE_UPLOADS]

    logo_img = image_ops.decode_image(logo)
    batch = WatermarkBatch()
    try:
        for index, data in enumerate(selected):
            try:
                batch.images.append(_watermark_one(index, data, logo_img, placement))
            except DecodeError as exc:
                logger.warning("Skipping image %d: %s", index + 1, exc)
                batch.failures.append(BatchFailure(index=index, reason=str(exc)))
    finally:
        logo_img.close()
    return batch


class WatermarkPreviewController:
    """Holds the current preview and recomputes it whenever inputs change.

    Every call to :meth:`refresh` starts a new generation. A batch that
    finishes after a newer refresh was started is discarded, so the stored
    preview always belongs to the most recent inputs.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._batch = WatermarkBatch()

    @property
    def batch(self) -> WatermarkBatch:
        return self._batch

    @property
    def generation(self) -> int:
        return self._generation

    async def refresh(
        self,
        images: Sequence[bytes],
        logo: Optional[bytes],
        placement: LogoPlacement,
    ) -> Optional[WatermarkBatch]:
        """Recompute the preview from scratch.

        Returns:
            The new batch, or ``None`` if a newer refresh superseded this one.

        Raises:
            DecodeError: If the logo cannot be decoded. The previous preview
                is cleared in that case.
        """
        self._generation += 1
        generation = self._generation
        try:
            batch = await run_in_threadpool(run_batch, images, logo, placement)
        except DecodeError:
            if generation == self._generation:
                self._batch = WatermarkBatch()
            raise
        if generation != self._generation:
            logger.info("Discarding superseded watermark batch %d", generation)
            return None
        self._batch = batch
        return batch

    def clear(self) -> None:
        self._generation += 1
        self._batch = WatermarkBatch()
