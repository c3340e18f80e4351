"""In-memory gallery of saved canvas snapshots."""

from __future__ import annotations

import base64
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger("air_canvas.gallery")


@dataclass(frozen=True)
class SavedImage:
    """A PNG snapshot of the canvas."""
    id: str
    data: bytes
    timestamp: float

    @property
    def filename(self) -> str:
        return f"air-canvas-{self.id}.png"

    def to_data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.data).decode("ascii")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "size": len(self.data),
            "filename": self.filename,
        }


class Gallery:
    """Newest-first collection of saved images.

    Usage:
        gallery = Gallery()
        image = gallery.save(engine.export_raster())
        gallery.download(image.id, "exports/")
    """

    def __init__(self, max_images: int = 0):
        self.max_images = max_images
        self._images: list[SavedImage] = []

    def save(self, png: bytes, timestamp: Optional[float] = None) -> SavedImage:
        """Store a snapshot. Evicts the oldest image when over ``max_images``."""
        image = SavedImage(
            id=uuid.uuid4().hex[:12],
            data=bytes(png),
            timestamp=timestamp if timestamp is not None else time.time(),
        )
        self._images.insert(0, image)

        if self.max_images > 0 and len(self._images) > self.max_images:
            evicted = self._images[self.max_images:]
            self._images = self._images[:self.max_images]
            logger.info("Gallery full, evicted %d image(s)", len(evicted))

        logger.info("Saved image %s (%.1f KB)", image.id, len(image.data) / 1024)
        return image

    def get(self, image_id: str) -> SavedImage:
        for image in self._images:
            if image.id == image_id:
                return image
        raise KeyError(image_id)

    def delete(self, image_id: str) -> SavedImage:
        image = self.get(image_id)
        self._images.remove(image)
        logger.info("Deleted image %s", image_id)
        return image

    def download(self, image_id: str, directory: str | Path) -> Path:
        """Write an image to ``directory`` as air-canvas-<id>.png."""
        image = self.get(image_id)
        path = Path(directory) / image.filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image.data)
        return path

    def to_data_url(self, image_id: str) -> str:
        return self.get(image_id).to_data_url()

    @property
    def images(self) -> list[SavedImage]:
        return list(self._images)

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self):
        return iter(list(self._images))

    def __contains__(self, image_id: str) -> bool:
        return any(image.id == image_id for image in self._images)
