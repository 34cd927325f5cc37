"""Image scaling for album artwork thumbnails."""

from __future__ import annotations

import concurrent.futures
import io
import logging
import os
import threading
from typing import Any, BinaryIO, Union

from PIL import Image

log = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, BinaryIO]


class ScalerCancelledError(RuntimeError):
    """Raised when a cancelled scaler is asked to do work."""

    def __init__(self, message: str = "scale operation on cancelled Scaler") -> None:
        super().__init__(message)


def _read_source(img: ImageSource) -> bytes:
    if isinstance(img, (bytes, bytearray)):
        return bytes(img)
    return img.read()


def _scale_image(img: ImageSource, to_width: int) -> bytes:
    """Resize ``img`` to ``to_width`` pixels wide, keeping its aspect ratio."""
    try:
        source = Image.open(io.BytesIO(_read_source(img)))
        source.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as err:
        raise ValueError(f"error decoding image: {err}") from err

    width, height = source.size
    to_height = to_width
    if width != height:
        to_height = int((height / width) * to_width)

    try:
        resized = source.convert("RGBA").resize(
            (to_width, to_height), Image.Resampling.BICUBIC
        )
        # Transparent parts end up black, as when drawing over an empty canvas.
        canvas = Image.new("RGB", resized.size, (0, 0, 0))
        canvas.paste(resized, mask=resized.getchannel("A"))
        out = io.BytesIO()
        canvas.save(out, format="JPEG")
    except (OSError, ValueError) as err:
        raise ValueError(f"encoding image: {err}") from err

    return out.getvalue()


class Scaler:
    """Scales images to JPEG thumbnails using a pool of worker threads."""

    def __init__(self, workers: int | None = None) -> None:
        count = workers if workers else (os.cpu_count() or 1)
        self._lock = threading.Lock()
        self._stopped = False
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=count, thread_name_prefix="scaler"
        )

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._stopped

    def scale(
        self, img: ImageSource, to_width: int, timeout: float | None = None
    ) -> bytes:
        """Convert ``img`` to a JPEG ``to_width`` pixels wide, keeping its aspect ratio."""
        with self._lock:
            if self._stopped:
                raise ScalerCancelledError()
            future = self._executor.submit(_scale_image, img, to_width)

        try:
            return future.result(timeout=timeout)
        except concurrent.futures.CancelledError as err:
            raise ScalerCancelledError() from err
        except concurrent.futures.TimeoutError as err:
            future.cancel()
            raise TimeoutError("timed out waiting for scale operation") from err

    def cancel(self) -> None:
        """Stop the scaler. No further scaling is possible afterwards."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "Scaler":
        return self

    def __exit__(self, *args: Any) -> None:
        self.cancel()