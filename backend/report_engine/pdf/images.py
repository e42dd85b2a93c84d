"""
Image fetching and decoding for PDF embedding.

Remote objects are fetched with httpx (concurrently per block, bounded by a
semaphore), decoded with Pillow, and handed to reportlab as ImageReaders.
A failure for one image becomes an ImageEmbedError in its slot; callers draw
a placeholder there and carry on.
"""

import asyncio
import base64
import binascii
import io
import logging
import os
from typing import List, Optional, Sequence, Tuple, Union

import httpx
from PIL import Image
from reportlab.lib.utils import ImageReader

from ..errors import ImageEmbedError

logger = logging.getLogger(__name__)

REPORT_IMAGE_TIMEOUT = float(os.getenv("REPORT_IMAGE_TIMEOUT", "15"))
REPORT_IMAGE_CONCURRENCY = int(os.getenv("REPORT_IMAGE_CONCURRENCY", "6"))

PX_TO_MM = 0.264583

FetchResult = Union[Image.Image, ImageEmbedError]


def decode_image(data: bytes) -> Image.Image:
    """Raw bytes -> RGB raster. Transparency is flattened onto white."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageEmbedError(f"Could not decode image: {e}") from e

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def decode_data_url(url: str) -> bytes:
    """data:image/png;base64,... -> bytes"""
    try:
        header, payload = url.split(",", 1)
    except ValueError as e:
        raise ImageEmbedError("Malformed data URL") from e
    if ";base64" not in header:
        raise ImageEmbedError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImageEmbedError(f"Bad base64 payload: {e}") from e


def fit_within(width_px: float, height_px: float, max_width: float, max_height: float) -> Tuple[float, float]:
    """
    Pixel size -> mm size fitting max_width x max_height, aspect ratio kept.
    Images are only scaled down, never up.
    """
    width = width_px * PX_TO_MM
    height = height_px * PX_TO_MM

    if width > max_width:
        height = (max_width / width) * height
        width = max_width

    if height > max_height:
        width = (max_height / height) * width
        height = max_height

    return width, height


def to_reader(image: Image.Image) -> ImageReader:
    return ImageReader(image)


class ImageFetcher:
    """
    Fetches and decodes images for one document.

    An httpx.AsyncClient can be injected (tests use one with MockTransport);
    otherwise a client is opened per fetch_all() call.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REPORT_IMAGE_TIMEOUT,
        concurrency: int = REPORT_IMAGE_CONCURRENCY,
    ):
        self.client = client
        self.timeout = timeout
        self.concurrency = max(1, concurrency)

    async def fetch(self, client: httpx.AsyncClient, url: Optional[str]) -> Image.Image:
        if not url:
            raise ImageEmbedError("No image URL")

        if url.startswith("data:"):
            return decode_image(decode_data_url(url))

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageEmbedError(f"Fetch failed for {url}: {e}") from e

        return decode_image(response.content)

    async def fetch_all(self, urls: Sequence[Optional[str]]) -> List[FetchResult]:
        """Fetch every url concurrently. Result order matches urls."""
        if not urls:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch_one(client, url):
            async with semaphore:
                return await self.fetch(client, url)

        if self.client is not None:
            results = await asyncio.gather(*(fetch_one(self.client, u) for u in urls), return_exceptions=True)
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                results = await asyncio.gather(*(fetch_one(client, u) for u in urls), return_exceptions=True)

        output = []
        for url, result in zip(urls, results):
            if isinstance(result, Image.Image):
                output.append(result)
                continue
            if isinstance(result, asyncio.CancelledError):
                raise result
            if not isinstance(result, ImageEmbedError):
                result = ImageEmbedError(f"Unexpected error fetching {url}: {result!r}")
            logger.warning(f"Image embed failed: {result}")
            output.append(result)

        logger.debug(f"Fetched {len(urls)} image(s), {sum(isinstance(r, Image.Image) for r in output)} ok")
        return output
