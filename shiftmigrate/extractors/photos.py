"""Authenticated profile photo download and normalization."""

import base64
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional, Union

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from .session import LegacySession
from ..errors import LegacyRequestError, PhotoError

logger = logging.getLogger(__name__)

PHOTO_SIZE = 400
JPEG_QUALITY = 85


@dataclass
class EmbeddedImage:
    """A normalized image stored inline rather than as a separate file."""
    mime_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def resolve_photo_url(url: str, base_url: str) -> str:
    """Make a site-relative photo URL absolute against the legacy base URL."""
    if url.startswith("/"):
        return f"{base_url.rstrip('/')}{url}"
    return url


def normalize_image(content: bytes, size: int = PHOTO_SIZE, quality: int = JPEG_QUALITY) -> bytes:
    """Center-crop to a size x size square and re-encode as JPEG."""
    with Image.open(io.BytesIO(content)) as img:
        img = ImageOps.exif_transpose(img)
        if img.mode != "RGB":
            img = img.convert("RGB")
        fitted = ImageOps.fit(
            img,
            (size, size),
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )
        out = io.BytesIO()
        fitted.save(out, format="JPEG", quality=quality)
        return out.getvalue()


class PhotoPipeline:
    """
    Downloads profile photos with the legacy session and embeds them.

    Every failure surfaces as ``PhotoError``; callers treat it as a soft
    warning and carry on without the photo.
    """

    def __init__(
        self,
        session: LegacySession,
        size: int = PHOTO_SIZE,
        quality: int = JPEG_QUALITY,
    ):
        self.session = session
        self.size = size
        self.quality = quality

    def download_and_normalize(self, url: str, owner: str) -> EmbeddedImage:
        """
        Download, resize and re-encode one photo.

        Args:
            url: Absolute or site-relative photo URL
            owner: Label for logs and errors (usually the user's email)

        Returns:
            EmbeddedImage holding JPEG bytes
        """
        full_url = resolve_photo_url(url, self.session.base_url)
        logger.debug(f"Downloading profile photo for {owner}: {full_url}")

        try:
            response = self.session.request("GET", full_url, api=False, headers={"Accept": "image/*"})
        except (LegacyRequestError, requests.RequestException) as e:
            raise PhotoError(owner, str(e)) from e

        content_type = (response.headers or {}).get("content-type") or ""
        if not content_type.startswith("image/"):
            raise PhotoError(owner, f"Invalid content type: {content_type or 'missing'}")

        content = response.content
        if not content:
            raise PhotoError(owner, "Empty response body")

        try:
            normalized = normalize_image(content, self.size, self.quality)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise PhotoError(owner, f"Could not decode image: {e}") from e

        logger.info(f"Normalized photo for {owner} ({len(content)} -> {len(normalized)} bytes)")
        return EmbeddedImage(mime_type="image/jpeg", data=normalized)

    def download_many(
        self,
        photos: Dict[str, str],
        workers: int = 4,
    ) -> Dict[str, Union[EmbeddedImage, PhotoError]]:
        """
        Download several photos with bounded concurrency.

        Args:
            photos: owner -> photo URL
            workers: Maximum concurrent downloads

        Returns:
            owner -> EmbeddedImage, or the PhotoError that stopped it
        """
        results: Dict[str, Union[EmbeddedImage, PhotoError]] = {}
        if not photos:
            return results

        def fetch(owner: str, url: str) -> Optional[Union[EmbeddedImage, PhotoError]]:
            try:
                return self.download_and_normalize(url, owner)
            except PhotoError as e:
                logger.warning(str(e))
                return e

        with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="photo") as pool:
            futures = {owner: pool.submit(fetch, owner, url) for owner, url in photos.items()}
            for owner, future in futures.items():
                results[owner] = future.result()

        return results
