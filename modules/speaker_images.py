"""
Speaker Images - Resolve talk image references to local files, downloading remote ones once
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
import httpx
from loguru import logger

from config import settings
from utils.exceptions import FetchError
from utils.image_utils import is_url

CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def image_extension(content_type: Optional[str], url: str) -> str:
    """
    Pick a file extension for a downloaded image

    Content-Type wins; otherwise the URL path suffix (query ignored);
    otherwise ".jpg".
    """
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        if mime in CONTENT_TYPE_EXTENSIONS:
            return CONTENT_TYPE_EXTENSIONS[mime]

    suffix = Path(urlparse(url).path).suffix.lower()
    if suffix in settings.SPEAKER_IMAGE_EXTENSIONS:
        return suffix

    return ".jpg"


class SpeakerImageCache:
    """
    Local cache of speaker portraits, named {event_id}-{talk_no}{ext}
    """

    def __init__(self, cache_dir: Path = None, transport: httpx.BaseTransport = None):
        """
        Initialize SpeakerImageCache

        Args:
            cache_dir: Cache directory (default: assets/speaker-images)
            transport: Optional httpx transport (used by tests)
        """
        self.cache_dir = Path(cache_dir or settings.SPEAKER_IMAGES_DIR)
        self.transport = transport

    def cached_path(self, event_id, talk_no: int) -> Optional[Path]:
        """Find an already downloaded image for this talk"""
        base = f"{event_id}-{talk_no}"
        for ext in settings.SPEAKER_IMAGE_EXTENSIONS:
            candidate = self.cache_dir / f"{base}{ext}"
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, reference: str, event_id, talk_no: int) -> str:
        """
        Resolve a talk image reference to something load_image can read

        Args:
            reference: Local path (a leading "/" is site-relative) or http(s) URL
            event_id: Event id
            talk_no: 1-based talk number

        Returns:
            Local file path
        """
        if not is_url(reference):
            path = Path(reference)
            if reference.startswith("/") and not path.exists():
                return reference.lstrip("/")
            return reference

        cached = self.cached_path(event_id, talk_no)
        if cached is not None:
            logger.debug(f"Speaker image cache hit: {cached}")
            return str(cached)

        return str(self.download(reference, f"{event_id}-{talk_no}"))

    def download(self, url: str, base_name: str) -> Path:
        """
        Download an image into the cache

        Args:
            url: Image URL
            base_name: File name without extension

        Returns:
            Path of the stored file

        Raises:
            FetchError: On transport errors, non-200 responses or write failures
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        target = None

        try:
            with httpx.Client(timeout=settings.HTTP_TIMEOUT, follow_redirects=True, transport=self.transport) as client:
                with client.stream("GET", url) as response:
                    if response.status_code != 200:
                        raise FetchError(url, f"HTTP {response.status_code}")

                    ext = image_extension(response.headers.get("content-type"), url)
                    target = self.cache_dir / f"{base_name}{ext}"

                    with open(target, "wb") as f:
                        for chunk in response.iter_bytes():
                            f.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            if target is not None:
                target.unlink(missing_ok=True)
            raise FetchError(url, f"download failed ({e})") from e

        logger.info(f"Downloaded speaker image: {url} -> {target}")

        return target
