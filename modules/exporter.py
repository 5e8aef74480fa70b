"""
Exporter Module - Decide where posters go and keep track of what was produced
"""

import json
from pathlib import Path
from typing import List, Optional, Union
from loguru import logger

from config import settings


class Exporter:
    """
    Output path policy and artifact listing for rendered posters
    """

    def __init__(self, output_dir: Path = None):
        """
        Initialize Exporter

        Args:
            output_dir: Output directory (default: artifacts/)
        """
        self.output_dir = Path(output_dir or settings.ARTIFACTS_DIR)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Exporter initialized with output dir: {self.output_dir}")

    def generate_filename(self, event_id: Union[int, str], width: Optional[int] = None) -> str:
        """
        Generate filename following pattern: {id}.jpg or {id}-{width}.jpg

        Args:
            event_id: Event id
            width: Requested output width, if any

        Returns:
            Filename string
        """
        if width:
            return f"{event_id}-{width}.{settings.OUTPUT_FORMAT}"
        return f"{event_id}.{settings.OUTPUT_FORMAT}"

    def output_path(
        self,
        event_id: Union[int, str],
        width: Optional[int] = None,
        explicit: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Resolve the output path for one poster

        A bare file name (no directory part, not starting with ".") is put
        in the output directory; any other explicit path is used verbatim.

        Args:
            event_id: Event id
            width: Requested output width, if any
            explicit: Output path given by the caller

        Returns:
            Output file path
        """
        if explicit:
            explicit = str(explicit)
            if "/" not in explicit and not explicit.startswith("."):
                return self.output_dir / explicit
            return Path(explicit)

        return self.output_dir / self.generate_filename(event_id, width)

    def save_metadata(self, image_path: Path, metadata: dict) -> Optional[Path]:
        """
        Save metadata JSON alongside a poster

        Args:
            image_path: Path to poster
            metadata: Metadata dictionary

        Returns:
            Path to the metadata file, or None if it could not be written
        """
        metadata_path = Path(image_path).with_suffix(".json")

        try:
            with open(metadata_path, "w", encoding="utf-8") as f:
                json.dump(metadata, f, ensure_ascii=False, indent=2, default=str)

            logger.debug(f"Saved metadata: {metadata_path}")

        except OSError as e:
            logger.error(f"Failed to save metadata: {e}")
            return None

        return metadata_path

    def list_images(self) -> List[Path]:
        """
        List all posters in output directory

        Returns:
            List of poster paths, newest first
        """
        pattern = f"*.{settings.OUTPUT_FORMAT}"
        images = sorted(self.output_dir.glob(pattern), key=lambda p: p.stat().st_mtime, reverse=True)

        logger.info(f"Found {len(images)} posters in {self.output_dir}")

        return images

    def find_image(self, filename: str) -> Optional[Path]:
        """
        Look up a poster by file name inside the output directory

        Args:
            filename: Bare file name

        Returns:
            Path, or None if there is no such poster
        """
        candidate = self.output_dir / Path(filename).name
        if candidate.is_file():
            return candidate
        return None
