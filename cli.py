"""
Event Poster Generator - Command line interface
"""

import argparse
import sys
from typing import List, Optional
from loguru import logger

from config import settings
from main import PosterPipeline
from modules.exporter import Exporter
from modules.template import list_templates
from utils.exceptions import PosterError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render event posters from a template and the community event feed",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--background", default="", help="Background image (the template's own background wins)")
    parser.add_argument("--overlays", default="", help="Comma-separated overlay images, bottom to top")
    parser.add_argument("--output", default="", help="Output file; a bare file name goes into the output directory")
    parser.add_argument("--template", default="", help="Template JSON")
    parser.add_argument("--id", dest="event_id", default="", help="Event id; all events are rendered when omitted")
    parser.add_argument("--width", type=int, default=0, help="Output width in pixels, aspect ratio kept (0 = original)")
    parser.add_argument("--file", dest="events_file", default="", help="Local events.yml instead of the remote feed")
    parser.add_argument("--output-dir", default=str(settings.ARTIFACTS_DIR), help="Output directory")
    return parser


def split_overlays(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.width < 0:
        logger.error(f"Width must be positive, got {args.width}")
        return 1

    templates = list_templates()
    if templates:
        logger.info(f"Available templates: {[t.name for t in templates]}")

    pipeline = PosterPipeline(exporter=Exporter(args.output_dir))
    overlays = split_overlays(args.overlays)

    try:
        if args.event_id:
            result = pipeline.generate(
                event_id=args.event_id,
                template_path=args.template or None,
                background_path=args.background or None,
                overlay_paths=overlays,
                width=args.width or None,
                output_path=args.output or None,
                events_file=args.events_file or None,
            )
            print(f"Image generated successfully for event {result.event_id}: {result.output_path}")
        else:
            batch = pipeline.generate_all(
                template_path=args.template or None,
                background_path=args.background or None,
                overlay_paths=overlays,
                width=args.width or None,
                events_file=args.events_file or None,
            )
            print(f"Successfully generated {batch.succeeded} out of {batch.total} images")
    except PosterError as e:
        logger.error(e.message)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
