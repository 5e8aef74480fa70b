"""
Event Poster Generator - Rendering pipeline and FastAPI application
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from typing import Optional, List, Sequence, Tuple, Union
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from loguru import logger
import sys
import time

from config import settings
from modules import (
    EventFeed,
    Exporter,
    FontMetrics,
    LayoutEngine,
    Renderer,
    SpeakerImageCache,
)
from modules.feed import Event, EventData, find_event, resolve_event_data
from modules.layout import Diagnostic
from modules.template import Template, apply_overrides, list_templates, load_template
from utils.exceptions import (
    ConfigError,
    EventNotFoundError,
    FeedFetchError,
    FeedParseError,
    PosterError,
    TemplateParseError,
)
from utils.image_utils import Canvas, resize_to_width

# Configure logging
settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
logger.remove()
logger.add(sys.stderr, level=settings.LOG_LEVEL)
logger.add(settings.LOG_DIR / "app.log", rotation="50 MB", retention="10 days", level="DEBUG")


@dataclass
class RenderResult:
    """Outcome of rendering one event"""
    event_id: str
    output_path: Path
    width: int
    height: int
    diagnostics: List[Diagnostic] = field(default_factory=list)
    processing_seconds: float = 0.0

    def metadata(self) -> dict:
        return {
            "event_id": self.event_id,
            "filename": self.output_path.name,
            "size": {"width": self.width, "height": self.height},
            "diagnostics": [str(d) for d in self.diagnostics],
            "processing_seconds": self.processing_seconds,
            "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }


@dataclass
class BatchResult:
    """Outcome of rendering every event in the feed"""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: List[RenderResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# Pipeline class
class PosterPipeline:
    """
    Complete poster generation pipeline

    Events are rendered strictly one after another, each on its own canvas.
    """

    def __init__(
        self,
        feed: EventFeed = None,
        speaker_images: SpeakerImageCache = None,
        exporter: Exporter = None,
        fonts: FontMetrics = None
    ):
        """Initialize pipeline components"""
        self.fonts = fonts or FontMetrics()
        self.layout_engine = LayoutEngine(self.fonts)
        self.renderer = Renderer()
        self.feed = feed or EventFeed()
        self.speaker_images = speaker_images or SpeakerImageCache()
        self.exporter = exporter or Exporter()

        logger.info("Poster Pipeline initialized")

    def load_template(self, template_path: Optional[Union[str, Path]] = None) -> Template:
        """Load a template, or an empty one (background and overlays only) when none is given"""
        if template_path:
            return load_template(template_path)
        return Template()

    def resolve_background(self, template: Template, background_path: Optional[Union[str, Path]] = None) -> str:
        """
        Pick the background image: the template's wins over the caller's

        Raises:
            ConfigError: If neither names a background
        """
        if template.background.image:
            return template.background.image
        if background_path:
            return str(background_path)
        raise ConfigError(
            "background",
            "no background image specified, use --background or a template with a background image"
        )

    def render(
        self,
        template: Template,
        event_data: EventData,
        background_path: Optional[Union[str, Path]] = None,
        overlay_paths: Sequence[Union[str, Path]] = (),
        width: Optional[int] = None
    ) -> Tuple[Canvas, List[Diagnostic]]:
        """
        Render one poster in memory

        Args:
            template: Template (left untouched; a copy receives the event data)
            event_data: Resolved event data
            background_path: Background used when the template names none
            overlay_paths: Overlays drawn before the template's own overlays
            width: Optional output width (aspect ratio kept)

        Returns:
            (poster canvas, diagnostics)
        """
        template = template.model_copy(deep=True)
        apply_overrides(template, event_data)

        background = self.resolve_background(template, background_path)
        overlays = list(overlay_paths) + list(template.background.overlays)

        canvas = self.renderer.composite(background, overlays)
        height, image_width = canvas.shape[:2]

        diagnostics = self.renderer.place_speakers(
            canvas, template, event_data, resolve=self.speaker_images.resolve
        )

        placements, layout_diagnostics = self.layout_engine.create_layout(template, image_width, height)
        diagnostics.extend(layout_diagnostics)

        canvas, draw_diagnostics = self.renderer.draw_text(canvas, placements)
        diagnostics.extend(draw_diagnostics)

        if width:
            canvas = resize_to_width(canvas, width)

        for diagnostic in diagnostics:
            logger.warning(f"Event {event_data.event_id}: {diagnostic}")

        return canvas, diagnostics

    def _generate_event(
        self,
        event: Event,
        template: Template,
        background_path: Optional[Union[str, Path]],
        overlay_paths: Sequence[Union[str, Path]],
        width: Optional[int],
        output_path: Optional[Union[str, Path]] = None
    ) -> RenderResult:
        start_time = time.time()

        event_data = resolve_event_data(event)
        canvas, diagnostics = self.render(template, event_data, background_path, overlay_paths, width)

        final_path = self.exporter.output_path(event.id, width, output_path)
        self.renderer.save_poster(canvas, final_path)

        height, image_width = canvas.shape[:2]
        result = RenderResult(
            event_id=str(event.id),
            output_path=final_path,
            width=image_width,
            height=height,
            diagnostics=diagnostics,
            processing_seconds=round(time.time() - start_time, 2),
        )

        if settings.SAVE_METADATA:
            self.exporter.save_metadata(final_path, result.metadata())

        logger.success(f"Image generated for event {event.id} ({event.title}): {final_path}")

        return result

    def generate(
        self,
        event_id: Union[int, str],
        template_path: Optional[Union[str, Path]] = None,
        background_path: Optional[Union[str, Path]] = None,
        overlay_paths: Optional[Sequence[Union[str, Path]]] = None,
        width: Optional[int] = None,
        output_path: Optional[Union[str, Path]] = None,
        events_file: Optional[Union[str, Path]] = None
    ) -> RenderResult:
        """
        Render and save the poster for one event

        Args:
            event_id: Event id in the feed
            template_path: Template JSON
            background_path: Background used when the template names none
            overlay_paths: Overlay images
            width: Optional output width
            output_path: Explicit output path
            events_file: Local feed file overriding the remote feed

        Returns:
            RenderResult

        Raises:
            PosterError: Any failure; a single render has no fallback
        """
        logger.info(f"Starting poster generation for event {event_id}")

        template = self.load_template(template_path)
        self.resolve_background(template, background_path)

        events = self.feed.load(events_file)
        event = find_event(events, event_id)

        return self._generate_event(event, template, background_path, overlay_paths or (), width, output_path)

    def generate_all(
        self,
        template_path: Optional[Union[str, Path]] = None,
        background_path: Optional[Union[str, Path]] = None,
        overlay_paths: Optional[Sequence[Union[str, Path]]] = None,
        width: Optional[int] = None,
        events_file: Optional[Union[str, Path]] = None
    ) -> BatchResult:
        """
        Render a poster for every event in the feed

        Template, background and feed problems abort before any event is
        rendered. After that a failing event is logged and skipped.

        Returns:
            BatchResult with success / failure counts
        """
        template = self.load_template(template_path)
        self.resolve_background(template, background_path)

        events = self.feed.load(events_file)
        batch = BatchResult(total=len(events))

        logger.info(f"Generating images for all {len(events)} events...")

        for event in events:
            try:
                result = self._generate_event(event, template, background_path, overlay_paths or (), width)
            except PosterError as e:
                logger.error(f"Error generating image for event {event.id}: {e}")
                batch.failed += 1
                batch.errors.append(f"{event.id}: {e}")
                continue
            except Exception as e:
                logger.exception(f"Unexpected error generating image for event {event.id}: {e}")
                batch.failed += 1
                batch.errors.append(f"{event.id}: {e}")
                continue

            batch.succeeded += 1
            batch.results.append(result)

        logger.info(f"Successfully generated {batch.succeeded} out of {batch.total} images")

        return batch


# Initialize FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description="Event poster generator: templates, event feed and speaker portraits to JPEG"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response Models
class GenerateRequest(BaseModel):
    """Request model for single event generation"""
    event_id: str = Field(..., description="Event id in the feed")
    template: Optional[str] = Field(None, description="Template JSON path")
    background: Optional[str] = Field(None, description="Background image, used when the template has none")
    overlays: List[str] = Field(default_factory=list, description="Overlay image paths, bottom to top")
    width: Optional[int] = Field(None, ge=1, description="Output width in pixels (aspect ratio kept)")
    output: Optional[str] = Field(None, description="Output file name or path")
    events_file: Optional[str] = Field(None, description="Local events.yml overriding the remote feed")


class GenerateResponse(BaseModel):
    """Response model for single event generation"""
    success: bool
    filename: Optional[str] = None
    image_path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    diagnostics: List[str] = []
    error: Optional[str] = None


class BatchGenerateRequest(BaseModel):
    """Request model for generating every event"""
    template: Optional[str] = None
    background: Optional[str] = None
    overlays: List[str] = Field(default_factory=list)
    width: Optional[int] = Field(None, ge=1)
    events_file: Optional[str] = None


class BatchGenerateResponse(BaseModel):
    """Response model for batch generation"""
    success: bool
    total: int = 0
    generated: int = 0
    failed: int = 0
    filenames: List[str] = []
    errors: List[str] = []
    message: Optional[str] = None


class StatusResponse(BaseModel):
    """Status response model"""
    status: str
    message: str


def _raise_for_setup_error(e: PosterError) -> None:
    """Map errors that stop a render before it starts to HTTP errors"""
    if isinstance(e, EventNotFoundError):
        raise HTTPException(status_code=404, detail=e.message)
    if isinstance(e, (TemplateParseError, ConfigError)):
        raise HTTPException(status_code=400, detail=e.message)
    if isinstance(e, (FeedFetchError, FeedParseError)):
        raise HTTPException(status_code=502, detail=e.message)


# Global pipeline instance
pipeline = PosterPipeline()


# API Endpoints
@app.get("/health", response_model=StatusResponse)
async def health():
    """Health check endpoint"""
    return StatusResponse(
        status="healthy",
        message="All systems operational"
    )


@app.get("/templates", response_model=List[str])
async def get_templates():
    """
    List available templates

    Returns:
        Template paths
    """
    return [str(path) for path in list_templates()]


@app.post("/generate", response_model=GenerateResponse)
async def generate_poster(request: GenerateRequest):
    """
    Generate the poster for one event

    Args:
        request: Generation request

    Returns:
        Generation result
    """
    try:
        result = pipeline.generate(
            event_id=request.event_id,
            template_path=request.template,
            background_path=request.background,
            overlay_paths=request.overlays,
            width=request.width,
            output_path=request.output,
            events_file=request.events_file,
        )
    except PosterError as e:
        _raise_for_setup_error(e)
        logger.error(f"Generation failed: {e}")
        return GenerateResponse(success=False, error=e.message)

    return GenerateResponse(
        success=True,
        filename=result.output_path.name,
        image_path=str(result.output_path),
        width=result.width,
        height=result.height,
        diagnostics=[str(d) for d in result.diagnostics],
    )


@app.post("/generate-all", response_model=BatchGenerateResponse)
async def generate_all_posters(request: BatchGenerateRequest):
    """
    Generate posters for every event in the feed

    Args:
        request: Batch request

    Returns:
        Batch result with counts
    """
    try:
        batch = pipeline.generate_all(
            template_path=request.template,
            background_path=request.background,
            overlay_paths=request.overlays,
            width=request.width,
            events_file=request.events_file,
        )
    except PosterError as e:
        _raise_for_setup_error(e)
        logger.error(f"Batch generation failed: {e}")
        return BatchGenerateResponse(success=False, errors=[e.message], message=e.message)

    return BatchGenerateResponse(
        success=batch.failed == 0,
        total=batch.total,
        generated=batch.succeeded,
        failed=batch.failed,
        filenames=[r.output_path.name for r in batch.results],
        errors=batch.errors,
        message=f"Successfully generated {batch.succeeded} out of {batch.total} images",
    )


@app.get("/images", response_model=List[str])
async def list_images():
    """
    List all generated posters

    Returns:
        List of poster filenames
    """
    return [image.name for image in pipeline.exporter.list_images()]


@app.get("/image/{filename}")
async def get_image(filename: str):
    """
    Get poster file

    Args:
        filename: Poster filename

    Returns:
        Image file
    """
    file_path = pipeline.exporter.find_image(filename)

    if file_path is None:
        raise HTTPException(status_code=404, detail="Image not found")

    return FileResponse(
        file_path,
        media_type="image/jpeg",
        filename=file_path.name
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True
    )
