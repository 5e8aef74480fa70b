"""
Configuration settings for Event Poster Generator
"""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Project paths
    PROJECT_ROOT: Path = Path(__file__).parent
    ASSETS_DIR: Path = PROJECT_ROOT / "assets"
    FONTS_DIR: Path = ASSETS_DIR / "fonts"
    TEMPLATES_DIR: Path = ASSETS_DIR / "templates"
    SPEAKER_IMAGES_DIR: Path = ASSETS_DIR / "speaker-images"
    ARTIFACTS_DIR: Path = PROJECT_ROOT / "artifacts"
    LOG_DIR: Path = PROJECT_ROOT / "logs"

    # Event feed
    EVENTS_URL: str = (
        "https://raw.githubusercontent.com/CloudNativeLinz/cloudnativelinz.github.io"
        "/refs/heads/main/_data/events.yml"
    )
    HTTP_TIMEOUT: float = 30.0  # seconds, feed and speaker image downloads

    # Speaker image cache ({event_id}-{talk_no}{ext})
    SPEAKER_IMAGE_EXTENSIONS: list[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]

    # Text layout
    LINE_SPACING: float = 1.1  # 10% extra leading
    NAME_GAP_RATIO: float = 0.5  # gap between speaker title and name, in name font sizes
    TEXT_ANCHOR: str = "la"  # Pillow anchor: left / ascender, y is the top of the line
    DEFAULT_TEXT_COLOR: str = "#FFFFFF"

    # Output settings
    OUTPUT_FORMAT: str = "jpg"
    OUTPUT_QUALITY: int = 95
    SAVE_METADATA: bool = False  # write a JSON sidecar next to each poster

    # Logging
    LOG_LEVEL: str = "INFO"

    # FastAPI settings
    API_TITLE: str = "Event Poster Generator API"
    API_VERSION: str = "1.0.0"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

# Create directories if they don't exist
for directory in [
    settings.ARTIFACTS_DIR,
    settings.SPEAKER_IMAGES_DIR,
]:
    directory.mkdir(parents=True, exist_ok=True)
