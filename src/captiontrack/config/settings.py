from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for captiontrack.

    All settings are loaded from environment variables with the
    `CAPTIONTRACK_` prefix and optional `.env` support.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPTIONTRACK_",
        env_file=".env",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Track selection
    # ------------------------------------------------------------------
    ui_language: str = Field(
        default="en",
        description="Preferred UI language; tracks in this language rank first.",
    )
    request_language: str = Field(
        default="en",
        description="Spoken language of the video as requested from the translation service.",
    )

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------
    candidates_timeout_s: float = Field(
        default=5.0,
        description="Deadline for each candidate round-trip (service and host).",
    )
    fetch_timeout_s: float = Field(
        default=5.0,
        description="HTTP timeout for downloading a single track.",
    )

    # ------------------------------------------------------------------
    # Normalization / playback
    # ------------------------------------------------------------------
    markup_sources: list[str] = Field(
        default_factory=lambda: ["vk"],
        description="Track sources whose JSON text embeds <tags> to strip.",
    )
    max_line_length: int = Field(
        default=300,
        description="Characters shown at once before a long line is chunked.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    def to_public_dict(self) -> dict:
        """
        Return a dictionary of settings suitable for logging or CLI display.
        """
        return {
            "ui_language": self.ui_language,
            "request_language": self.request_language,
            "candidates_timeout_s": self.candidates_timeout_s,
            "fetch_timeout_s": self.fetch_timeout_s,
            "markup_sources": list(self.markup_sources),
            "max_line_length": self.max_line_length,
            "log_level": self.log_level,
        }
