"""Pydantic models for configuration validation."""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from card_forge.character_cards.models import SpecVersion


class PlaceholderConfig(BaseModel):
    """Generated artwork for cards exported without an image."""

    width: int = Field(default=400, gt=0, le=4096)
    height: int = Field(default=600, gt=0, le=4096)


class ExportConfig(BaseModel):
    """Card export defaults."""

    default_version: SpecVersion = SpecVersion.V2
    json_indent: Optional[int] = Field(default=2, ge=0, le=8)


class AppConfig(BaseModel):
    """Top-level configuration."""
    model_config = ConfigDict(extra='ignore')

    debug: bool = False
    log_file: Optional[Path] = None
    export: ExportConfig = Field(default_factory=ExportConfig)
    placeholder: PlaceholderConfig = Field(default_factory=PlaceholderConfig)
