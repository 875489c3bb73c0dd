from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator


class LibrarySettings(BaseModel):
    path: Optional[Path] = None
    collection: Optional[str] = None
    batch_size: int = 200

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()

    @field_validator("batch_size")
    @classmethod
    def _positive_batch(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("batch_size must be positive")
        return value


class StoreSettings(BaseModel):
    path: Path = Path("./cache/name-normalizer.sqlite3")
    namespace: str = "name_normalizer"

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()


class MatchingSettings(BaseModel):
    confidence_threshold: float = 0.8
    max_suggestions: int = 5
    evidence_cap: int = 25
    progress_interval: int = 50
    full_scan_limit: int = 5000

    @field_validator("confidence_threshold")
    @classmethod
    def _unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")
        return value

    @field_validator("max_suggestions", "evidence_cap", "progress_interval", "full_scan_limit")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class LearningSettings(BaseModel):
    enabled: bool = True
    auto_apply_learned: bool = True


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    store: StoreSettings = StoreSettings()
    matching: MatchingSettings = MatchingSettings()
    learning: LearningSettings = LearningSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError("Could not find config.yaml - pass --config explicitly.")
