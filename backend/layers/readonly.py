from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from layers.loaders import load_geojson_polygons
from layers.types import ReadOnlyDataset
from settings import read_only_config_path


class ReadOnlyConfig(BaseModel):
    """
    How the read-only dataset is labelled and drawn.

    Styling is free-form and passed through to the map side untouched.
    """

    id: str = "custom-read-only"
    label: str = "Custom Read Only"
    style: dict[str, Any] = Field(default_factory=dict)
    tooltipFields: list[str] = Field(default_factory=list)


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid read-only config root: {path}")
    return data


@lru_cache(maxsize=4)
def _config_at(path: str) -> ReadOnlyConfig:
    p = Path(path)
    if not p.exists():
        return ReadOnlyConfig()
    return ReadOnlyConfig.model_validate(_load_yaml(p))


def get_read_only_config() -> ReadOnlyConfig:
    return _config_at(str(read_only_config_path()))


def build_read_only_dataset(
    data: dict[str, Any], cfg: ReadOnlyConfig | None = None
) -> ReadOnlyDataset:
    cfg = cfg or get_read_only_config()
    return ReadOnlyDataset(
        id=cfg.id,
        label=cfg.label,
        features=tuple(load_geojson_polygons(data)),
        config={"style": dict(cfg.style), "tooltipFields": list(cfg.tooltipFields)},
    )
