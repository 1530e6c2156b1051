"""
Runtime configuration for the restaurant directory.

Values come from the environment (optionally a ``.env`` file at the project
root) and fall back to the defaults below.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_DEFAULT_DATA = Path(__file__).resolve().parent / "data" / "restaurants.csv"


def _default_text_weights() -> dict[str, float]:
    return {
        "name": 10.0,
        "cuisine_type": 8.0,
        "category": 6.0,
        "tags": 4.0,
        "description": 2.0,
    }


@dataclass(frozen=True)
class DirectoryConfig:
    data_path: Path = Path(os.getenv("RESTAURANTS_CSV", str(_DEFAULT_DATA)))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    default_page: int = 1
    default_page_size: int = 10
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
    default_radius_meters: float = float(os.getenv("DEFAULT_RADIUS_METERS", "5000"))
    autocomplete_min_length: int = 2
    autocomplete_default_limit: int = 5
    autocomplete_max_limit: int = 20
    metrics_window: int = 1000
    text_weights: dict[str, float] = field(default_factory=_default_text_weights)


DEFAULT_CONFIG = DirectoryConfig()


def configure_logging(config: DirectoryConfig = DEFAULT_CONFIG) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
