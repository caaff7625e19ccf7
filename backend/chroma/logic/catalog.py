"""
Color catalog: the static pool of prompts rounds are drawn from.

The catalog is a JSON array of ColorPrompt objects, loaded and validated once
at startup. Each room draws its own sequence without replacement.
"""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import TypeAdapter, ValidationError

from chroma.logic.exceptions import CatalogError
from chroma.logic.types import ColorPrompt

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = structlog.get_logger()

_catalog_adapter: TypeAdapter[list[ColorPrompt]] = TypeAdapter(list[ColorPrompt])

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "colors.json"


def load_catalog(path: Path | str | None = None) -> tuple[ColorPrompt, ...]:
    """Load and validate the catalog. Uses the bundled colors.json when path is None."""
    source = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    try:
        raw = source.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read color catalog: {e}") from e

    try:
        prompts = _catalog_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise CatalogError(f"Invalid color catalog: {e}") from e

    names = [p.name for p in prompts]
    if len(set(names)) != len(names):
        raise CatalogError("Color catalog contains duplicate names")

    logger.info("color catalog loaded", colors=len(prompts), source=str(source))
    return tuple(prompts)


def ensure_catalog_size(catalog: Sequence[ColorPrompt], rounds: int) -> None:
    """Raise CatalogError when the catalog cannot fill `rounds` distinct rounds."""
    if rounds < 1:
        raise CatalogError(f"A game needs at least one round, got {rounds}")
    if len(catalog) < rounds:
        raise CatalogError(f"Color catalog has {len(catalog)} entries, need at least {rounds}")


def draw_color_sequence(
    catalog: Sequence[ColorPrompt],
    rounds: int,
    rng: random.Random,
) -> list[ColorPrompt]:
    """Pick `rounds` distinct prompts in random order."""
    ensure_catalog_size(catalog, rounds)
    # sample() both selects without replacement and shuffles the selection
    return rng.sample(list(catalog), rounds)
