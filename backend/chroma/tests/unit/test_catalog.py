import json
import random

import pytest

from chroma.logic.catalog import draw_color_sequence, ensure_catalog_size, load_catalog
from chroma.logic.exceptions import CatalogError
from chroma.logic.types import ColorPrompt, Rgb


def _prompt(name: str) -> ColorPrompt:
    return ColorPrompt(name=name, description=f"{name} description", rgb=Rgb(r=1, g=2, b=3))


def _write(tmp_path, data) -> str:
    path = tmp_path / "colors.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadCatalog:
    def test_bundled_catalog_covers_default_game(self):
        catalog = load_catalog()

        assert len(catalog) >= 5
        assert len({p.name for p in catalog}) == len(catalog)

    def test_loads_custom_file(self, tmp_path):
        path = _write(tmp_path, [{"name": "Coal", "description": "A lump of coal", "rgb": {"r": 24, "g": 24, "b": 26}}])

        (prompt,) = load_catalog(path)

        assert prompt.name == "Coal"
        assert prompt.rgb == Rgb(r=24, g=24, b=26)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="Cannot read"):
            load_catalog(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "colors.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(CatalogError, match="Invalid color catalog"):
            load_catalog(path)

    def test_channel_out_of_range(self, tmp_path):
        path = _write(tmp_path, [{"name": "Too Red", "description": "x", "rgb": {"r": 256, "g": 0, "b": 0}}])
        with pytest.raises(CatalogError, match="Invalid color catalog"):
            load_catalog(path)

    def test_duplicate_names(self, tmp_path):
        entry = {"name": "Twin", "description": "x", "rgb": {"r": 0, "g": 0, "b": 0}}
        with pytest.raises(CatalogError, match="duplicate"):
            load_catalog(_write(tmp_path, [entry, entry]))


class TestEnsureCatalogSize:
    def test_large_enough(self):
        ensure_catalog_size([_prompt("a"), _prompt("b")], 2)

    def test_too_small(self):
        with pytest.raises(CatalogError, match="need at least 3"):
            ensure_catalog_size([_prompt("a"), _prompt("b")], 3)

    def test_zero_rounds_rejected(self):
        with pytest.raises(CatalogError, match="at least one round"):
            ensure_catalog_size([_prompt("a")], 0)


class TestDrawColorSequence:
    def test_distinct_prompts_from_catalog(self):
        catalog = [_prompt(str(i)) for i in range(10)]

        sequence = draw_color_sequence(catalog, 5, random.Random(1))

        assert len(sequence) == 5
        assert len({p.name for p in sequence}) == 5
        assert all(p in catalog for p in sequence)

    def test_same_seed_same_sequence(self):
        catalog = [_prompt(str(i)) for i in range(10)]

        first = draw_color_sequence(catalog, 5, random.Random(7))
        second = draw_color_sequence(catalog, 5, random.Random(7))

        assert first == second

    def test_catalog_left_untouched(self):
        catalog = (_prompt("a"), _prompt("b"), _prompt("c"))

        draw_color_sequence(catalog, 3, random.Random(3))

        assert [p.name for p in catalog] == ["a", "b", "c"]
