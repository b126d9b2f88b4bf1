"""
Tests for the command-line interface and configuration validation
"""

import argparse
import json
import random

import pytest

import cli
from siteplan.config import GeneratorConfig, LayoutRules, validate_config
from siteplan.pipeline import SiteLayoutGenerator


@pytest.fixture
def site(rectangle_points):
    return {
        "name": "Rectangle Site",
        "boundary": rectangle_points,
        "config": {
            "roadWidth": 12, "lotWidth": 8, "lotDepth": 18,
            "parkPercentage": 15, "stories": 2, "entryIndex": 0,
        },
    }


def test_run_site_generates(site):
    result = cli.run_site(SiteLayoutGenerator(rng=random.Random(3)), site)
    assert result.geometry.is_valid
    assert result.stats.total_lots > 0


def test_run_site_applies_edits(site):
    generator = SiteLayoutGenerator(rng=random.Random(3))
    plain = cli.run_site(generator, site)

    site["overrides"] = {"lot-0": None}
    edited = cli.run_site(generator, site)

    assert edited.geometry.lots[0] is None
    assert edited.stats.total_lots == plain.stats.total_lots - 1


def test_generate_command(site, tmp_path):
    input_path = tmp_path / "site.json"
    output_path = tmp_path / "layout.json"
    input_path.write_text(json.dumps(site), encoding="utf-8")

    args = argparse.Namespace(input=str(input_path), output=str(output_path), summary=False, verbose=False)
    assert cli.cmd_generate(args) == 0

    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["geometry"]["isValid"] is True
    assert data["stats"]["totalLots"] > 0


def test_generate_command_rejects_bad_sites(site, tmp_path):
    args = argparse.Namespace(input=str(tmp_path / "missing.json"), output=None, summary=False, verbose=False)
    assert cli.cmd_generate(args) == 1

    del site["config"]
    input_path = tmp_path / "site.json"
    input_path.write_text(json.dumps(site), encoding="utf-8")
    args = argparse.Namespace(input=str(input_path), output=str(tmp_path / "out.json"), summary=False, verbose=False)
    assert cli.cmd_generate(args) == 1


def test_batch_command(site, tmp_path, to_lat_lngs):
    bowtie = dict(site, name="Bowtie", boundary=to_lat_lngs([(0, 0), (100, 100), (100, 0), (0, 100)]))
    input_path = tmp_path / "sites.json"
    input_path.write_text(json.dumps([site, bowtie]), encoding="utf-8")
    out_dir = tmp_path / "layouts"

    args = argparse.Namespace(input=str(input_path), output=str(out_dir), verbose=False)
    assert cli.cmd_batch(args) == 1

    assert (out_dir / "rectangle_site.json").exists()
    failed = json.loads((out_dir / "bowtie.json").read_text(encoding="utf-8"))
    assert failed["geometry"]["error"] == "Polygon self-intersects"


# ============================================================
# Configuration
# ============================================================

def test_default_config_is_valid():
    validate_config(GeneratorConfig())


def test_invalid_config_lists_every_problem():
    config = GeneratorConfig(layout=LayoutRules(lots_per_block_row=0, discard_lot_ratio=0.9))
    with pytest.raises(ValueError) as exc:
        validate_config(config)
    message = str(exc.value)
    assert "lots_per_block_row" in message
    assert "discard_lot_ratio" in message


def test_merge_grid_size_must_be_positive():
    with pytest.raises(ValueError, match="merge_grid_size_m"):
        validate_config(GeneratorConfig(layout=LayoutRules(merge_grid_size_m=0)))
