#!/usr/bin/env python
"""
Command-line interface for the Site Layout Generator

Usage:
    python cli.py generate --input site.json --output layout.json
    python cli.py batch --input sites.json --output ./layouts/
    python cli.py visualize --input layout.json --output layout.png
"""

import os
import sys
import json
import argparse
from datetime import datetime

from loguru import logger
from pydantic import ValidationError

from siteplan.analysis.geometry_utils import GeometryUtils
from siteplan.generators.overrides import apply_overrides
from siteplan.models import LayoutOverrides, SiteConfig
from siteplan.pipeline import SiteLayoutGenerator


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def run_site(generator: SiteLayoutGenerator, site: dict):
    """
    Generate one site description

    The site is {boundary, config, constraints?, customRoads?, overrides?};
    edits are applied when present.
    """
    config = SiteConfig.model_validate(site["config"])
    result = generator.generate(site["boundary"], config, site.get("constraints", []))

    edits = LayoutOverrides.model_validate({
        "overrides": site.get("overrides", {}),
        "customRoads": site.get("customRoads", []),
    })
    if result.geometry.is_valid and (edits.overrides or edits.custom_roads):
        result = apply_overrides(result, edits, config, rng=generator.rng)

    return result


def cmd_generate(args):
    """Generate a layout for a single site"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        site = json.load(f)

    output_path = args.output or f"layout_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    generator = SiteLayoutGenerator()

    try:
        result = run_site(generator, site)
    except (KeyError, ValidationError) as e:
        logger.error(f"Invalid site description: {e}")
        return 1

    generator.save(result, output_path)

    if not result.geometry.is_valid:
        logger.error(f"✗ Layout invalid: {result.geometry.error or 'no geometry'}")
        return 1

    stats = result.stats
    logger.info(f"✓ Generated: {output_path}")
    logger.info(f"  Site Area: {stats.site_area:.0f} sqm")
    logger.info(f"  Lots: {stats.total_lots} ({stats.net_sellable_area:.0f} sqm sellable)")
    logger.info(f"  Efficiency: {stats.efficiency:.1%}")

    # Print summary to stdout if requested
    if args.summary:
        print(json.dumps(stats.model_dump(by_alias=True), indent=2))

    return 0


def cmd_batch(args):
    """Generate layouts for a list of named sites from a JSON file"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        sites = json.load(f)

    if not isinstance(sites, list) or not sites:
        logger.error("Expected a non-empty list of sites")
        return 1

    logger.info(f"Processing {len(sites)} sites...")

    os.makedirs(args.output, exist_ok=True)

    generator = SiteLayoutGenerator()
    success = 0
    failed = 0

    for i, site in enumerate(sites, 1):
        name = site.get("name") or f"site_{i:03d}"
        logger.info(f"[{i}/{len(sites)}] {name}")

        try:
            result = run_site(generator, site)
        except (KeyError, ValidationError) as e:
            logger.error(f"  ✗ Invalid site: {e}")
            failed += 1
            continue

        filename = f"{name.replace(' ', '_').lower()}.json"
        generator.save(result, os.path.join(args.output, filename))

        if result.geometry.is_valid:
            logger.info(f"  ✓ {filename}: {result.stats.total_lots} lots")
            success += 1
        else:
            logger.error(f"  ✗ {filename}: {result.geometry.error or 'invalid'}")
            failed += 1

    logger.info(f"\nComplete: {success} succeeded, {failed} failed")
    return 0 if failed == 0 else 1


def cmd_visualize(args):
    """Plot a layout.json file"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        import matplotlib.pyplot as plt
        import matplotlib.patches as patches
        from matplotlib.patches import Polygon as MplPolygon
        from matplotlib.lines import Line2D
    except ImportError:
        logger.error("matplotlib is required for visualization. Install with: pip install 'siteplan[viz]'")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        data = json.load(f)

    geometry = data.get("geometry", {})
    stats = data.get("stats", {})
    site = geometry.get("siteBoundary")
    if not geometry.get("isValid") or not site:
        logger.error(f"Layout is not valid: {geometry.get('error') or 'no site boundary'}")
        return 1

    ring = site["geometry"]["coordinates"][0]
    ref_lon = sum(c[0] for c in ring) / len(ring)
    ref_lat = sum(c[1] for c in ring) / len(ring)

    def to_local(coords):
        """[lon, lat] list to meters around the site"""
        return GeometryUtils.degrees_to_local(coords, ref_lon, ref_lat)

    def polygon_rings(feature):
        """Exterior rings of a Polygon or MultiPolygon feature"""
        if not feature:
            return []
        geom = feature["geometry"]
        if geom["type"] == "Polygon":
            return [to_local(geom["coordinates"][0])]
        return [to_local(poly[0]) for poly in geom["coordinates"]]

    def line_parts(feature):
        geom = feature["geometry"]
        if geom["type"] == "LineString":
            return [to_local(geom["coordinates"])]
        return [to_local(part) for part in geom["coordinates"]]

    def draw(features, **style):
        for feature in features:
            for coords in polygon_rings(feature):
                ax.add_patch(MplPolygon(coords, closed=True, **style))

    logger.info(f"Visualizing: {args.input}")
    fig, ax = plt.subplots(1, 1, figsize=(14, 12))

    # ============================================================
    # LAYERS
    # ============================================================
    draw([site], facecolor='lightgray', edgecolor='none', alpha=0.6, zorder=1)
    draw(geometry.get("superblocks", []), facecolor='whitesmoke', edgecolor='silver', linewidth=0.5, zorder=2)
    draw(geometry.get("parks", []), facecolor='palegreen', edgecolor='green', linewidth=1, alpha=0.8, zorder=3)
    draw(geometry.get("roads", []), facecolor='dimgray', edgecolor='none', alpha=0.8, zorder=3)
    draw(geometry.get("lots", []), facecolor='moccasin', edgecolor='darkorange', linewidth=0.5, zorder=4)
    draw(geometry.get("buildings", []), facecolor='slategray', edgecolor='darkslategray', linewidth=0.5, zorder=5)
    draw(geometry.get("roadMarkings", []), facecolor='white', edgecolor='none', zorder=5)

    for wall in geometry.get("perimeterWalls", []):
        for coords in line_parts(wall):
            xs, ys = zip(*coords)
            ax.plot(xs, ys, color='saddlebrown', linewidth=2, zorder=6)

    for tree in geometry.get("trees", []):
        (x, y), = to_local([tree["geometry"]["coordinates"]])
        ax.add_patch(plt.Circle((x, y), 1.2, facecolor='forestgreen', edgecolor='darkgreen', alpha=0.7, zorder=7))

    access = geometry.get("accessControl")
    if access:
        draw([access["island"]], facecolor='gold', edgecolor='goldenrod', zorder=8)
        if access.get("guardHouse"):
            draw([access["guardHouse"]], facecolor='firebrick', edgecolor='darkred', zorder=9)
        for barrier in access.get("barriers", []):
            for coords in line_parts(barrier):
                xs, ys = zip(*coords)
                ax.plot(xs, ys, color='red', linewidth=2, zorder=9)

    for candidate in geometry.get("entranceCandidates", []):
        (x, y), = to_local([[candidate["lng"], candidate["lat"]]])
        ax.plot(x, y, marker='^', color='darkorange', markersize=8, markeredgecolor='red', zorder=10)

    # ============================================================
    # STYLING
    # ============================================================
    info_text = f"Site: {stats.get('siteArea', 0):.0f} m²\n"
    info_text += f"Lots: {stats.get('totalLots', 0)}\n"
    info_text += f"Sellable: {stats.get('netSellableArea', 0):.0f} m²\n"
    info_text += f"Parks: {stats.get('parkArea', 0):.0f} m²\n"
    info_text += f"Roads: {stats.get('roadArea', 0):.0f} m²\n"
    info_text += f"Efficiency: {stats.get('efficiency', 0):.1%}\n"
    info_text += f"Entrances: {stats.get('possibleEntrances', 0)}"
    ax.text(0.02, 0.98, info_text, transform=ax.transAxes, fontsize=8, va='top', ha='left',
            bbox=dict(boxstyle='round', facecolor='white', alpha=0.9, edgecolor='gray'),
            zorder=11, family='monospace')

    ax.autoscale_view()
    ax.set_aspect('equal')
    ax.grid(True, alpha=0.3, linestyle='-', linewidth=0.5)
    ax.set_xlabel('East-West (meters)', fontsize=10, fontweight='bold')
    ax.set_ylabel('North-South (meters)', fontsize=10, fontweight='bold')
    ax.set_title(f"Site Layout: {os.path.basename(args.input)}", fontsize=14, fontweight='bold', pad=20)

    legend_elements = [
        patches.Patch(facecolor='moccasin', edgecolor='darkorange', label='Lots'),
        patches.Patch(facecolor='slategray', edgecolor='darkslategray', label='Buildings'),
        patches.Patch(facecolor='palegreen', edgecolor='green', label='Parks'),
        Line2D([0], [0], color='saddlebrown', linewidth=2, label='Perimeter Wall'),
    ]
    if access:
        legend_elements.append(patches.Patch(facecolor='gold', edgecolor='goldenrod', label='Gate'))
    ax.legend(handles=legend_elements, loc='upper right', fontsize=8, framealpha=0.9, edgecolor='gray')

    # Save or show
    if args.output:
        plt.savefig(args.output, dpi=150, bbox_inches='tight', facecolor='white')
        logger.info(f"Saved visualization to: {args.output}")
    else:
        plt.show()

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Site Layout Generator CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Generate a single layout:
    python cli.py generate --input site.json --output layout.json

  Batch generate from a list of sites:
    python cli.py batch --input sites.json --output ./layouts/

  Visualize a layout:
    python cli.py visualize --input layout.json --output layout.png

Site file format:
  {"boundary": [{"lat": ..., "lng": ...}, ...],
   "config": {"roadWidth": 12, "lotWidth": 8, "lotDepth": 18,
              "parkPercentage": 15, "stories": 2, "entryIndex": 0},
   "constraints": [...], "customRoads": [...], "overrides": {...}}
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a layout for one site")
    gen_parser.add_argument("--input", "-i", required=True, help="Site JSON file")
    gen_parser.add_argument("--output", "-o", help="Output JSON file")
    gen_parser.add_argument("--summary", "-s", action="store_true", help="Print statistics to stdout")
    gen_parser.set_defaults(func=cmd_generate)

    # Batch command
    batch_parser = subparsers.add_parser("batch", help="Batch generate from a JSON list of sites")
    batch_parser.add_argument("--input", "-i", required=True, help="JSON file with a list of sites (each with a name)")
    batch_parser.add_argument("--output", "-o", default="output", help="Output directory")
    batch_parser.set_defaults(func=cmd_batch)

    # Visualize command
    viz_parser = subparsers.add_parser("visualize", help="Visualize a layout.json file")
    viz_parser.add_argument("--input", "-i", required=True, help="Input JSON file")
    viz_parser.add_argument("--output", "-o", help="Output image file (shows window if not specified)")
    viz_parser.set_defaults(func=cmd_visualize)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
