"""
Configuration settings for the Site Layout Generator

Per-run parameters (road width, lot size, park share...) arrive as a
SiteConfig record with every field required. The values here are the
fixed rules of the generator itself: grid sizing, repair thresholds,
setbacks and asset densities.
"""

from dataclasses import dataclass, field


@dataclass
class LayoutRules:
    """Grid, classification and lot repair rules"""
    # Block grid
    lots_per_block_row: int = 8
    buffer_cells: int = 2  # Extra columns/rows generated beyond the bbox on each side
    min_cell_area_sqm: float = 50.0  # Clipped cells at or below this are noise

    # Boundary validation
    min_site_area_sqm: float = 100.0
    collinear_tolerance: float = 1e-6  # Twice the triangle area (m²) under which a vertex is dropped

    # Lot subdivision (fractions of the nominal lot area width x depth)
    min_band_ratio: float = 0.5  # Band parts smaller than this never get lots
    min_viable_lot_ratio: float = 0.75  # Below this a lot is a sliver
    discard_lot_ratio: float = 0.40  # Isolated slivers below this are removed
    min_lot_area_sqm: float = 20.0  # Final sanity threshold
    slice_epsilon_m: float = 0.1  # Padding on the last slice so it covers the band edge
    merge_grid_size_m: float = 1e-6  # Snap grid for sliver merges that only touch by a hairline

    # Park merging
    gap_epsilon_m: float = 0.05  # Overlap between gap filler and the cells it joins
    min_park_area_sqm: float = 50.0  # Failed residential blocks above this become parks


@dataclass
class AssetRules:
    """Building footprint and tree placement rules (meters)"""
    side_setback_m: float = 0.6
    rear_setback_m: float = 1.0
    min_depth_factor: float = 0.50
    max_depth_factor: float = 0.60
    min_height_factor: float = 0.9
    max_height_factor: float = 1.1
    color_variants: int = 3
    min_building_dimension_m: float = 1.0

    # Lot trees
    tree_front_setback_m: float = 2.5
    tree_side_margin_m: float = 1.0

    # Park trees
    park_tree_density_sqm: float = 40.0  # One tree per this many square meters
    park_tree_min_count: int = 3
    park_tree_max_count: int = 500
    park_tree_attempt_factor: int = 15
    park_tree_spacing_m: float = 4.0
    park_tree_inset_m: float = 2.0

    # Regenerated assets for edited lots
    edited_front_setback_m: float = 5.0
    edited_rear_setback_m: float = 2.0
    edited_inset_m: float = 1.5  # Plain inset for lots with no known row
    edited_fallback_scale: float = 0.6
    edited_tree_shift_m: float = 2.0
    edited_park_tree_max_count: int = 200
    edited_park_tree_attempt_factor: int = 10
    park_area_change_tolerance_sqm: float = 1.0


@dataclass
class AccessRules:
    """Entrance detection and gate geometry (meters)"""
    probe_distance_m: float = 2.0
    dedup_distance_m: float = 15.0
    island_width_m: float = 2.2
    island_length_m: float = 8.0
    guard_house_width_m: float = 1.5
    guard_house_length_m: float = 3.0
    wall_cut_ratio: float = 0.6  # Opening radius as a fraction of half the road width
    wall_cut_segments: int = 16


@dataclass
class MarkingRules:
    """Zebra crossing geometry (meters)"""
    park_proximity_factor: float = 2.0  # Multiple of road width
    offset_factor: float = 0.65  # Crossing offset from the intersection, x road width
    span_factor: float = 0.8  # Fraction of the road width covered by stripes
    stripe_width_m: float = 0.6
    gap_width_m: float = 0.6
    crossing_length_m: float = 4.0


@dataclass
class GeneratorConfig:
    """Generator configuration"""
    layout: LayoutRules = field(default_factory=LayoutRules)
    assets: AssetRules = field(default_factory=AssetRules)
    access: AccessRules = field(default_factory=AccessRules)
    markings: MarkingRules = field(default_factory=MarkingRules)


# Global config instance
config = GeneratorConfig()


def get_config() -> GeneratorConfig:
    """Get global configuration"""
    return config


def validate_config(config: GeneratorConfig) -> None:
    """
    Validate the generator rules.
    Raises ValueError if any value is missing or out of range.
    """
    errors = []

    layout = config.layout
    if layout is None:
        errors.append("layout rules are required but not set")
    else:
        if layout.lots_per_block_row < 1:
            errors.append(f"layout.lots_per_block_row must be >= 1, got {layout.lots_per_block_row}")
        if layout.buffer_cells < 0:
            errors.append(f"layout.buffer_cells must be >= 0, got {layout.buffer_cells}")
        if not 0 < layout.discard_lot_ratio <= layout.min_viable_lot_ratio:
            errors.append(
                "layout.discard_lot_ratio must be positive and not above min_viable_lot_ratio, "
                f"got {layout.discard_lot_ratio} / {layout.min_viable_lot_ratio}"
            )
        if layout.min_site_area_sqm <= 0:
            errors.append(f"layout.min_site_area_sqm must be positive, got {layout.min_site_area_sqm}")
        if layout.merge_grid_size_m <= 0:
            errors.append(f"layout.merge_grid_size_m must be positive, got {layout.merge_grid_size_m}")

    assets = config.assets
    if assets is None:
        errors.append("asset rules are required but not set")
    else:
        if assets.min_depth_factor > assets.max_depth_factor:
            errors.append("assets.min_depth_factor must not exceed assets.max_depth_factor")
        if assets.min_height_factor > assets.max_height_factor:
            errors.append("assets.min_height_factor must not exceed assets.max_height_factor")
        if assets.park_tree_density_sqm <= 0:
            errors.append(f"assets.park_tree_density_sqm must be positive, got {assets.park_tree_density_sqm}")
        if assets.color_variants < 1:
            errors.append(f"assets.color_variants must be >= 1, got {assets.color_variants}")

    if config.access is None:
        errors.append("access rules are required but not set")
    elif config.access.wall_cut_segments < 3:
        errors.append(f"access.wall_cut_segments must be >= 3, got {config.access.wall_cut_segments}")

    if config.markings is None:
        errors.append("marking rules are required but not set")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
