"""
Layout generators for the Site Layout Generator

Pipeline stages, in order:
- BoundaryNormalizer: Validated, aligned parcel
- GridBuilder: Block grid clipped to the parcel
- ParkClassifier / ParkMerger: Park cells and merged parks
- LotSubdivider: Lots with buildings and trees
- RoadMarkingGenerator: Zebra crossings near parks
- AccessPointFinder / GateBuilder: Entrances, gate and perimeter walls
- LayoutEditor: Consumer edits and custom roads
"""

from .boundary import BoundaryNormalizer, BoundaryError, BoundaryErrorKind, NormalizedBoundary
from .grid import GridBuilder, GridCell, GridSpec, CellType
from .parks import ParkClassifier, ParkMerger
from .lots import LotSubdivider, LotIdSequence, Lot
from .assets import LotAssetGenerator, ParkTreePlanter, LotAssets
from .markings import RoadMarkingGenerator
from .access import AccessPointFinder, AccessCandidate, GateBuilder, Gate
from .roads import CustomRoadBuilder
from .overrides import LayoutEditor, apply_overrides

__all__ = [
    "BoundaryNormalizer",
    "BoundaryError",
    "BoundaryErrorKind",
    "NormalizedBoundary",
    "GridBuilder",
    "GridCell",
    "GridSpec",
    "CellType",
    "ParkClassifier",
    "ParkMerger",
    "LotSubdivider",
    "LotIdSequence",
    "Lot",
    "LotAssetGenerator",
    "ParkTreePlanter",
    "LotAssets",
    "RoadMarkingGenerator",
    "AccessPointFinder",
    "AccessCandidate",
    "GateBuilder",
    "Gate",
    "CustomRoadBuilder",
    "LayoutEditor",
    "apply_overrides",
]
