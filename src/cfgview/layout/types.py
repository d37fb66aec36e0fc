"""Layout IR types and geometry constants (pixel units)."""

from __future__ import annotations

from dataclasses import dataclass, field

from cfgview.graph import EdgeType

# ─── Geometry constants ──────────────────────────────────────────────────────

BLOCK_WIDTH: int = 380
HEADER_HEIGHT: int = 22
LINE_HEIGHT: int = 16
BORDER_HEIGHT: int = 4

H_GAP: int = 60  # between blocks on one level
V_GAP: int = 100  # between levels
LEFT_MARGIN: int = 50
TOP_MARGIN: int = 50

EDGE_MARGIN: int = 15  # clearance around blocks for collision tests
EDGE_SPACING: int = 12  # lane spacing between sibling edges
PARALLEL_OFFSET: int = 25  # port spacing for edges sharing a source/target
DETOUR_MARGIN: int = 80  # side lane distance from obstructions
BACK_EDGE_CLEARANCE: int = 25  # extra drop/rise of back edges beyond EDGE_MARGIN
STRAIGHT_TOLERANCE: int = 5

INITIAL_ZOOM: float = 0.3
MIN_ZOOM: float = 0.05
MAX_ZOOM: float = 3.0
INITIAL_TOP_OFFSET: int = 80
FALLBACK_PAN: tuple[float, float] = (50.0, 50.0)
DEFAULT_CANVAS: tuple[int, int] = (800, 600)

MINIMAP_WIDTH: int = 200
MINIMAP_HEIGHT: int = 150
MINIMAP_PADDING: int = 50


@dataclass(frozen=True)
class LayoutConfig:
    """Tunable geometry. Defaults are the module constants above."""

    block_width: int = BLOCK_WIDTH
    header_height: int = HEADER_HEIGHT
    line_height: int = LINE_HEIGHT
    border_height: int = BORDER_HEIGHT
    h_gap: int = H_GAP
    v_gap: int = V_GAP
    left_margin: int = LEFT_MARGIN
    top_margin: int = TOP_MARGIN
    edge_margin: int = EDGE_MARGIN
    edge_spacing: int = EDGE_SPACING
    parallel_offset: int = PARALLEL_OFFSET
    detour_margin: int = DETOUR_MARGIN
    back_edge_clearance: int = BACK_EDGE_CLEARANCE
    straight_tolerance: int = STRAIGHT_TOLERANCE
    initial_zoom: float = INITIAL_ZOOM
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    initial_top_offset: int = INITIAL_TOP_OFFSET
    minimap_width: int = MINIMAP_WIDTH
    minimap_height: int = MINIMAP_HEIGHT
    minimap_padding: int = MINIMAP_PADDING

    def block_height(self, instruction_count: int) -> int:
        return self.header_height + self.line_height * instruction_count + self.border_height


DEFAULT_CONFIG = LayoutConfig()


@dataclass
class Point:
    """A 2D point in graph pixel coordinates."""

    x: float
    y: float


@dataclass
class BlockLayout:
    """A positioned block. (x, y) is the top-left corner."""

    id: str
    x: float
    y: float
    width: float
    height: float
    level: int = 0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2


@dataclass
class RoutedEdge:
    """A routed edge as an orthogonal polyline.

    The path starts at the source's bottom border and ends at the target's
    top border. ``detour`` is True when the edge leaves through a side lane
    instead of the direct down-across-down route.
    """

    from_id: str
    to_id: str
    edge_type: EdgeType
    waypoints: list[Point]
    back_edge: bool = False
    detour: bool = False

    def svg_path(self) -> str:
        """SVG path data: ``M x y L x y …``."""
        if not self.waypoints:
            return ""
        head, *rest = self.waypoints
        parts = [f"M {_fmt(head.x)} {_fmt(head.y)}"]
        parts.extend(f"L {_fmt(p.x)} {_fmt(p.y)}" for p in rest)
        return " ".join(parts)


def _fmt(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else f"{v:g}"


@dataclass
class LayoutResult:
    """Everything the renderer needs for one function's graph."""

    layouts: dict[str, BlockLayout] = field(default_factory=dict)
    levels: dict[str, int] = field(default_factory=dict)
    routes: list[RoutedEdge] = field(default_factory=list)
    initial_pan: Point = field(default_factory=lambda: Point(*FALLBACK_PAN))
    initial_zoom: float = INITIAL_ZOOM
