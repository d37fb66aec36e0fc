"""Minimap projection and pan/zoom arithmetic.

Screen coordinates relate to graph coordinates through the canvas transform
``screen = graph * zoom + pan``. The minimap shows the padded bounding box of
all blocks scaled uniformly into a fixed panel and centred in it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from cfgview.layout.types import DEFAULT_CANVAS, DEFAULT_CONFIG, BlockLayout, LayoutConfig, Point

WHEEL_ZOOM_OUT: float = 1.1
WHEEL_ZOOM_IN: float = 0.9
BUTTON_ZOOM_IN: float = 1.2
BUTTON_ZOOM_OUT: float = 0.8

_EMPTY_EXTENT: float = 1000.0


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class GraphBounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @classmethod
    def of(cls, layouts: Iterable[BlockLayout], padding: float = DEFAULT_CONFIG.minimap_padding) -> GraphBounds:
        """Padded bounding box of ``layouts``; a 1000×1000 box when there are none."""
        items = list(layouts)
        if not items:
            return cls(0.0, 0.0, _EMPTY_EXTENT, _EMPTY_EXTENT)
        return cls(
            min(b.x for b in items) - padding,
            min(b.y for b in items) - padding,
            max(b.right for b in items) + padding,
            max(b.bottom for b in items) + padding,
        )


@dataclass(frozen=True)
class MinimapProjection:
    """Uniform graph → minimap scale plus the offset that centres the graph."""

    bounds: GraphBounds
    scale: float
    offset: Point
    panel_width: float
    panel_height: float

    @classmethod
    def fit(cls, layouts: Iterable[BlockLayout], config: LayoutConfig = DEFAULT_CONFIG) -> MinimapProjection:
        bounds = GraphBounds.of(layouts, config.minimap_padding)
        panel_w, panel_h = float(config.minimap_width), float(config.minimap_height)
        scale = min(panel_w / bounds.width, panel_h / bounds.height)
        offset = Point((panel_w - bounds.width * scale) / 2, (panel_h - bounds.height * scale) / 2)
        return cls(bounds=bounds, scale=scale, offset=offset, panel_width=panel_w, panel_height=panel_h)

    def to_minimap(self, x: float, y: float) -> Point:
        return Point(
            (x - self.bounds.min_x) * self.scale + self.offset.x,
            (y - self.bounds.min_y) * self.scale + self.offset.y,
        )

    def to_graph(self, mx: float, my: float) -> Point:
        """Minimap panel coordinates → graph coordinates."""
        return Point(
            self.bounds.min_x + (mx - self.offset.x) / self.scale,
            self.bounds.min_y + (my - self.offset.y) / self.scale,
        )

    def block_rect(self, layout: BlockLayout) -> Rect:
        p = self.to_minimap(layout.x, layout.y)
        return Rect(p.x, p.y, layout.width * self.scale, layout.height * self.scale)

    def viewport_rect(self, view: ViewState, canvas_width: float | None, canvas_height: float | None) -> Rect:
        """The visible part of the main canvas, in minimap coordinates.

        Without a canvas size the whole panel is reported.
        """
        if canvas_width is None or canvas_height is None:
            return Rect(0.0, 0.0, self.panel_width, self.panel_height)
        width = canvas_width or DEFAULT_CANVAS[0]
        height = canvas_height or DEFAULT_CANVAS[1]
        top_left = self.to_minimap(-view.pan_x / view.zoom, -view.pan_y / view.zoom)
        return Rect(top_left.x, top_left.y, width / view.zoom * self.scale, height / view.zoom * self.scale)

    def click_to_pan(self, mx: float, my: float, view: ViewState, canvas_width: float, canvas_height: float) -> ViewState:
        """Pan that centres the main canvas on the graph point under a minimap click."""
        target = self.to_graph(mx, my)
        return replace(
            view,
            pan_x=canvas_width / 2 - target.x * view.zoom,
            pan_y=canvas_height / 2 - target.y * view.zoom,
        )


@dataclass(frozen=True)
class ViewState:
    """Main-canvas pan and zoom. Operations return new states."""

    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = 1.0
    min_zoom: float = DEFAULT_CONFIG.min_zoom
    max_zoom: float = DEFAULT_CONFIG.max_zoom

    @classmethod
    def initial(cls, pan: Point, zoom: float, config: LayoutConfig = DEFAULT_CONFIG) -> ViewState:
        return cls(pan_x=pan.x, pan_y=pan.y, zoom=zoom, min_zoom=config.min_zoom, max_zoom=config.max_zoom)

    def to_graph(self, sx: float, sy: float) -> Point:
        return Point((sx - self.pan_x) / self.zoom, (sy - self.pan_y) / self.zoom)

    def to_screen(self, gx: float, gy: float) -> Point:
        return Point(gx * self.zoom + self.pan_x, gy * self.zoom + self.pan_y)

    def clamp(self, zoom: float) -> float:
        return min(max(zoom, self.min_zoom), self.max_zoom)

    def zoom_at(self, sx: float, sy: float, factor: float) -> ViewState:
        """Scale zoom by ``factor`` keeping the graph point under (sx, sy) fixed."""
        anchor = self.to_graph(sx, sy)
        zoom = self.clamp(self.zoom * factor)
        return replace(self, zoom=zoom, pan_x=sx - anchor.x * zoom, pan_y=sy - anchor.y * zoom)

    def wheel(self, sx: float, sy: float, delta_y: float) -> ViewState:
        """Mouse-wheel zoom anchored at the cursor; positive delta zooms by 1.1."""
        return self.zoom_at(sx, sy, WHEEL_ZOOM_OUT if delta_y > 0 else WHEEL_ZOOM_IN)

    def zoom_in(self, canvas_width: float, canvas_height: float) -> ViewState:
        return self.zoom_at(canvas_width / 2, canvas_height / 2, BUTTON_ZOOM_IN)

    def zoom_out(self, canvas_width: float, canvas_height: float) -> ViewState:
        return self.zoom_at(canvas_width / 2, canvas_height / 2, BUTTON_ZOOM_OUT)

    def reset(self) -> ViewState:
        return replace(self, pan_x=0.0, pan_y=0.0, zoom=1.0)
