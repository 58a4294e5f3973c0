"""
Heatmap SVG rendering.

Turns a heatmap layout into a self-contained SVG document in the style of
a GitHub contribution graph: month labels on top, weekday labels on the
left, one hoverable cell per day and a footer of window statistics.
"""

from datetime import date
from typing import List, Optional
from xml.sax.saxutils import escape

from usage_heatmap.config.loader import HeatmapConfig, default_config
from usage_heatmap.storage.models import UsageHistory

from .aggregate import format_cost, format_tokens
from .heatmap import DAYS_PER_WEEK, HeatmapLayout, build_heatmap

FONT_FAMILY = "-apple-system,BlinkMacSystemFont,Segoe UI,Helvetica,Arial,sans-serif"

# Pixel offsets around the grid
GRID_LEFT = 30
GRID_TOP = 30
GRID_RIGHT = 11
FOOTER_HEIGHT = 39
TITLE_HEIGHT = 20
MONTH_LABEL_OFFSET = -10
WEEKDAY_LABEL_X = 5
WEEKDAY_LABELS = {1: "Mon", 3: "Wed", 5: "Fri"}
YEAR_WINDOWS = (365, 366)


class HeatmapRenderer:
    """Renders usage histories as SVG contribution graphs.

    Rendering never fails on missing or partial history: an empty history
    produces an all-empty grid with zeroed statistics.
    """

    def __init__(self, config: Optional[HeatmapConfig] = None):
        """Initialize the renderer.

        Args:
            config: Palette and grid geometry; defaults to the light theme
        """
        self.config = config or default_config()

    @property
    def grid_top(self) -> int:
        return GRID_TOP + (TITLE_HEIGHT if self.config.title else 0)

    @property
    def width(self) -> int:
        grid = self.config.grid
        return GRID_LEFT + grid.weeks * grid.stride + GRID_RIGHT

    @property
    def height(self) -> int:
        return self.grid_top + DAYS_PER_WEEK * self.config.grid.stride + FOOTER_HEIGHT

    @property
    def window_label(self) -> str:
        """Footer caption for the cost total, e.g. "Total Cost (1y)"."""
        days = self.config.grid.window_days
        span = "1y" if days in YEAR_WINDOWS else f"{days}d"
        return f"Total Cost ({span})"

    def layout(self, history: UsageHistory, as_of: date) -> HeatmapLayout:
        """Compute the grid layout and window statistics."""
        return build_heatmap(history, as_of, self.config.grid)

    def render(self, history: UsageHistory, as_of: date) -> str:
        """Render a history as an SVG document.

        Args:
            history: Usage history to draw
            as_of: Last day shown and freshness date in the footer

        Returns:
            SVG document as a string
        """
        return self.render_layout(self.layout(history, as_of))

    def render_layout(self, layout: HeatmapLayout) -> str:
        """Render a precomputed layout as an SVG document."""
        palette = self.config.palette
        width, height = self.width, self.height

        parts = [
            f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
            f'xmlns="http://www.w3.org/2000/svg">',
            f'<style>text{{font-family:{FONT_FAMILY};font-size:10px;fill:{palette.text}}}'
            f'.meta{{fill:{palette.meta}}}.bold{{font-weight:600;font-size:12px}}</style>',
            f'<rect width="100%" height="100%" fill="{palette.background}" rx="6"/>',
        ]
        if self.config.title:
            parts.append(f'<text x="{GRID_LEFT}" y="18" class="bold">{escape(self.config.title)}</text>')

        parts.append(f'<g transform="translate({GRID_LEFT}, {self.grid_top})">')
        parts.extend(self._month_labels(layout))
        parts.extend(self._cells(layout))
        parts.append('</g>')
        parts.extend(self._weekday_labels())
        parts.extend(self._footer(layout))
        parts.append('</svg>')
        return "\n".join(parts)

    def _month_labels(self, layout: HeatmapLayout) -> List[str]:
        stride = self.config.grid.stride
        return [
            f'<text x="{label.column * stride}" y="{MONTH_LABEL_OFFSET}" class="meta">{label.text}</text>'
            for label in layout.month_labels
        ]

    def _cells(self, layout: HeatmapLayout) -> List[str]:
        grid = self.config.grid
        palette = self.config.palette
        return [
            f'<rect x="{cell.column * grid.stride}" y="{cell.row * grid.stride}" '
            f'width="{grid.cell_size}" height="{grid.cell_size}" rx="2" '
            f'fill="{palette.bucket_color(cell.bucket)}" data-date="{cell.date}" '
            f'data-level="{cell.bucket}"><title>{escape(cell.tooltip)}</title></rect>'
            for cell in layout.cells
        ]

    def _weekday_labels(self) -> List[str]:
        stride = self.config.grid.stride
        # Baseline sits just below the middle of the row
        return [
            f'<text x="{WEEKDAY_LABEL_X}" y="{self.grid_top + row * stride + 9}" class="meta">{name}</text>'
            for row, name in WEEKDAY_LABELS.items()
        ]

    def _footer(self, layout: HeatmapLayout) -> List[str]:
        stats = layout.stats
        palette = self.config.palette
        width = self.width
        line_y = self.grid_top + DAYS_PER_WEEK * self.config.grid.stride + 9
        text_y = line_y + 20
        x = GRID_LEFT
        return [
            f'<line x1="{x}" y1="{line_y}" x2="{width - 20}" y2="{line_y}" stroke="{palette.empty}"/>',
            f'<text x="{x}" y="{text_y}" class="meta">{self.window_label}</text>'
            f'<text x="{x + 75}" y="{text_y}" class="bold">{format_cost(stats.total_cost)}</text>',
            f'<text x="{x + 150}" y="{text_y}" class="meta">Tokens</text>'
            f'<text x="{x + 190}" y="{text_y}" class="bold">{format_tokens(stats.total_tokens)}</text>',
            f'<text x="{x + 250}" y="{text_y}" class="meta">Active Days</text>'
            f'<text x="{x + 310}" y="{text_y}" class="bold">{stats.active_days}</text>',
            f'<text x="{width - 20}" y="{text_y}" text-anchor="end" class="meta">'
            f'Updated: {layout.as_of.isoformat()}</text>',
        ]
