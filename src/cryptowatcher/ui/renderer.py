"""Pure projection of a DashboardView into a rich renderable.

Nothing here mutates state or touches the terminal; TerminalDisplay is
responsible for writing the frame out.
"""

from __future__ import annotations

from dataclasses import replace

from rich.align import Align
from rich.console import Console, ConsoleOptions, RenderableType, RenderResult
from rich.layout import Layout
from rich.panel import Panel
from rich.text import Text

from cryptowatcher.dashboard import DashboardView
from cryptowatcher.state import AssetSnapshot
from cryptowatcher.ui.formatting import (
    format_change,
    format_price,
    format_price_short,
    format_volume,
)

# Synthwave palette
PINK = "#ff2e97"
CYAN = "#00f0ff"
POSITIVE = "#39ff14"
BORDER = "#3d1a78"
MUTED = "#6b5b95"
TEXT = "#f0f0f0"
WARNING = "#ffb000"

CHART_COLORS = (
    "#ff2e97",  # hot pink
    "#00f0ff",  # cyan
    "#9d4edd",  # purple
    "#f72585",  # magenta
    "#4cc9f0",  # light blue
    "#7209b7",  # deep violet
)

CHART_HEIGHT = 8
AXIS_WIDTH = 9
_BLOCKS = " ▁▂▃▄▅▆▇█"
_SEPARATOR = " │ "


def render(view: DashboardView) -> Layout:
    """Build one full-screen frame: chart grid above a status bar."""
    root = Layout(name="root")
    root.split_column(Layout(name="main"), Layout(name="status", size=3))

    panels = [
        render_asset_panel(asset, CHART_COLORS[i % len(CHART_COLORS)])
        for i, asset in enumerate(view.assets)
    ]
    _fill_grid(root["main"], panels)
    root["status"].update(render_status_bar(view))
    return root


def _fill_grid(area: Layout, panels: list[RenderableType]) -> None:
    """1 → full, 2 → side by side, 3 → one on top and two below, 4 → 2x2."""
    count = len(panels)
    if count == 0:
        area.update(Align.center(Text("No assets", style=MUTED), vertical="middle"))
        return
    if count == 1:
        area.update(panels[0])
        return
    if count == 2:
        area.split_row(Layout(panels[0]), Layout(panels[1]))
        return

    top, bottom = Layout(name="top"), Layout(name="bottom")
    area.split_column(top, bottom)
    if count == 3:
        top.update(panels[0])
        bottom.split_row(Layout(panels[1]), Layout(panels[2]))
    else:
        top.split_row(Layout(panels[0]), Layout(panels[1]))
        bottom.split_row(Layout(panels[2]), Layout(panels[3]))


def render_title(asset: AssetSnapshot, color: str) -> Text:
    change_color = POSITIVE if asset.change_24h_pct >= 0 else PINK
    title = Text.assemble(
        ("◈ ", PINK),
        (asset.display_name, f"bold {color}"),
        (_SEPARATOR, BORDER),
        (format_price(asset.price), f"bold {TEXT}"),
        (_SEPARATOR, BORDER),
        (format_change(asset.change_24h_pct), change_color),
        (_SEPARATOR, BORDER),
        (
            f"H:{format_price_short(asset.high_24h)} L:{format_price_short(asset.low_24h)}",
            MUTED,
        ),
        (_SEPARATOR, BORDER),
        (f"Vol:{format_volume(asset.volume_24h)}", MUTED),
        (" ◈", PINK),
    )
    if asset.stale:
        title.append(" ⚠ stale", style=f"bold {WARNING}")
    return title


def render_asset_panel(asset: AssetSnapshot, color: str) -> Panel:
    body: RenderableType
    if not asset.samples:
        body = Align.center(Text("Waiting for data...", style=MUTED), vertical="middle")
    else:
        body = PriceChart(asset, color)
    return Panel(body, title=render_title(asset, color), border_style=BORDER)


class PriceChart:
    """Block-glyph price chart sized to the space it is rendered into.

    One column per sample: when the panel is narrower than the history,
    only the newest samples that fit are drawn. The bottom row holds the
    time axis and every other row is chart. Without a height constraint
    the chart uses CHART_HEIGHT rows.
    """

    def __init__(self, asset: AssetSnapshot, color: str) -> None:
        self.asset = asset
        self.color = color

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        height = options.height if options.height is not None else CHART_HEIGHT + 1
        plot_width = max(1, options.max_width - AXIS_WIDTH - 1)
        visible = replace(self.asset, samples=self.asset.samples[-plot_width:])

        yield render_chart(visible, self.color, max(1, height - 1))
        if height > 1:
            yield render_time_axis(visible)


def chart_columns(prices: list[float], low: float, high: float, height: int = CHART_HEIGHT) -> list[int]:
    """Filled height of each column in eighths of a row."""
    levels = height * 8
    span = high - low
    if span <= 0:
        return [levels // 2 for _ in prices]
    return [max(1, min(levels, round((p - low) / span * levels))) for p in prices]


def render_chart(asset: AssetSnapshot, color: str, height: int = CHART_HEIGHT) -> Text:
    low, high = asset.price_bounds()
    columns = chart_columns([float(s.price) for s in asset.samples], float(low), float(high), height)

    chart = Text(no_wrap=True, overflow="crop")
    for row in range(height):
        floor = (height - row - 1) * 8
        if row == 0:
            label = format_price_short(high)
        elif row == height - 1:
            label = format_price_short(low)
        else:
            label = ""
        chart.append(f"{label:>{AXIS_WIDTH}}│", style=MUTED)
        glyphs = "".join(_BLOCKS[max(0, min(8, filled - floor))] for filled in columns)
        chart.append(glyphs, style=color)
        if row < height - 1:
            chart.append("\n")
    return chart


def render_time_axis(asset: AssetSnapshot) -> Text:
    first, middle, last = asset.time_labels()
    width = max(len(asset.samples), len(first) * 3 + 2)
    gap = width - len(first) - len(middle) - len(last)
    left_gap = gap // 2
    line = f"{first}{' ' * left_gap}{middle}{' ' * (gap - left_gap)}{last}"
    return Text(" " * (AXIS_WIDTH + 1) + line, style=MUTED, no_wrap=True, overflow="crop")


def render_status_bar(view: DashboardView) -> Panel:
    multi_page = view.total_pages > 1
    page_indicator = f"Page {view.current_page + 1}/{view.total_pages}  " if multi_page else ""
    status = Text.assemble(
        " ",
        ("Q", f"bold {CYAN}"),
        ("·Quit  ", MUTED),
        ("R", f"bold {CYAN}"),
        ("·Refresh  ", MUTED),
        ("←→" if multi_page else "", f"bold {CYAN}"),
        ("·Page" if multi_page else "", MUTED),
        "          ",
        (page_indicator, PINK),
        (f"Updated {view.last_update_str}", MUTED),
        "  ",
        (view.status_message, CYAN),
    )
    return Panel(status, border_style=BORDER)
