import re

from lxml import etree

from activity_graph.api.schemas.heatmap import DayCell
from activity_graph.api.schemas.heatmap import HeatmapGrid
from activity_graph.services.grid_builder import contribution_level
from activity_graph.services.grid_builder import date_key
from activity_graph.services.grid_builder import sunday_based_weekday
from activity_graph.themes import Theme


SVG_NS = "http://www.w3.org/2000/svg"
FONT_FAMILY = "system-ui,sans-serif"
ERROR_COLOR = "#f38ba8"

CELL = 11
GAP = 3
STEP = CELL + GAP
PAD_TOP = 36
PAD_RIGHT = 16
PAD_BOTTOM = 24
PAD_LEFT = 32
DAY_LABELS = ("", "Mon", "", "Wed", "", "Fri", "")

ERROR_WIDTH = 500
ERROR_HEIGHT = 80

QUOTE_ENTITIES = {'"': "quot", "'": "apos"}
QUOTE_PATTERN = re.compile(r"([\"'])")


def _svg_root(width: int, height: int) -> etree._Element:
    return etree.Element(
        f"{{{SVG_NS}}}svg",
        nsmap={None: SVG_NS},
        attrib={
            "width": str(width),
            "height": str(height),
            "viewBox": f"0 0 {width} {height}",
        },
    )


def _add(
    parent: etree._Element, tag: str, text: str | None = None, **attrs: object
) -> etree._Element:
    """Append an SVG child; underscores in attribute names become hyphens."""

    element = etree.SubElement(
        parent,
        f"{{{SVG_NS}}}{tag}",
        attrib={name.replace("_", "-"): str(value) for name, value in attrs.items()},
    )
    if text is not None:
        _set_text(element, text)
    return element


def _set_text(element: etree._Element, text: str) -> None:
    """Set element text, writing quote characters as entity references."""

    parts = QUOTE_PATTERN.split(text)
    element.text = parts[0]
    for quote, chunk in zip(parts[1::2], parts[2::2]):
        entity = etree.Entity(QUOTE_ENTITIES[quote])
        entity.tail = chunk
        element.append(entity)


def _serialize(root: etree._Element) -> str:
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8").decode("utf-8")


def _background(root: etree._Element, width: int, height: int, theme: Theme) -> None:
    _add(
        root,
        "rect",
        width=width,
        height=height,
        rx=8,
        fill=theme.bg,
        stroke=theme.border,
        stroke_width=1,
    )


def canvas_size(week_count: int) -> tuple[int, int]:
    """Return the (width, height) of a heatmap with week_count columns."""

    width = PAD_LEFT + week_count * STEP - GAP + PAD_RIGHT
    height = PAD_TOP + 7 * STEP - GAP + PAD_BOTTOM
    return width, height


def tooltip_text(day: DayCell) -> str:
    noun = "contribution" if day.count == 1 else "contributions"
    return f"{date_key(day.date)}: {day.count} {noun}"


def render_heatmap_svg(username: str, grid: HeatmapGrid, theme: Theme) -> str:
    """Render a heatmap grid as a standalone SVG document."""

    width, height = canvas_size(len(grid.weeks))
    root = _svg_root(width, height)
    _background(root, width, height, theme)

    _add(
        root,
        "text",
        f"{username} · {grid.total:,} contributions in the last year",
        x=PAD_LEFT,
        y=16,
        fill=theme.text,
        font_size=12,
        font_weight=600,
        font_family=FONT_FAMILY,
    )

    for month_label in grid.month_labels:
        _add(
            root,
            "text",
            month_label.label,
            x=PAD_LEFT + month_label.col * STEP,
            y=PAD_TOP - 6,
            fill=theme.subtext,
            font_size=10,
            font_family=FONT_FAMILY,
        )

    for row, label in enumerate(DAY_LABELS):
        if not label:
            continue
        _add(
            root,
            "text",
            label,
            x=PAD_LEFT - 6,
            y=PAD_TOP + row * STEP + CELL - 1,
            fill=theme.subtext,
            font_size=9,
            font_family=FONT_FAMILY,
            text_anchor="end",
        )

    for col, week in enumerate(grid.weeks):
        for day in week:
            # Row is the weekday; a partial first week is not padded.
            row = sunday_based_weekday(day.date)
            cell = _add(
                root,
                "rect",
                x=PAD_LEFT + col * STEP,
                y=PAD_TOP + row * STEP,
                width=CELL,
                height=CELL,
                rx=2,
                fill=theme.levels[contribution_level(day.count, grid.max_count)],
                stroke=theme.text if day.is_today else "none",
                stroke_width=1.5,
            )
            _add(cell, "title", tooltip_text(day))

    legend_x = width - PAD_RIGHT - 5 * STEP - 40
    legend_y = height - 14
    _add(
        root,
        "text",
        "Less",
        x=legend_x - 4,
        y=legend_y + CELL - 1,
        fill=theme.subtext,
        font_size=9,
        font_family=FONT_FAMILY,
        text_anchor="end",
    )
    for index, color in enumerate(theme.levels):
        _add(
            root,
            "rect",
            x=legend_x + index * STEP,
            y=legend_y,
            width=CELL,
            height=CELL,
            rx=2,
            fill=color,
        )
    _add(
        root,
        "text",
        "More",
        x=legend_x + 5 * STEP + 2,
        y=legend_y + CELL - 1,
        fill=theme.subtext,
        font_size=9,
        font_family=FONT_FAMILY,
    )

    return _serialize(root)


def render_error_svg(message: str, theme: Theme) -> str:
    """Render a fixed-size SVG showing an error message in the theme's colors."""

    root = _svg_root(ERROR_WIDTH, ERROR_HEIGHT)
    _background(root, ERROR_WIDTH, ERROR_HEIGHT, theme)
    _add(
        root,
        "text",
        "Error",
        x=20,
        y=35,
        fill=ERROR_COLOR,
        font_size=13,
        font_family=FONT_FAMILY,
        font_weight=600,
    )
    _add(
        root,
        "text",
        message,
        x=20,
        y=56,
        fill=theme.subtext,
        font_size=11,
        font_family=FONT_FAMILY,
    )
    return _serialize(root)
