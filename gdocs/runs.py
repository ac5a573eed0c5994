"""
Style/Run Model.

The intermediate representation shared by both front ends (markdown converter
and document-copy extractor) and consumed by the batch builder and table
engine:

- ``Run``: a span of text plus a sparse ``TextStyle`` (only non-default
  attributes are set; black foreground is normalized away).
- ``ParagraphBlock``: runs of one paragraph, the images positioned inside it
  by character offset, and its named style.
- ``CellContent`` / ``TableModel``: the same for table cells.
- ``ListItemRange`` / ``PendingTableFill``: side records emitted while parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

CELL_LINE_BREAK = "\u000b"
DEFAULT_NAMED_STYLE = "NORMAL_TEXT"

_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def rgb_to_hex(rgb: dict[str, float]) -> str:
    """Convert a Docs API rgbColor (0.0-1.0 floats) to lowercase #rrggbb."""
    r = round(rgb.get("red", 0) * 255)
    g = round(rgb.get("green", 0) * 255)
    b = round(rgb.get("blue", 0) * 255)
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(color: str) -> dict[str, float]:
    """Convert #rrggbb to a Docs API rgbColor dict."""
    if not isinstance(color, str) or not _HEX_COLOR_RE.match(color):
        raise ValueError(f"Color must be a hex string in the form '#RRGGBB', got {color!r}")
    return {
        "red": int(color[1:3], 16) / 255,
        "green": int(color[3:5], 16) / 255,
        "blue": int(color[5:7], 16) / 255,
    }


@dataclass(frozen=True)
class TextStyle:
    """Sparse character style; None means "leave at document default"."""

    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    strikethrough: bool | None = None
    foreground_color: str | None = None
    background_color: str | None = None
    font_size: float | None = None
    font_family: str | None = None
    link_url: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__dataclass_fields__)

    def merged(self, other: TextStyle) -> TextStyle:
        """Return a copy with every attribute set in ``other`` overriding this one."""
        values = {name: getattr(self, name) for name in self.__dataclass_fields__}
        for name in other.__dataclass_fields__:
            value = getattr(other, name)
            if value is not None:
                values[name] = value
        return TextStyle(**values)

    def attributes(self) -> dict[str, Any]:
        """The set (non-None) attributes, keyed by field name."""
        return {name: getattr(self, name) for name in self.__dataclass_fields__ if getattr(self, name) is not None}

    def to_request(self) -> tuple[dict[str, Any], list[str]]:
        """
        Build the ``textStyle`` payload and field mask for updateTextStyle.

        Returns:
            tuple: (style dict, list of field names)
        """
        style: dict[str, Any] = {}
        fields: list[str] = []

        for name, api_name in (
            ("bold", "bold"),
            ("italic", "italic"),
            ("underline", "underline"),
            ("strikethrough", "strikethrough"),
        ):
            value = getattr(self, name)
            if value is not None:
                style[api_name] = value
                fields.append(api_name)

        if self.font_size is not None:
            style["fontSize"] = {"magnitude": self.font_size, "unit": "PT"}
            fields.append("fontSize")

        if self.font_family is not None:
            style["weightedFontFamily"] = {"fontFamily": self.font_family}
            fields.append("weightedFontFamily")

        if self.foreground_color is not None:
            style["foregroundColor"] = {"color": {"rgbColor": hex_to_rgb(self.foreground_color)}}
            fields.append("foregroundColor")

        if self.background_color is not None:
            style["backgroundColor"] = {"color": {"rgbColor": hex_to_rgb(self.background_color)}}
            fields.append("backgroundColor")

        if self.link_url is not None:
            style["link"] = {"url": self.link_url}
            fields.append("link")

        return style, fields

    @classmethod
    def from_api(cls, text_style: dict[str, Any] | None) -> TextStyle:
        """Normalize a Docs API textStyle into the sparse form."""
        if not text_style:
            return cls()

        values: dict[str, Any] = {}
        for name in ("bold", "italic", "underline", "strikethrough"):
            if text_style.get(name):
                values[name] = True

        fg = text_style.get("foregroundColor", {}).get("color", {}).get("rgbColor")
        if fg is not None:
            hex_color = rgb_to_hex(fg)
            if hex_color != "#000000":
                values["foreground_color"] = hex_color

        bg = text_style.get("backgroundColor", {}).get("color", {}).get("rgbColor")
        if bg is not None:
            values["background_color"] = rgb_to_hex(bg)

        magnitude = text_style.get("fontSize", {}).get("magnitude")
        if magnitude:
            values["font_size"] = magnitude

        family = text_style.get("weightedFontFamily", {}).get("fontFamily")
        if family:
            values["font_family"] = family

        url = text_style.get("link", {}).get("url")
        if url:
            values["link_url"] = url

        return cls(**values)


@dataclass(frozen=True)
class Run:
    text: str
    style: TextStyle = field(default_factory=TextStyle)


@dataclass(frozen=True)
class ImageInfo:
    uri: str
    width: float | None = None
    height: float | None = None


@dataclass(frozen=True)
class PositionedImage:
    """An image anchored at a character offset within its owning paragraph."""

    image: ImageInfo
    offset: int


@dataclass
class ParagraphBlock:
    runs: list[Run] = field(default_factory=list)
    images: list[PositionedImage] = field(default_factory=list)
    named_style: str = DEFAULT_NAMED_STYLE

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def is_blank(self) -> bool:
        return not self.text and not self.images


@dataclass
class CellContent:
    runs: list[Run] = field(default_factory=list)
    images: list[ImageInfo] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def is_empty(self) -> bool:
        return not self.runs and not self.images

    @property
    def has_style(self) -> bool:
        return any(not run.style.is_empty() for run in self.runs)


@dataclass
class TableModel:
    rows: int
    columns: int
    cells: list[list[CellContent]]

    @classmethod
    def from_grid(cls, grid: list[list[CellContent]]) -> TableModel:
        """Build a rectangular model, padding short rows with empty cells."""
        columns = max((len(row) for row in grid), default=0)
        padded = [list(row) + [CellContent() for _ in range(columns - len(row))] for row in grid]
        return cls(rows=len(padded), columns=columns, cells=padded)


@dataclass
class ListItemRange:
    """
    A list item's character range; ``end`` stays None until the item closes.

    ``group`` numbers the top-level list an item belongs to; nested items of
    the same kind share their parent's native list.
    """

    start: int
    nesting_level: int
    ordered: bool
    end: int | None = None
    group: int = 0

    @property
    def is_closed(self) -> bool:
        return self.end is not None


@dataclass
class PendingTableFill:
    """A table skeleton that was inserted but whose cells still need text."""

    insert_index: int
    data: list[list[str]]
    rows: int
    columns: int
    has_bold_headers: bool = False
