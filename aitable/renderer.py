from PIL import Image, ImageDraw, ImageFont
from typing import Any, Dict, List, Optional, Sequence, Tuple

from aitable.table import ZONE_KEY, is_zone_row

# Falls back to Pillow's bundled font when DejaVu is not installed.
try:
    DEFAULT_FONT = ImageFont.truetype("DejaVuSans.ttf", 14)
    HEADER_FONT = ImageFont.truetype("DejaVuSans-Bold.ttf", 16)
except IOError:
    DEFAULT_FONT = ImageFont.load_default()
    HEADER_FONT = DEFAULT_FONT

CELL_PADDING = 8
LINE_WIDTH = 1
ROW_HEIGHT_MIN = 28
HEADER_FILL = (245, 245, 245)
ZONE_FILL = (230, 230, 230)
# A4 portrait at the default 1200px width
PAGE_HEIGHT = 1697


def _line_height(font: ImageFont.ImageFont) -> int:
    bbox = font.getbbox("Ag")
    return bbox[3] - bbox[1]


def measure_text(text: str, font: ImageFont.ImageFont, max_width: int) -> Tuple[List[str], int]:
    """Wrap text into lines that fit max_width and return wrapped lines and height."""
    words = text.split()
    if not words:
        return [""], _line_height(font) + 2 * CELL_PADDING

    def text_width(s: str) -> int:
        bbox = font.getbbox(s)
        return bbox[2] - bbox[0]

    lines = []
    line = ""
    for w in words:
        test = (line + " " + w).strip()
        if text_width(test) + 2 * CELL_PADDING > max_width and line:
            lines.append(line)
            line = w
        else:
            line = test
    if line:
        lines.append(line)

    height = len(lines) * _line_height(font) + 2 * CELL_PADDING
    return lines, height


def _draw_lines(draw: ImageDraw.ImageDraw, lines: List[str], left: int, top: int, font: ImageFont.ImageFont) -> None:
    line_y = top
    for ln in lines:
        draw.text((left, line_y), ln, font=font, fill="black")
        line_y += _line_height(font)


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value)


def _layout(
    headers: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    title: Optional[str],
    max_width: int,
) -> Tuple[int, int, int, List[int]]:
    """Column width, title height, header height and per-row heights."""
    n_cols = max(1, len(headers))
    col_width = max_width // n_cols

    header_height = max([measure_text(h or "", HEADER_FONT, col_width)[1] for h in headers] or [ROW_HEIGHT_MIN]) + 2

    row_heights = []
    for row in rows:
        if is_zone_row(row):
            _, h = measure_text(_cell_text(row[ZONE_KEY]), HEADER_FONT, max_width)
            row_heights.append(max(h, ROW_HEIGHT_MIN))
            continue
        cell_heights = [ROW_HEIGHT_MIN]
        for h in headers:
            _, ch = measure_text(_cell_text(row.get(h)), DEFAULT_FONT, col_width)
            cell_heights.append(ch)
        row_heights.append(max(cell_heights))

    title_height = 0
    if title:
        _, th = measure_text(title, HEADER_FONT, max_width)
        title_height = th + 12

    return col_width, title_height, header_height, row_heights


def _frame_height(title_height: int, header_height: int) -> int:
    # everything on a page except the data rows
    return title_height + header_height + 2 * LINE_WIDTH + 20


def _draw_table(
    headers: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    row_heights: Sequence[int],
    layout: Tuple[int, int, int],
    title: Optional[str],
    max_width: int,
    min_height: int = 0,
) -> Image.Image:
    col_width, title_height, header_height = layout
    total_height = _frame_height(title_height, header_height) + sum(row_heights) + len(rows) * LINE_WIDTH

    img = Image.new("RGB", (max_width, max(total_height, min_height)), "white")
    draw = ImageDraw.Draw(img)

    y = 10
    if title:
        draw.text((10, y), title, font=HEADER_FONT, fill="black")
        y += title_height

    # header band
    draw.rectangle([0, y, max_width, y + header_height], fill=HEADER_FILL)
    x = 0
    for h in headers:
        lines, _ = measure_text(h or "", HEADER_FONT, col_width)
        _draw_lines(draw, lines, x + CELL_PADDING, y + CELL_PADDING, HEADER_FONT)
        draw.line([x + col_width, y, x + col_width, y + header_height], fill="black", width=LINE_WIDTH)
        x += col_width
    y += header_height
    draw.line([0, y, max_width, y], fill="black", width=LINE_WIDTH)

    for row, row_h in zip(rows, row_heights):
        if is_zone_row(row):
            draw.rectangle([0, y, max_width, y + row_h], fill=ZONE_FILL)
            lines, _ = measure_text(_cell_text(row[ZONE_KEY]), HEADER_FONT, max_width)
            _draw_lines(draw, lines, CELL_PADDING, y + CELL_PADDING, HEADER_FONT)
        else:
            x = 0
            for h in headers:
                lines, _ = measure_text(_cell_text(row.get(h)), DEFAULT_FONT, col_width)
                _draw_lines(draw, lines, x + CELL_PADDING, y + CELL_PADDING, DEFAULT_FONT)
                draw.line([x + col_width, y, x + col_width, y + row_h], fill="black", width=LINE_WIDTH)
                x += col_width
        draw.line([0, y + row_h, max_width, y + row_h], fill="black", width=LINE_WIDTH)
        y += row_h

    return img


def render_table_image(
    headers: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    title: Optional[str] = None,
    max_width: int = 1200,
) -> Image.Image:
    """
    Render the table to a PIL Image.
    - headers: column header strings
    - rows: row dicts; zone rows become a bold, shaded band spanning every column
    """
    col_width, title_height, header_height, row_heights = _layout(headers, rows, title, max_width)
    return _draw_table(headers, rows, row_heights, (col_width, title_height, header_height), title, max_width)


def render_table_pages(
    headers: Sequence[str],
    rows: Sequence[Dict[str, Any]],
    title: Optional[str] = None,
    max_width: int = 1200,
    page_height: int = PAGE_HEIGHT,
) -> List[Image.Image]:
    """
    Render the table as a list of fixed-height pages.

    Every page repeats the title and the header band. A row taller than a
    page gets a page of its own, stretched to fit.
    """
    col_width, title_height, header_height, row_heights = _layout(headers, rows, title, max_width)
    layout = (col_width, title_height, header_height)
    budget = page_height - _frame_height(title_height, header_height)

    pages: List[Image.Image] = []
    chunk: List[Dict[str, Any]] = []
    chunk_heights: List[int] = []
    used = 0
    for row, row_h in zip(rows, row_heights):
        cost = row_h + LINE_WIDTH
        if chunk and used + cost > budget:
            pages.append(_draw_table(headers, chunk, chunk_heights, layout, title, max_width, page_height))
            chunk, chunk_heights, used = [], [], 0
        chunk.append(row)
        chunk_heights.append(row_h)
        used += cost

    if chunk or not pages:
        pages.append(_draw_table(headers, chunk, chunk_heights, layout, title, max_width, page_height))
    return pages
