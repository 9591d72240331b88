"""
SVG serialization of page geometry.

Documents carry explicit millimeter width/height and a viewBox in millimeters,
and declare the SVG namespace so saved files open as standalone images.
"""

from pathlib import Path
from typing import List, Union

from .geometry import PageGeometry

__all__ = ['SVG_NAMESPACE', 'render_svg', 'export_filename']

SVG_NAMESPACE = 'http://www.w3.org/2000/svg'
STROKE_WIDTH_MM = 0.1


def _mm(value: float) -> str:
    text = f"{value:.4f}".rstrip('0').rstrip('.')
    return '0' if text in ('', '-0') else text


def render_svg(geometry: PageGeometry) -> str:
    """Serialize one page to a standalone SVG document."""
    width = _mm(geometry.width_mm)
    height = _mm(geometry.height_mm)
    parts: List[str] = [
        f'<svg xmlns="{SVG_NAMESPACE}" width="{width}mm" height="{height}mm" '
        f'viewBox="0 0 {width} {height}">',
        f'<g fill="none" stroke="black" stroke-width="{_mm(STROKE_WIDTH_MM)}">',
    ]
    for line in geometry.lines:
        parts.append(
            f'<line x1="{_mm(line.x1)}" y1="{_mm(line.y1)}" x2="{_mm(line.x2)}" y2="{_mm(line.y2)}"/>'
        )
    for circle in geometry.circles:
        parts.append(f'<circle cx="{_mm(circle.cx)}" cy="{_mm(circle.cy)}" r="{_mm(circle.r)}"/>')
    parts.append('</g>')
    parts.append('</svg>')
    return '\n'.join(parts) + '\n'


def export_filename(source: Union[str, Path], page_index: int, ext: str = 'svg') -> str:
    """
    File name for an exported page: `<source base name>_page_<index>.<ext>`.

    Example:
        export_filename('songs/waltz.mid', 2) -> 'waltz_page_2.svg'
    """
    return f"{Path(source).stem}_page_{page_index}.{ext.lstrip('.')}"
