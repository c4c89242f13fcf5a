"""手写笔画 -> 矢量描述编码器

输出的 SVG 以笔画包围盒（含笔宽 padding）为 viewBox，
直接交给 geometry.normalize() 完成缩放与居中。
"""

from collections.abc import Sequence

from .config import MIN_STROKE_WIDTH, STROKE_PADDING
from .exceptions import EncodingError
from .geometry import SVG_NAMESPACE, format_number, normalize
from .models.attachment import Bounds, RawVectorPath


def stroke_bounds(strokes: Sequence[RawVectorPath]) -> Bounds:
    """计算所有笔画全部点的包围盒，并按笔宽加 padding

    padding = max(最大笔宽, MIN_STROKE_WIDTH) + STROKE_PADDING。
    padding 不会把最小坐标推到 0 以下；本身为负的点不会被裁掉。
    """
    points = [p for stroke in strokes for p in stroke.points]
    if not points:
        raise EncodingError("no strokes")

    min_x = min(x for x, _ in points)
    min_y = min(y for _, y in points)
    max_x = max(x for x, _ in points)
    max_y = max(y for _, y in points)

    widest = max((s.stroke_width for s in strokes), default=MIN_STROKE_WIDTH)
    padding = max(widest, MIN_STROKE_WIDTH) + STROKE_PADDING

    padded_min_x = max(min(0.0, min_x), min_x - padding)
    padded_min_y = max(min(0.0, min_y), min_y - padding)
    return Bounds(
        x=padded_min_x,
        y=padded_min_y,
        width=(max_x + padding) - padded_min_x,
        height=(max_y + padding) - padded_min_y,
    )


def _path_element(stroke: RawVectorPath) -> str:
    commands = " ".join(
        f"{'M' if i == 0 else 'L'}{format_number(x)},{format_number(y)}"
        for i, (x, y) in enumerate(stroke.points)
    )
    return (
        f'<path d="{commands}" stroke="{stroke.color}" '
        f'stroke-width="{format_number(stroke.stroke_width)}" fill="none" '
        f'stroke-linecap="round" stroke-linejoin="round"/>'
    )


def encode(strokes: Sequence[RawVectorPath]) -> str:
    """把笔画序列编码为原始 SVG 描述

    少于 2 个点的笔画（单击）不产生可见痕迹，不输出 path。

    Raises:
        EncodingError: 笔画序列为空，或没有任何可绘制的笔画
    """
    if not strokes:
        raise EncodingError("no strokes")

    drawable = [s for s in strokes if len(s.points) >= 2]
    if not drawable:
        raise EncodingError("no drawable strokes")

    bounds = stroke_bounds(strokes)
    view_box = " ".join(
        format_number(v) for v in (bounds.x, bounds.y, bounds.width, bounds.height)
    )
    paths = "".join(_path_element(s) for s in drawable)
    return (
        f'<svg xmlns="{SVG_NAMESPACE}" viewBox="{view_box}" '
        f'width="{format_number(bounds.width)}" height="{format_number(bounds.height)}">'
        f"{paths}</svg>"
    )


def encode_and_normalize(strokes: Sequence[RawVectorPath]) -> str:
    """完整手写流水线：编码 + 归一化"""
    return normalize(encode(strokes))
