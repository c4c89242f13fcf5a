"""SVG 几何归一化

把任意尺寸的 SVG 源文档映射到 300x300 的规范坐标空间：
等比缩放使长边恰好填满正方形，短边居中。

上传路径与手写路径共用 fit_to_square()，两者的缩放/居中语义必须一致。
所有函数都是纯函数，相同输入产生逐字节相同的输出。
"""

import math
import re

from .config import CANONICAL_SIZE, DEFAULT_SOURCE_SIZE, NUMBER_PRECISION
from .exceptions import GeometryError
from .models.attachment import Bounds, FitTransform

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

_SVG_OPEN_RE = re.compile(r"<svg(?=[\s/>])([^>]*)>")
_GROUP_OPEN_RE = re.compile(r"<g(?=[\s/>])([^>]*)>")
_ATTR_RE = re.compile(
    r"""([A-Za-z_:][-A-Za-z0-9_:.]*)\s*=\s*(?:"([^"]*)"|'([^']*)')"""
)
_TRANSFORM_ATTR_RE = re.compile(
    r"""(?<![-\w:])transform\s*=\s*(?:"([^"]*)"|'([^']*)')"""
)
_NUMBER_RE = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_VIEWBOX_SPLIT_RE = re.compile(r"[\s,]+")

# 根元素上由归一化重写的属性，不保留源值
_REWRITTEN_ROOT_ATTRS = {"viewBox", "width", "height", "xmlns"}


def format_number(value: float) -> str:
    """固定精度格式化数字，去掉多余的 0，-0 折叠为 0"""
    text = f"{value:.{NUMBER_PRECISION}f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def fit_to_square(bounds: Bounds, size: float = CANONICAL_SIZE) -> FitTransform:
    """计算把 bounds 等比缩放并居中到 size x size 正方形的变换

    Args:
        bounds: 源坐标系包围盒
        size: 目标正方形边长

    Returns:
        FitTransform(scale, offset_x, offset_y)

    Raises:
        GeometryError: 包围盒退化（长边为 0）或尺寸为负
    """
    longest = max(bounds.width, bounds.height)
    if longest <= 0 or bounds.width < 0 or bounds.height < 0:
        raise GeometryError("degenerate bounds")

    scale = size / longest
    offset_x = (size - bounds.width * scale) / 2 - bounds.x * scale
    offset_y = (size - bounds.height * scale) / 2 - bounds.y * scale
    return FitTransform(scale=scale, offset_x=offset_x, offset_y=offset_y)


def transform_string(transform: FitTransform) -> str:
    """生成 SVG transform 属性值"""
    return (
        f"translate({format_number(transform.offset_x)},"
        f"{format_number(transform.offset_y)}) "
        f"scale({format_number(transform.scale)})"
    )


def _parse_attrs(attr_text: str) -> list[tuple[str, str]]:
    """按源顺序解析标签属性"""
    attrs = []
    for match in _ATTR_RE.finditer(attr_text):
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attrs.append((match.group(1), value))
    return attrs


def _parse_number(raw: str, what: str) -> float:
    match = _NUMBER_RE.match(raw)
    if match is None:
        raise GeometryError(f"unparseable {what}: {raw!r}")
    value = float(match.group(1))
    if not math.isfinite(value):
        raise GeometryError(f"unparseable {what}: {raw!r}")
    return value


def _find_root(source: str) -> re.Match[str]:
    match = _SVG_OPEN_RE.search(source)
    if match is None:
        raise GeometryError("unparseable source: no <svg> root element")
    if match.group(1).rstrip().endswith("/"):
        raise GeometryError("unparseable source: empty <svg> root element")
    return match


def _bounds_from_attrs(attrs: dict[str, str]) -> Bounds:
    view_box = attrs.get("viewBox")
    if view_box is not None:
        parts = [p for p in _VIEWBOX_SPLIT_RE.split(view_box.strip()) if p]
        if len(parts) != 4:
            raise GeometryError(f"unparseable viewBox: {view_box!r}")
        x, y, width, height = (_parse_number(p, "viewBox") for p in parts)
        return Bounds(x=x, y=y, width=width, height=height)

    width = DEFAULT_SOURCE_SIZE
    height = DEFAULT_SOURCE_SIZE
    if "width" in attrs:
        width = _parse_number(attrs["width"], "width")
    if "height" in attrs:
        height = _parse_number(attrs["height"], "height")
    return Bounds(x=0.0, y=0.0, width=width, height=height)


def parse_source_bounds(source: str) -> Bounds:
    """确定源文档包围盒

    优先 viewBox，其次根元素 width/height，否则默认原点处 100x100。
    """
    root = _find_root(source)
    return _bounds_from_attrs(dict(_parse_attrs(root.group(1))))


def _quote(value: str) -> str:
    return value.replace('"', "&quot;")


def _root_tag(attrs: list[tuple[str, str]]) -> str:
    size = format_number(CANONICAL_SIZE)
    parts = [f'viewBox="0 0 {size} {size}"', f'xmlns="{SVG_NAMESPACE}"']
    for name, value in attrs:
        if name in _REWRITTEN_ROOT_ATTRS:
            continue
        parts.append(f'{name}="{_quote(value)}"')
    return "<svg " + " ".join(parts) + ">"


def _inject_into_group(group_attr_text: str, transform: str) -> str:
    """把 transform 注入已有 <g>；已有 transform 时前置组合"""
    existing = _TRANSFORM_ATTR_RE.search(group_attr_text)
    if existing is None:
        return f'<g{group_attr_text.rstrip()} transform="{transform}">'
    current = existing.group(1) if existing.group(1) is not None else existing.group(2)
    combined = f"{transform} {current}".strip()
    rewritten = (
        group_attr_text[: existing.start()]
        + f'transform="{combined}"'
        + group_attr_text[existing.end():]
    )
    return f"<g{rewritten}>"


def _first_open_group(source: str, start: int) -> re.Match[str] | None:
    for match in _GROUP_OPEN_RE.finditer(source, start):
        if not match.group(1).rstrip().endswith("/"):
            return match
    return None


def normalize(source: str) -> str:
    """把 SVG 源文档归一化为 viewBox="0 0 300 300" 的规范文档

    Args:
        source: SVG 文本

    Returns:
        规范 SVG 文本

    Raises:
        GeometryError: 无 <svg> 根、边界无法解析或退化
    """
    root = _find_root(source)
    root_attrs = _parse_attrs(root.group(1))
    bounds = _bounds_from_attrs(dict(root_attrs))
    transform = transform_string(fit_to_square(bounds))

    head = source[: root.start()] + _root_tag(root_attrs)
    body = source[root.end():]

    group = _first_open_group(body, 0)
    if group is not None:
        return (
            head
            + body[: group.start()]
            + _inject_into_group(group.group(1), transform)
            + body[group.end():]
        )

    close_at = body.rfind("</svg>")
    if close_at == -1:
        raise GeometryError("unparseable source: missing </svg>")
    return (
        head
        + f'<g transform="{transform}">'
        + body[:close_at]
        + "</g>"
        + body[close_at:]
    )
