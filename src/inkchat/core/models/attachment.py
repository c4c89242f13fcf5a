"""附件与矢量几何模型

Attachment 创建后不可变，由引用它的消息持有。
RawVectorPath 是手写笔画进入归一化流水线前的中间表示。
"""

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat


class Attachment(BaseModel):
    """SVG 附件描述符"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="附件 ID，ULID 格式")
    url: str = Field(description="由对象存储 key 确定性派生的访问地址")
    filename: str = Field(description="原始文件名")


class RawVectorPath(BaseModel):
    """一条手写笔画：源坐标系中的折线 + 笔宽"""

    points: list[tuple[FiniteFloat, FiniteFloat]] = Field(
        default_factory=list,
        description="按书写顺序排列的 (x, y) 点",
    )
    stroke_width: float = Field(default=3.0, gt=0, allow_inf_nan=False, description="笔宽")
    color: str = Field(
        default="#000000",
        pattern=r"^(#[0-9A-Fa-f]{3,8}|[A-Za-z]+)$",
        description="笔画颜色（十六进制或颜色名）",
    )


class Bounds(BaseModel):
    """源坐标系中的包围盒"""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    width: float
    height: float


class FitTransform(BaseModel):
    """把包围盒等比缩放并居中到目标正方形的变换"""

    model_config = ConfigDict(frozen=True)

    scale: float
    offset_x: float
    offset_y: float
