"""Typed command nodes, one frozen dataclass per directive kind.

A node is created once by its pattern's constructor (or synthesized by the
pipeline, for OptimizedCrop and Comment) and never mutated afterwards.
"""

from dataclasses import asdict, dataclass
from typing import Any, Literal, Union

CropSide = Literal["top", "bottom", "left", "right", "width", "height", "each"]
FadeOperation = Literal["in", "out", "in/out"]
ContentType = Literal["text", "image", "subtitles"]
Alignment = Literal["left", "center", "right"]


class _Node:
    kind: str = ""

    def params(self) -> dict[str, Any]:
        return asdict(self)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "params": self.params()}


@dataclass(frozen=True)
class Trim(_Node):
    start: str
    end: str
    kind = "Trim"


@dataclass(frozen=True)
class Convert(_Node):
    output_format: str
    kind = "Convert"


@dataclass(frozen=True)
class Compress(_Node):
    bucket: Literal["video", "audio"]
    kind = "Compress"


@dataclass(frozen=True)
class Scale(_Node):
    width: int
    height: int
    aspect_ratio: Literal["preserve", "ignore"]
    kind = "Scale"


@dataclass(frozen=True)
class Crop(_Node):
    size: int
    side: CropSide
    kind = "Crop"


@dataclass(frozen=True)
class OptimizedCrop(_Node):
    left: int
    right: int
    top: int
    bottom: int
    detect_borders: bool = False
    kind = "OptimizedCrop"


@dataclass(frozen=True)
class Fade(_Node):
    operation: FadeOperation
    duration: float
    kind = "Fade"


@dataclass(frozen=True)
class ContentOverlay(_Node):
    content_type: ContentType
    content: str
    position: str
    kind = "ContentOverlay"

    @property
    def path(self) -> str:
        """Content with its surrounding quotes removed."""
        return self.content.strip('"')


@dataclass(frozen=True)
class TextOverlay(_Node):
    text: str
    position: str
    alignment: Alignment = "left"
    margin: int = 0
    kind = "TextOverlay"


@dataclass(frozen=True)
class Deduplicate(_Node):
    cycle: int
    kind = "Deduplicate"


@dataclass(frozen=True)
class Input(_Node):
    file_selector: str
    filename: str | None = None
    kind = "Input"


@dataclass(frozen=True)
class Comment(_Node):
    content: str
    kind = "Comment"


CommandNode = Union[
    Trim,
    Convert,
    Compress,
    Scale,
    Crop,
    OptimizedCrop,
    Fade,
    ContentOverlay,
    TextOverlay,
    Deduplicate,
    Input,
    Comment,
]
