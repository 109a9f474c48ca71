"""Shared data types used across naturalff."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from naturalff.nodes import CommandNode


class TokenKind(str, Enum):
    COMMENT = "comment"
    STRING = "string"
    WORD = "word"


@dataclass(frozen=True)
class Token:
    """One lexical unit, with the 1-based line and 0-based column of its start."""

    kind: TokenKind
    text: str
    line: int = 1
    offset: int = 0


@dataclass(frozen=True)
class Diagnostic:
    """Structured form of one per-directive error."""

    message: str
    command: str
    token: str | None = None
    line: int | None = None
    offset: int | None = None
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "command": self.command,
            "token": self.token,
            "line": self.line,
            "offset": self.offset,
            "detail": self.detail,
        }


@dataclass
class ParseResult:
    """Nodes, error strings and echoed directives from one parse."""

    commands: list[CommandNode] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    source_snippets: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass(frozen=True)
class MediaDescriptor:
    """Read-only facts about the source file, as reported by a prober."""

    filename: str | None = None
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    fps: float | None = None
    codec_video: str | None = None
    codec_audio: str | None = None

    @property
    def has_resolution(self) -> bool:
        return bool(self.width) and bool(self.height)

    @property
    def resolution(self) -> str | None:
        if not self.has_resolution:
            return None
        return f"{self.width}x{self.height}"

    @classmethod
    def from_resolution(cls, resolution: str, **kwargs: Any) -> MediaDescriptor:
        """Build a descriptor from a ``WxH`` string such as ``1920x1080``."""
        try:
            w, h = resolution.lower().split("x")
            width, height = int(w), int(h)
        except ValueError:
            raise ValueError(f"Invalid resolution {resolution!r}, expected WxH") from None
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid resolution {resolution!r}, dimensions must be positive")
        return cls(width=width, height=height, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MediaDescriptor:
        """Load the JSON shape used by the web API and manifests.

        ``resolution`` ("WxH") takes precedence over separate width/height.
        ``codecs`` may be given as ``{"video": ..., "audio": ...}``.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Descriptor must be an object, got {type(data).__name__}")
        codecs = data.get("codecs") or {}
        if not isinstance(codecs, dict):
            raise ValueError(f"Descriptor codecs must be an object, got {type(codecs).__name__}")
        kwargs: dict[str, Any] = {
            "filename": data.get("filename"),
            "duration": float(data["duration"]) if data.get("duration") is not None else None,
            "fps": float(data["fps"]) if data.get("fps") is not None else None,
            "codec_video": codecs.get("video", data.get("codec_video")),
            "codec_audio": codecs.get("audio", data.get("codec_audio")),
        }
        if data.get("resolution"):
            return cls.from_resolution(data["resolution"], **kwargs)
        width = data.get("width")
        height = data.get("height")
        return cls(
            width=int(width) if width is not None else None,
            height=int(height) if height is not None else None,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "resolution": self.resolution,
            "width": self.width,
            "height": self.height,
            "duration": self.duration,
            "fps": self.fps,
            "codecs": {"video": self.codec_video, "audio": self.codec_audio},
        }


@dataclass
class CropAccumulator:
    """Running per-edge crop totals, in pixels."""

    left: int = 0
    right: int = 0
    top: int = 0
    bottom: int = 0

    @property
    def horizontal(self) -> int:
        return self.left + self.right

    @property
    def vertical(self) -> int:
        return self.top + self.bottom


class Destination(str, Enum):
    INPUT = "input"
    GLOBAL = "global"
    VIDEO_FILTER = "video-filter"
    AUDIO_FILTER = "audio-filter"
    OUTPUT_FORMAT = "output-format"
    OUTPUT_CODEC = "output-codec"


# Ordering key for the final argument list.
STAGE_WEIGHTS: dict[Destination, int] = {
    Destination.INPUT: 0,
    Destination.GLOBAL: 1,
    Destination.VIDEO_FILTER: 2,
    Destination.AUDIO_FILTER: 3,
    Destination.OUTPUT_FORMAT: 4,
    Destination.OUTPUT_CODEC: 5,
}


@dataclass(frozen=True)
class ProcessedArgument:
    """One argument group headed for the command line.

    Filter fragments carry the fragment string as their only element.
    """

    destination: Destination
    args: tuple[str, ...]
    stage_weight: int = -1

    def __post_init__(self) -> None:
        if self.stage_weight < 0:
            object.__setattr__(self, "stage_weight", STAGE_WEIGHTS[self.destination])

    @property
    def value(self) -> str:
        return " ".join(self.args)
