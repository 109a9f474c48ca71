"""Registry of directive patterns.

Each pattern declares what it expects at fixed token positions relative to
the command keyword (position 0), which positions bind parameters, a
semantic validator and the constructor of its node.
"""

import re
from dataclasses import dataclass
from typing import Callable, Union

from naturalff import nodes

Params = dict[str, str]
Expected = Union[str, re.Pattern, None]

OVERLAY_POSITIONS = (
    "top-left", "top-right", "bottom-left", "bottom-right",
    "center", "left", "right", "top", "bottom", "default",
)
TEXT_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right", "center")
OUTPUT_FORMATS = (
    "mp4", "mov", "mkv", "webm", "gif", "mp3", "wav", "flac",
    "aac", "ogg", "png", "jpg", "webp", "avi", "mp4a",
)
INPUT_EXTENSIONS = (
    "mp4", "avi", "mov", "mkv", "webm", "mp3", "wav", "flac",
    "aac", "jpg", "jpeg", "png", "gif", "srt", "ass", "vtt",
)
NO_FILE_SELECTED = "/"

MIN_DECIMATE_CYCLE = 2
MAX_DECIMATE_CYCLE = 30

TIME_RE = re.compile(r"^(?:(?:(\d+):)?(\d{1,2}):)?(\d{1,2})(?:\.(\d+))?$")
_QUOTED_RE = re.compile(r'".*"')


def _one_of(values: tuple[str, ...], flags: int = 0) -> re.Pattern:
    return re.compile("|".join(re.escape(v) for v in values), flags)


@dataclass(frozen=True)
class TokenExpectation:
    """What a pattern wants at one token position.

    ``expected`` is a literal compared with ``==``, a regex that must match
    the whole token, or None for "any token". Optional expectations sharing
    a ``group`` are matched or skipped together; skipped ones bind
    ``default``.
    """

    position: int
    expected: Expected
    param_name: str | None = None
    optional: bool = False
    default: str | None = None
    group: str | None = None

    def matches(self, text: str) -> bool:
        if self.expected is None:
            return True
        if isinstance(self.expected, re.Pattern):
            return self.expected.fullmatch(text) is not None
        return text == self.expected


@dataclass(frozen=True)
class CommandPattern:
    name: str
    expected_tokens: tuple[TokenExpectation, ...]
    validate: Callable[[Params], Union[bool, str]]
    create_node: Callable[[Params], "nodes.CommandNode"]

    @property
    def max_position(self) -> int:
        return max((t.position for t in self.expected_tokens), default=0)

    @property
    def max_required(self) -> int:
        return max((t.position for t in self.expected_tokens if not t.optional), default=0)


# --- time helpers ---------------------------------------------------------


def _time_parts(value: str) -> tuple[int, int, float] | None:
    if not TIME_RE.match(value):
        return None
    parts = value.split(":")
    seconds = float(parts[-1])
    minutes = int(parts[-2]) if len(parts) > 1 else 0
    hours = int(parts[-3]) if len(parts) > 2 else 0
    return hours, minutes, seconds


def is_valid_time(value: str) -> bool:
    """Accept ``SS``, ``MM:SS`` and ``HH:MM:SS``, each with optional ``.fraction``."""
    parts = _time_parts(value)
    if parts is None:
        return False
    hours, minutes, seconds = parts
    return seconds < 60 and minutes < 60 and hours < 24


def to_seconds(value: str) -> float:
    parts = _time_parts(value)
    if parts is None:
        return float(value)
    hours, minutes, seconds = parts
    return hours * 3600 + minutes * 60 + seconds


# --- validators -----------------------------------------------------------


def _always_valid(params: Params) -> bool:
    return True


def validate_trim(params: Params) -> bool | str:
    start, end = params["start"], params["end"]
    for value in (start, end):
        if not is_valid_time(value):
            return f"Invalid time {value!r}"
    if to_seconds(end) <= to_seconds(start):
        return f"End time {end} must be after start time {start}"
    return True


def validate_deduplicate(params: Params) -> bool | str:
    cycle = int(params["cycle"])
    if cycle < MIN_DECIMATE_CYCLE or cycle > MAX_DECIMATE_CYCLE:
        return "Invalid cycle"
    return True


def validate_scale(params: Params) -> bool | str:
    width, height = (int(v) for v in params["resolution"].split("x"))
    if width <= 0 or height <= 0:
        return "Dimensions must be positive"
    return True


def validate_burn(params: Params) -> bool | str:
    content = params["content"]
    if params["content_type"] == "subtitles":
        return re.search(r'\.(srt|ass)"$', content) is not None
    if params["content_type"] == "image":
        return re.search(r'\.(png|jpeg|jpg)"$', content) is not None
    return True


# --- node constructors ----------------------------------------------------


def _create_input(params: Params) -> nodes.Input:
    selector = params["file_selector"]
    filename = None if selector == NO_FILE_SELECTED else selector.strip('"')
    return nodes.Input(file_selector=selector, filename=filename)


def _create_scale(params: Params) -> nodes.Scale:
    width, height = params["resolution"].split("x")
    return nodes.Scale(width=int(width), height=int(height), aspect_ratio=params["aspect_ratio"])


def _create_text_overlay(params: Params) -> nodes.TextOverlay:
    return nodes.TextOverlay(
        text=params["text"],
        position=params["position"],
        alignment=params["alignment"],
        margin=int(params["margin"].removesuffix("px")),
    )


PATTERNS: tuple[CommandPattern, ...] = (
    CommandPattern(
        name="remove_frames",
        expected_tokens=(
            TokenExpectation(1, "every"),
            TokenExpectation(2, re.compile(r"\d+"), "cycle"),
        ),
        validate=validate_deduplicate,
        create_node=lambda p: nodes.Deduplicate(cycle=int(p["cycle"])),
    ),
    CommandPattern(
        name="input",
        expected_tokens=(
            TokenExpectation(
                1,
                re.compile(
                    r'/|"?[^"]*\.(?:' + "|".join(INPUT_EXTENSIONS) + r')"?',
                    re.IGNORECASE,
                ),
                "file_selector",
            ),
        ),
        validate=_always_valid,
        create_node=_create_input,
    ),
    CommandPattern(
        name="trim",
        expected_tokens=(
            TokenExpectation(1, "from"),
            TokenExpectation(2, re.compile(r".+"), "start"),
            TokenExpectation(3, "to"),
            TokenExpectation(4, re.compile(r".+"), "end"),
        ),
        validate=validate_trim,
        create_node=lambda p: nodes.Trim(start=p["start"], end=p["end"]),
    ),
    CommandPattern(
        name="convert",
        expected_tokens=(
            TokenExpectation(1, "to"),
            TokenExpectation(2, _one_of(OUTPUT_FORMATS), "output_format"),
        ),
        validate=_always_valid,
        create_node=lambda p: nodes.Convert(output_format=p["output_format"]),
    ),
    CommandPattern(
        name="compress",
        expected_tokens=(
            TokenExpectation(1, re.compile(r"video|audio"), "bucket"),
        ),
        validate=_always_valid,
        create_node=lambda p: nodes.Compress(bucket=p["bucket"]),
    ),
    CommandPattern(
        name="scale",
        expected_tokens=(
            TokenExpectation(1, "to"),
            TokenExpectation(2, re.compile(r"\d+x\d+"), "resolution"),
            TokenExpectation(3, re.compile(r"preserve|ignore"), "aspect_ratio"),
            TokenExpectation(4, "aspect"),
            TokenExpectation(5, "ratio"),
        ),
        validate=validate_scale,
        create_node=_create_scale,
    ),
    CommandPattern(
        name="crop",
        expected_tokens=(
            TokenExpectation(1, re.compile(r"\d+px"), "crop_size"),
            TokenExpectation(2, "from"),
            TokenExpectation(3, re.compile(r"top|bottom|left|right|width|height|each"), "side"),
        ),
        validate=_always_valid,
        create_node=lambda p: nodes.Crop(
            size=int(p["crop_size"].removesuffix("px")), side=p["side"]
        ),
    ),
    CommandPattern(
        name="fade",
        expected_tokens=(
            TokenExpectation(1, re.compile(r"in|out|in/out"), "operation"),
            TokenExpectation(2, "for"),
            TokenExpectation(3, re.compile(r"\d+(?:\.\d+)?s"), "duration"),
        ),
        validate=_always_valid,
        create_node=lambda p: nodes.Fade(
            operation=p["operation"], duration=float(p["duration"].removesuffix("s"))
        ),
    ),
    CommandPattern(
        name="burn",
        expected_tokens=(
            TokenExpectation(1, re.compile(r"text|image|subtitles"), "content_type"),
            TokenExpectation(2, _QUOTED_RE, "content"),
            TokenExpectation(3, "at"),
            TokenExpectation(4, _one_of(OVERLAY_POSITIONS), "position"),
        ),
        validate=validate_burn,
        create_node=lambda p: nodes.ContentOverlay(
            content_type=p["content_type"], content=p["content"], position=p["position"]
        ),
    ),
    CommandPattern(
        name="add_text",
        expected_tokens=(
            TokenExpectation(1, _QUOTED_RE, "text"),
            TokenExpectation(2, "at"),
            TokenExpectation(3, _one_of(TEXT_POSITIONS), "position"),
            TokenExpectation(4, "aligned", optional=True, group="alignment"),
            TokenExpectation(
                5, re.compile(r"left|center|right"), "alignment",
                optional=True, default="left", group="alignment",
            ),
            TokenExpectation(6, "with", optional=True, group="margin"),
            TokenExpectation(7, "margin", optional=True, group="margin"),
            TokenExpectation(
                8, re.compile(r"\d+px"), "margin",
                optional=True, default="0px", group="margin",
            ),
        ),
        validate=_always_valid,
        create_node=_create_text_overlay,
    ),
)


def build_registry(patterns: tuple[CommandPattern, ...]) -> dict[str, CommandPattern]:
    registry: dict[str, CommandPattern] = {}
    for pattern in patterns:
        if pattern.name in registry:
            raise ValueError(f"Duplicate command pattern: {pattern.name}")
        registry[pattern.name] = pattern
    return registry


REGISTRY: dict[str, CommandPattern] = build_registry(PATTERNS)
