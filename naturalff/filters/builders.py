"""Filter builders: map one command node to one ffmpeg argument group."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from naturalff import nodes
from naturalff.filters.optimizer import accumulate, check_bounds
from naturalff.models import CropAccumulator, Destination, MediaDescriptor, ProcessedArgument

logger = logging.getLogger(__name__)

CROPDETECT_FILTER = "cropdetect=24:16:0"
VIDEO_CRF = "23"
AUDIO_BITRATE = "128k"
TEXT_FONT_SIZE = 24
TEXT_COLOR = "white"
EDGE_PADDING = 10

# ffmpeg muxer names for formats whose name differs from the container name.
MUXERS = {
    "mkv": "matroska",
    "jpg": "image2",
    "jpeg": "image2",
    "png": "image2",
    "webp": "image2",
    "aac": "adts",
    "mp4a": "ipod",
}

# ASS numpad alignment used by force_style.
SUBTITLE_ALIGNMENT = {
    "bottom-left": 1,
    "bottom": 2,
    "bottom-right": 3,
    "left": 4,
    "center": 5,
    "right": 6,
    "top-left": 7,
    "top": 8,
    "top-right": 9,
}

_NEEDS_QUOTING_RE = re.compile(r"[\s:,;'\[\]=\\]")


@dataclass
class BuildContext:
    """Per-compile state shared by the builders: descriptor, warnings, labels.

    ``duration`` is the length of the output, which a trim makes shorter than
    the source. It defaults to the descriptor's duration.
    """

    descriptor: MediaDescriptor | None = None
    duration: float | None = None
    warnings: list[str] = field(default_factory=list)
    overlay_count: int = 0

    def __post_init__(self) -> None:
        if self.duration is None and self.descriptor is not None:
            self.duration = self.descriptor.duration

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def next_overlay_label(self) -> int:
        label = self.overlay_count
        self.overlay_count += 1
        return label


def format_number(value: float) -> str:
    """``3.0`` -> ``"3"``, ``1.25`` -> ``"1.25"``."""
    return str(value) if value != int(value) else str(int(value))


def quote_filter_value(value: str) -> str:
    """Single-quote a filter option value when it holds filtergraph syntax."""
    if not _NEEDS_QUOTING_RE.search(value):
        return value
    return "'" + value.replace("'", "'\\''") + "'"


def _filter(fragment: str) -> ProcessedArgument:
    return ProcessedArgument(Destination.VIDEO_FILTER, (fragment,))


# --- crop -----------------------------------------------------------------


def crop_filter_from_edges(acc: CropAccumulator, descriptor: MediaDescriptor | None) -> str:
    """Build ``crop=w:h:x:y`` removing the given pixels from each edge.

    With a known resolution the numbers are literal; otherwise the width and
    height are left as ``iw``/``ih`` expressions for ffmpeg to evaluate.

    Raises:
        CropBoundsError: the crop would consume a whole known dimension.
    """
    if descriptor is not None and descriptor.has_resolution:
        check_bounds(acc, descriptor)
        width = str(descriptor.width - acc.horizontal)
        height = str(descriptor.height - acc.vertical)
    else:
        width = f"iw-{acc.horizontal}" if acc.horizontal else "iw"
        height = f"ih-{acc.vertical}" if acc.vertical else "ih"
    return f"crop={width}:{height}:{acc.left}:{acc.top}"


def build_crop(node: nodes.Crop, ctx: BuildContext) -> ProcessedArgument:
    if node.size == 0:
        return _filter(CROPDETECT_FILTER)
    return _filter(crop_filter_from_edges(accumulate([node]), ctx.descriptor))


def build_optimized_crop(node: nodes.OptimizedCrop, ctx: BuildContext) -> ProcessedArgument:
    acc = CropAccumulator(left=node.left, right=node.right, top=node.top, bottom=node.bottom)
    if not (acc.horizontal or acc.vertical):
        return _filter(CROPDETECT_FILTER)
    fragment = crop_filter_from_edges(acc, ctx.descriptor)
    if node.detect_borders:
        fragment = f"{CROPDETECT_FILTER},{fragment}"
    return _filter(fragment)


# --- timing and output ----------------------------------------------------


def build_trim(node: nodes.Trim, ctx: BuildContext) -> ProcessedArgument:
    return ProcessedArgument(Destination.INPUT, ("-ss", node.start, "-to", node.end))


def build_convert(node: nodes.Convert, ctx: BuildContext) -> ProcessedArgument:
    muxer = MUXERS.get(node.output_format, node.output_format)
    return ProcessedArgument(Destination.OUTPUT_FORMAT, ("-f", muxer))


def build_compress(node: nodes.Compress, ctx: BuildContext) -> ProcessedArgument:
    if node.bucket == "audio":
        return ProcessedArgument(Destination.OUTPUT_CODEC, ("-b:a", AUDIO_BITRATE))
    return ProcessedArgument(Destination.OUTPUT_CODEC, ("-crf", VIDEO_CRF))


# --- video filters --------------------------------------------------------


def build_scale(node: nodes.Scale, ctx: BuildContext) -> ProcessedArgument:
    if node.aspect_ratio == "preserve":
        return _filter(
            f"scale={node.width}:{node.height}:force_original_aspect_ratio=decrease"
        )
    return _filter(f"scale={node.width}:{node.height}")


def build_fade(node: nodes.Fade, ctx: BuildContext) -> ProcessedArgument:
    duration = format_number(node.duration)
    output_duration = ctx.duration
    if output_duration is not None and node.duration > output_duration:
        ctx.warn(
            f"Fade of {duration}s is longer than the {format_number(output_duration)}s output"
        )

    parts: list[str] = []
    if node.operation in ("in", "in/out"):
        parts.append(f"fade=t=in:st=0:d={duration}")
    if node.operation in ("out", "in/out"):
        if output_duration is None:
            ctx.warn("Source duration unknown; fade out starts at 0s")
            start = "0"
        else:
            start = format_number(round(max(output_duration - node.duration, 0.0), 3))
        parts.append(f"fade=t=out:st={start}:d={duration}")
    return _filter(",".join(parts))


def _text_coordinates(position: str, pad: int) -> tuple[str, str]:
    left, right = str(pad), f"w-text_w-{pad}"
    top, bottom = str(pad), f"h-text_h-{pad}"
    middle_x, middle_y = "(w-text_w)/2", "(h-text_h)/2"
    return {
        "top-left": (left, top),
        "top-right": (right, top),
        "bottom-left": (left, bottom),
        "bottom-right": (right, bottom),
        "center": (middle_x, middle_y),
        "left": (left, middle_y),
        "right": (right, middle_y),
        "top": (middle_x, top),
        "bottom": (middle_x, bottom),
        "default": (middle_x, bottom),
    }[position]


def drawtext_filter(text: str, position: str, alignment: str = "left", margin: int = 0) -> str:
    body = text.strip('"').replace("\\", "\\\\").replace("'", "'\\''")
    x, y = _text_coordinates(position, EDGE_PADDING + margin)
    fragment = (
        f"drawtext=text='{body}':fontsize={TEXT_FONT_SIZE}:fontcolor={TEXT_COLOR}"
        f":x={x}:y={y}"
    )
    if alignment != "left":
        fragment += f":text_align={alignment}"
    return fragment


def build_text_overlay(node: nodes.TextOverlay, ctx: BuildContext) -> ProcessedArgument:
    return _filter(drawtext_filter(node.text, node.position, node.alignment, node.margin))


def _overlay_coordinates(position: str) -> str:
    pad = EDGE_PADDING
    left, right = str(pad), f"W-w-{pad}"
    top, bottom = str(pad), f"H-h-{pad}"
    middle_x, middle_y = "(W-w)/2", "(H-h)/2"
    x, y = {
        "top-left": (left, top),
        "top-right": (right, top),
        "bottom-left": (left, bottom),
        "bottom-right": (right, bottom),
        "center": (middle_x, middle_y),
        "left": (left, middle_y),
        "right": (right, middle_y),
        "top": (middle_x, top),
        "bottom": (middle_x, bottom),
        "default": (left, top),
    }[position]
    return f"{x}:{y}"


def build_content_overlay(node: nodes.ContentOverlay, ctx: BuildContext) -> ProcessedArgument:
    if node.content_type == "text":
        return _filter(drawtext_filter(node.content, node.position))

    path = quote_filter_value(node.path)
    if node.content_type == "subtitles":
        fragment = f"subtitles={path}"
        if node.position in SUBTITLE_ALIGNMENT:
            fragment += f":force_style='Alignment={SUBTITLE_ALIGNMENT[node.position]}'"
        return _filter(fragment)

    # The image enters through a movie source and is overlaid on the running
    # chain; labels are numbered so several images can coexist.
    n = ctx.next_overlay_label()
    return _filter(
        f"null[base{n}];movie={path}[ovl{n}];"
        f"[base{n}][ovl{n}]overlay={_overlay_coordinates(node.position)}"
    )


def build_deduplicate(node: nodes.Deduplicate, ctx: BuildContext) -> ProcessedArgument:
    return _filter(f"decimate=cycle={node.cycle}")


def _no_argument(node: nodes.CommandNode, ctx: BuildContext) -> None:
    return None


Builder = Callable[[nodes.CommandNode, BuildContext], ProcessedArgument | None]

BUILDERS: dict[type, Builder] = {
    nodes.Trim: build_trim,
    nodes.Convert: build_convert,
    nodes.Compress: build_compress,
    nodes.Scale: build_scale,
    nodes.Crop: build_crop,
    nodes.OptimizedCrop: build_optimized_crop,
    nodes.Fade: build_fade,
    nodes.ContentOverlay: build_content_overlay,
    nodes.TextOverlay: build_text_overlay,
    nodes.Deduplicate: build_deduplicate,
    nodes.Input: _no_argument,
    nodes.Comment: _no_argument,
}


def build_argument(node: nodes.CommandNode, ctx: BuildContext) -> ProcessedArgument | None:
    """Build the argument for one node; unknown node kinds only warn."""
    builder = BUILDERS.get(type(node))
    if builder is None:
        kind = getattr(node, "kind", type(node).__name__)
        ctx.warn(f"No filter builder for {kind}; ignored")
        return None
    return builder(node, ctx)
