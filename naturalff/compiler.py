"""Orchestrator: compiles directive text into an ffmpeg argument list."""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import PurePath

from naturalff import nodes
from naturalff.filters.builders import BuildContext, build_argument
from naturalff.filters.optimizer import optimize_crops
from naturalff.language.parser import parse
from naturalff.language.patterns import to_seconds
from naturalff.manifest import CompileConfig
from naturalff.models import (
    Destination,
    Diagnostic,
    MediaDescriptor,
    ParseResult,
    ProcessedArgument,
)

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"
DEFAULT_SOURCE = "input.mp4"
DEFAULT_EXTENSION = "mp4"
OUTPUT_EXTENSIONS = {"mp4a": "m4a"}


@dataclass
class CompileResult:
    args: list[str]
    command: str
    errors: list[str] = field(default_factory=list)
    source_snippets: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    commands: list[nodes.CommandNode] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def assemble(arguments: list[ProcessedArgument], source: str, output: str) -> list[str]:
    """Group filter fragments, order by stage weight and serialize.

    All video fragments become one ``-vf`` and all audio fragments one
    ``-af``. Input-timing arguments go before ``-i <source>``, everything
    else after it, and ``output`` comes last.
    """
    video = [a.args[0] for a in arguments if a.destination is Destination.VIDEO_FILTER]
    audio = [a.args[0] for a in arguments if a.destination is Destination.AUDIO_FILTER]
    grouped = [
        a for a in arguments
        if a.destination not in (Destination.VIDEO_FILTER, Destination.AUDIO_FILTER)
    ]
    if video:
        grouped.append(ProcessedArgument(Destination.VIDEO_FILTER, ("-vf", ",".join(video))))
    if audio:
        grouped.append(ProcessedArgument(Destination.AUDIO_FILTER, ("-af", ",".join(audio))))

    ordered = sorted(grouped, key=lambda a: a.stage_weight)
    pre_input = [arg for a in ordered if a.destination is Destination.INPUT for arg in a.args]
    post_input = [arg for a in ordered if a.destination is not Destination.INPUT for arg in a.args]
    return [*pre_input, "-i", source, *post_input, output]


def _single_input(parsed: ParseResult) -> tuple[nodes.Input | None, ParseResult]:
    """Keep the first Input node; every later one becomes an error instead."""
    kept = ParseResult(
        errors=list(parsed.errors),
        diagnostics=list(parsed.diagnostics),
    )
    first: nodes.Input | None = None
    for node, snippet in zip(parsed.commands, parsed.source_snippets):
        if isinstance(node, nodes.Input):
            if first is not None:
                message = f"Only one input command is allowed: {snippet}"
                kept.errors.append(message)
                kept.diagnostics.append(Diagnostic(message=message, command="input", token=snippet))
                continue
            first = node
        kept.commands.append(node)
        kept.source_snippets.append(snippet)
    return first, kept


def _output_duration(
    commands: list[nodes.CommandNode], descriptor: MediaDescriptor | None
) -> float | None:
    """Length of the encoded output.

    ffmpeg honours only the last ``-ss``/``-to`` pair, so the last Trim wins; its
    end is capped by the source duration when that is known.
    """
    source_duration = descriptor.duration if descriptor else None
    trims = [c for c in commands if isinstance(c, nodes.Trim)]
    if not trims:
        return source_duration
    start, end = to_seconds(trims[-1].start), to_seconds(trims[-1].end)
    if source_duration is not None:
        end = min(end, source_duration)
    return max(end - start, 0.0)


def _output_path(commands: list[nodes.CommandNode], source: str) -> str:
    formats = [c.output_format for c in commands if isinstance(c, nodes.Convert)]
    if formats:
        ext = OUTPUT_EXTENSIONS.get(formats[-1], formats[-1])
    else:
        ext = PurePath(source).suffix.lstrip(".") or DEFAULT_EXTENSION
    return f"output.{ext}"


def compile_script(
    text: str,
    descriptor: MediaDescriptor | None = None,
    config: CompileConfig | None = None,
) -> CompileResult:
    """Compile directive text into ffmpeg arguments.

    Per-directive errors are collected and returned alongside whatever did
    parse. Every call allocates its own state.

    Raises:
        CropBoundsError: the crops do not fit a known source resolution.
    """
    config = config or CompileConfig()
    input_node, parsed = _single_input(parse(text, line_aware=True))

    source = (
        (input_node.filename if input_node else None)
        or config.input
        or (descriptor.filename if descriptor else None)
        or DEFAULT_SOURCE
    )
    output = config.output or _output_path(parsed.commands, source)

    optimized = optimize_crops(parsed.commands, descriptor)

    ctx = BuildContext(descriptor=descriptor, duration=_output_duration(parsed.commands, descriptor))
    arguments: list[ProcessedArgument] = []
    if config.overwrite:
        arguments.append(ProcessedArgument(Destination.GLOBAL, ("-y",)))
    for node in optimized:
        argument = build_argument(node, ctx)
        if argument is not None:
            arguments.append(argument)

    args = assemble(arguments, source, output)
    logger.debug("Compiled %d directive(s) into %d argument(s)", len(parsed.commands), len(args))
    return CompileResult(
        args=args,
        command=shlex.join([FFMPEG, *args]),
        errors=parsed.errors,
        source_snippets=parsed.source_snippets,
        warnings=ctx.warnings,
        commands=parsed.commands,
        diagnostics=parsed.diagnostics,
    )
