"""Thin CLI entry point: reads directives and calls the compiler."""

import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path

from naturalff import ffutil
from naturalff.compiler import compile_script
from naturalff.filters.optimizer import CompileError
from naturalff.language.parser import parse
from naturalff.manifest import CompileManifest, DescriptorConfig, load_manifest
from naturalff.models import MediaDescriptor

EXIT_DIRECTIVE_ERRORS = 1
EXIT_FATAL = 2


def _read_script(args: argparse.Namespace) -> str:
    if args.expr is not None:
        return args.expr
    if args.script is None or str(args.script) == "-":
        return sys.stdin.read()
    return args.script.read_text(encoding="utf-8")


def _manifest_from_args(args: argparse.Namespace) -> CompileManifest:
    if args.manifest:
        m = load_manifest(args.manifest)
        if args.expr is not None or args.script is not None:
            m.script = _read_script(args)
    else:
        m = CompileManifest(script=_read_script(args))

    # Flags override manifest values.
    if args.input:
        m.input = args.input
    if args.output:
        m.output = args.output
    if args.overwrite:
        m.overwrite = True
    if args.probe:
        m.probe = True
    if args.resolution or args.duration is not None:
        m.descriptor = DescriptorConfig(
            resolution=args.resolution or m.descriptor.resolution,
            duration=args.duration if args.duration is not None else m.descriptor.duration,
            codecs=m.descriptor.codecs,
        )
    return m


def _print_diagnostics(diagnostics, label: str = "error") -> None:
    for d in diagnostics:
        where = f"{d.line}:{d.offset}: " if d.line is not None else ""
        print(f"{where}{label}: {d.message}", file=sys.stderr)
        if d.detail:
            print(f"    {d.detail}", file=sys.stderr)


def _probe(path: Path) -> MediaDescriptor | None:
    """Run ffprobe, printing the reason and returning None when it fails."""
    try:
        ffutil.check_ffprobe()
        return ffutil.probe(path)
    except subprocess.CalledProcessError as e:
        print(f"Error: ffprobe failed on {path} (rc={e.returncode})", file=sys.stderr)
    except (ffutil.FFmpegNotFoundError, ffutil.NoMediaStreamError) as e:
        print(f"Error: {e}", file=sys.stderr)
    return None


def _cmd_compile(args: argparse.Namespace) -> int:
    try:
        m = _manifest_from_args(args)
        script = m.read_script()
        descriptor = m.descriptor.to_descriptor(filename=m.input)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL

    if m.probe:
        if not m.input:
            print("Error: --probe needs an input file (--input or manifest 'input').", file=sys.stderr)
            return EXIT_FATAL
        descriptor = _probe(Path(m.input))
        if descriptor is None:
            return EXIT_FATAL

    try:
        result = compile_script(script, descriptor, m.compile_config())
    except CompileError as e:
        print(f"Fatal: {e}", file=sys.stderr)
        return EXIT_FATAL

    if args.json:
        print(json.dumps({
            "args": result.args,
            "command": result.command,
            "errors": result.errors,
            "warnings": result.warnings,
            "parsed": result.source_snippets,
        }, indent=2))
    else:
        print(result.command)
        _print_diagnostics(result.diagnostics)
        for w in result.warnings:
            print(f"warning: {w}", file=sys.stderr)

    return EXIT_DIRECTIVE_ERRORS if result.errors else 0


def _cmd_check(args: argparse.Namespace) -> int:
    result = parse(_read_script(args), line_aware=True)
    for snippet in result.source_snippets:
        print(f"  ok  {snippet}")
    _print_diagnostics(result.diagnostics)
    print(f"{len(result.commands)} directive(s), {len(result.errors)} error(s)")
    return EXIT_DIRECTIVE_ERRORS if result.errors else 0


def _cmd_probe(args: argparse.Namespace) -> int:
    descriptor = _probe(args.video)
    if descriptor is None:
        return EXIT_FATAL
    print(json.dumps(descriptor.to_dict(), indent=2))
    return 0


def _add_script_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("script", nargs="?", type=Path, help="Directive file ('-' or omitted reads stdin)")
    p.add_argument("--expr", "-e", type=str, help="Directive text given inline")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="naturalff",
        description="naturalff: compile plain-language editing directives into ffmpeg commands.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    comp = sub.add_parser("compile", help="Compile directives into an ffmpeg command")
    _add_script_args(comp)
    comp.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    comp.add_argument("--input", "-i", type=str, help="Source file when the script has no input directive")
    comp.add_argument("--output", "-o", type=str, help="Output file path")
    comp.add_argument("--resolution", type=str, help="Known source resolution, WxH")
    comp.add_argument("--duration", type=float, help="Known source duration in seconds")
    comp.add_argument("--probe", action="store_true", help="Probe the input file with ffprobe")
    comp.add_argument("--overwrite", "-y", action="store_true", help="Add -y to the command")
    comp.add_argument("--json", action="store_true", help="Print the result as JSON")

    check = sub.add_parser("check", help="Parse directives and report errors")
    _add_script_args(check)

    prb = sub.add_parser("probe", help="Print the media descriptor of a file")
    prb.add_argument("video", type=Path, help="Media file to probe")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from naturalff.web import create_app
        app = create_app()
        print(f"naturalff API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    handlers = {"compile": _cmd_compile, "check": _cmd_check, "probe": _cmd_probe}
    sys.exit(handlers[args.command](args))


if __name__ == "__main__":
    main()
