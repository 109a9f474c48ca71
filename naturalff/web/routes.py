"""JSON API routes for naturalff."""

import dataclasses
import logging
import shutil
import subprocess
import uuid
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request

from naturalff import ffutil
from naturalff.compiler import compile_script
from naturalff.filters.optimizer import CompileError
from naturalff.language.parser import parse
from naturalff.manifest import CompileConfig
from naturalff.models import MediaDescriptor

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)


def _script_from_body() -> tuple[str | None, dict]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None, {}
    script = body.get("script")
    if not isinstance(script, str):
        return None, body
    return script, body


@bp.route("/health")
def health():
    return jsonify({
        "status": "ok",
        "ffprobe": "available" if shutil.which("ffprobe") else "missing",
    })


@bp.route("/api/parse", methods=["POST"])
def parse_route():
    script, _ = _script_from_body()
    if script is None:
        return jsonify({"error": "Body must contain a 'script' string"}), 400

    result = parse(script, line_aware=True)
    return jsonify({
        "commands": [c.to_dict() for c in result.commands],
        "errors": result.errors,
        "parsed": result.source_snippets,
        "diagnostics": [d.to_dict() for d in result.diagnostics],
    })


@bp.route("/api/compile", methods=["POST"])
def compile_route():
    script, body = _script_from_body()
    if script is None:
        return jsonify({"error": "Body must contain a 'script' string"}), 400

    descriptor = None
    if body.get("descriptor"):
        try:
            descriptor = MediaDescriptor.from_dict(body["descriptor"])
        except (TypeError, ValueError) as e:
            return jsonify({"error": f"Invalid descriptor: {e}"}), 400

    for key in ("input", "output"):
        if body.get(key) is not None and not isinstance(body[key], str):
            return jsonify({"error": f"'{key}' must be a string"}), 400

    config = CompileConfig(
        input=body.get("input"),
        output=body.get("output"),
        overwrite=bool(body.get("overwrite", False)),
    )

    try:
        result = compile_script(script, descriptor, config)
    except CompileError as e:
        return jsonify({"error": str(e)}), 422

    return jsonify({
        "args": result.args,
        "command": result.command,
        "errors": result.errors,
        "warnings": result.warnings,
        "parsed": result.source_snippets,
        "diagnostics": [d.to_dict() for d in result.diagnostics],
    })


@bp.route("/api/probe", methods=["POST"])
def probe_route():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    upload_dir = Path(current_app.config["WORK_DIR"]) / uuid.uuid4().hex[:12]
    upload_dir.mkdir(parents=True, exist_ok=True)
    ext = Path(f.filename).suffix or ".mp4"
    input_path = upload_dir / f"input{ext}"
    f.save(input_path)

    try:
        descriptor = ffutil.probe(input_path)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(errors="replace")
        logger.warning("ffprobe failed on %s: %s", f.filename, stderr[-500:])
        return jsonify({"error": f"ffprobe failed: {stderr[-500:]}" if stderr else str(e)}), 422
    except ValueError as e:
        return jsonify({"error": str(e)}), 422
    finally:
        shutil.rmtree(upload_dir, ignore_errors=True)

    descriptor = dataclasses.replace(descriptor, filename=f.filename)
    return jsonify(descriptor.to_dict())
