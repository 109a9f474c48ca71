"""JSON manifest schema: the contract between CLI/API and compiler."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from naturalff.models import MediaDescriptor


@dataclass
class CompileConfig:
    """Compiler settings that do not come from the directive text."""

    input: str | None = None
    output: str | None = None
    overwrite: bool = False


@dataclass
class DescriptorConfig:
    """Media facts supplied by hand instead of by the prober."""

    resolution: str | None = None
    duration: float | None = None
    codecs: dict[str, str] = field(default_factory=dict)

    def to_descriptor(self, filename: str | None = None) -> MediaDescriptor | None:
        if self.resolution is None and self.duration is None and not self.codecs:
            return None
        return MediaDescriptor.from_dict({
            "filename": filename,
            "resolution": self.resolution,
            "duration": self.duration,
            "codecs": self.codecs,
        })


@dataclass
class CompileManifest:
    """Top-level compile manifest.

    Exactly one of ``script`` (inline directives) or ``script_path`` is used;
    inline text wins when both are present.
    """

    script: str | None = None
    script_path: Path | None = None
    version: str = "1"
    input: str | None = None
    output: str | None = None
    overwrite: bool = False
    probe: bool = False
    descriptor: DescriptorConfig = field(default_factory=DescriptorConfig)

    def read_script(self) -> str:
        if self.script is not None:
            return self.script
        if self.script_path is None:
            raise ValueError("Manifest has neither 'script' nor 'script_path'")
        return self.script_path.read_text(encoding="utf-8")

    def compile_config(self) -> CompileConfig:
        return CompileConfig(input=self.input, output=self.output, overwrite=self.overwrite)


def load_manifest(path: str | Path) -> CompileManifest:
    """Load and validate a manifest from a JSON file.

    A relative ``script_path`` is resolved against the manifest's directory.
    """
    path = Path(path)
    data = json.loads(path.read_text())

    if "script" not in data and "script_path" not in data:
        raise ValueError("Manifest must contain a 'script' or 'script_path' field")

    script_path = None
    if data.get("script_path"):
        script_path = Path(data["script_path"])
        if not script_path.is_absolute():
            script_path = path.parent / script_path

    descriptor = DescriptorConfig(**data["descriptor"]) if "descriptor" in data else DescriptorConfig()

    return CompileManifest(
        version=data.get("version", "1"),
        script=data.get("script"),
        script_path=script_path,
        input=data.get("input"),
        output=data.get("output"),
        overwrite=bool(data.get("overwrite", False)),
        probe=bool(data.get("probe", False)),
        descriptor=descriptor,
    )
