"""Shared test fixtures."""

from pathlib import Path

import pytest

from naturalff.models import MediaDescriptor

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def sample_script_path() -> Path:
    return FIXTURES_DIR / "social_clip.nff"


@pytest.fixture
def full_hd() -> MediaDescriptor:
    return MediaDescriptor(
        filename="video.mp4",
        width=1920,
        height=1080,
        duration=300.0,
        fps=30.0,
        codec_video="h264",
        codec_audio="aac",
    )
