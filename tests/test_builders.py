"""Tests for the per-node filter builders."""

import pytest

from naturalff import nodes
from naturalff.filters.builders import (
    BuildContext,
    build_argument,
    crop_filter_from_edges,
    drawtext_filter,
    format_number,
    quote_filter_value,
)
from naturalff.filters.optimizer import CropBoundsError
from naturalff.models import CropAccumulator, Destination, MediaDescriptor

HD = MediaDescriptor(width=1920, height=1080, duration=60.0)


def _build(node, descriptor=None):
    ctx = BuildContext(descriptor=descriptor)
    return build_argument(node, ctx), ctx


class TestHelpers:
    def test_format_number(self):
        assert format_number(3.0) == "3"
        assert format_number(1.5) == "1.5"
        assert format_number(8.25) == "8.25"

    def test_quote_plain_value(self):
        assert quote_filter_value("movie.srt") == "movie.srt"

    def test_quote_value_with_space(self):
        assert quote_filter_value("my movie.srt") == "'my movie.srt'"

    def test_quote_escapes_apostrophe(self):
        assert quote_filter_value("it's.srt") == "'it'\\''s.srt'"


class TestCrop:
    @pytest.mark.parametrize("side,expected", [
        ("left", "crop=iw-100:ih:100:0"),
        ("right", "crop=iw-100:ih:0:0"),
        ("top", "crop=iw:ih-100:0:100"),
        ("bottom", "crop=iw:ih-100:0:0"),
        ("width", "crop=iw-200:ih:100:0"),
        ("height", "crop=iw:ih-200:0:100"),
        ("each", "crop=iw-200:ih-200:100:100"),
    ])
    def test_unknown_resolution(self, side, expected):
        arg, _ = _build(nodes.Crop(size=100, side=side))
        assert arg.destination is Destination.VIDEO_FILTER
        assert arg.args == (expected,)

    def test_known_resolution_literal_numbers(self):
        arg, _ = _build(nodes.Crop(size=100, side="left"), HD)
        assert arg.args == ("crop=1820:1080:100:0",)

    def test_known_resolution_each(self):
        arg, _ = _build(nodes.Crop(size=50, side="each"), HD)
        assert arg.args == ("crop=1820:980:50:50",)

    def test_zero_size_detects_borders(self):
        arg, _ = _build(nodes.Crop(size=0, side="left"), HD)
        assert arg.args == ("cropdetect=24:16:0",)

    def test_single_crop_out_of_bounds(self):
        with pytest.raises(CropBoundsError):
            _build(nodes.Crop(size=960, side="width"), HD)

    def test_edges_helper(self):
        acc = CropAccumulator(left=100, right=50, top=25, bottom=0)
        assert crop_filter_from_edges(acc, HD) == "crop=1770:1055:100:25"


class TestOptimizedCrop:
    def test_merged_edges(self):
        arg, _ = _build(nodes.OptimizedCrop(left=100, right=50, top=0, bottom=0), HD)
        assert arg.args == ("crop=1770:1080:100:0",)

    def test_with_border_detection(self):
        arg, _ = _build(nodes.OptimizedCrop(left=10, right=0, top=0, bottom=0, detect_borders=True))
        assert arg.args == ("cropdetect=24:16:0,crop=iw-10:ih:10:0",)

    def test_all_zero_edges(self):
        arg, _ = _build(nodes.OptimizedCrop(left=0, right=0, top=0, bottom=0, detect_borders=True))
        assert arg.args == ("cropdetect=24:16:0",)


class TestScale:
    def test_ignore_aspect(self):
        arg, _ = _build(nodes.Scale(width=1280, height=720, aspect_ratio="ignore"))
        assert arg.args == ("scale=1280:720",)

    def test_preserve_aspect(self):
        arg, _ = _build(nodes.Scale(width=1280, height=720, aspect_ratio="preserve"))
        assert arg.args == ("scale=1280:720:force_original_aspect_ratio=decrease",)


class TestFade:
    def test_fade_in(self):
        arg, ctx = _build(nodes.Fade(operation="in", duration=3.0))
        assert arg.args == ("fade=t=in:st=0:d=3",)
        assert ctx.warnings == []

    def test_fade_out_with_duration(self):
        arg, _ = _build(nodes.Fade(operation="out", duration=2.0), HD)
        assert arg.args == ("fade=t=out:st=58:d=2",)

    def test_fade_in_out(self):
        arg, _ = _build(nodes.Fade(operation="in/out", duration=1.5), MediaDescriptor(duration=10.0))
        assert arg.args == ("fade=t=in:st=0:d=1.5,fade=t=out:st=8.5:d=1.5",)

    def test_fade_out_without_duration_warns(self):
        arg, ctx = _build(nodes.Fade(operation="out", duration=2.0))
        assert arg.args == ("fade=t=out:st=0:d=2",)
        assert ctx.warnings == ["Source duration unknown; fade out starts at 0s"]

    def test_fade_longer_than_source_warns(self):
        _, ctx = _build(nodes.Fade(operation="in", duration=30.0), MediaDescriptor(duration=10.0))
        assert ctx.warnings == ["Fade of 30s is longer than the 10s output"]

    def test_explicit_duration_overrides_descriptor(self):
        ctx = BuildContext(descriptor=HD, duration=10.0)
        arg = build_argument(nodes.Fade(operation="out", duration=2.0), ctx)
        assert arg.args == ("fade=t=out:st=8:d=2",)


class TestText:
    def test_center(self):
        assert drawtext_filter('"Hello World"', "center") == (
            "drawtext=text='Hello World':fontsize=24:fontcolor=white"
            ":x=(w-text_w)/2:y=(h-text_h)/2"
        )

    def test_top_left_padding(self):
        assert drawtext_filter('"Hi"', "top-left").endswith(":x=10:y=10")

    def test_margin_adds_to_padding(self):
        arg, _ = _build(nodes.TextOverlay(text='"Hi"', position="bottom-right", margin=20))
        assert arg.args[0].endswith(":x=w-text_w-30:y=h-text_h-30")

    def test_alignment(self):
        arg, _ = _build(nodes.TextOverlay(text='"Hi"', position="center", alignment="right"))
        assert arg.args[0].endswith(":text_align=right")

    def test_left_alignment_omitted(self):
        assert "text_align" not in drawtext_filter('"Hi"', "center", alignment="left")

    def test_apostrophe_escaped(self):
        assert drawtext_filter('"It\'s"', "top").startswith("drawtext=text='It'\\''s'")

    def test_burned_text_default_position(self):
        arg, _ = _build(nodes.ContentOverlay(content_type="text", content='"Hi"', position="default"))
        assert arg.args[0].endswith(":x=(w-text_w)/2:y=h-text_h-10")


class TestContentOverlay:
    def test_subtitles_default(self):
        arg, _ = _build(
            nodes.ContentOverlay(content_type="subtitles", content='"movie.srt"', position="default")
        )
        assert arg.args == ("subtitles=movie.srt",)

    def test_subtitles_positioned(self):
        arg, _ = _build(
            nodes.ContentOverlay(content_type="subtitles", content='"movie.srt"', position="top")
        )
        assert arg.args == ("subtitles=movie.srt:force_style='Alignment=8'",)

    def test_image_bottom_right(self):
        arg, _ = _build(
            nodes.ContentOverlay(content_type="image", content='"logo.png"', position="bottom-right")
        )
        assert arg.args == ("null[base0];movie=logo.png[ovl0];[base0][ovl0]overlay=W-w-10:H-h-10",)

    def test_image_path_with_space(self):
        arg, _ = _build(
            nodes.ContentOverlay(content_type="image", content='"my logo.png"', position="center")
        )
        assert "movie='my logo.png'[ovl0]" in arg.args[0]

    def test_image_labels_are_unique(self):
        ctx = BuildContext()
        node = nodes.ContentOverlay(content_type="image", content='"a.png"', position="top-left")
        first = build_argument(node, ctx)
        second = build_argument(node, ctx)
        assert "[base0]" in first.args[0]
        assert "[base1]" in second.args[0]


class TestOutputArguments:
    def test_trim_goes_before_input(self):
        arg, _ = _build(nodes.Trim(start="1:30", end="3:45"))
        assert arg.destination is Destination.INPUT
        assert arg.args == ("-ss", "1:30", "-to", "3:45")

    @pytest.mark.parametrize("fmt,muxer", [
        ("mp4", "mp4"), ("mkv", "matroska"), ("png", "image2"), ("aac", "adts"), ("mp4a", "ipod"),
    ])
    def test_convert_muxer(self, fmt, muxer):
        arg, _ = _build(nodes.Convert(output_format=fmt))
        assert arg.destination is Destination.OUTPUT_FORMAT
        assert arg.args == ("-f", muxer)

    def test_compress_video(self):
        arg, _ = _build(nodes.Compress(bucket="video"))
        assert arg.destination is Destination.OUTPUT_CODEC
        assert arg.args == ("-crf", "23")

    def test_compress_audio(self):
        arg, _ = _build(nodes.Compress(bucket="audio"))
        assert arg.args == ("-b:a", "128k")

    def test_deduplicate(self):
        arg, _ = _build(nodes.Deduplicate(cycle=5))
        assert arg.args == ("decimate=cycle=5",)

    def test_stage_weights_follow_destination(self):
        assert _build(nodes.Trim(start="1", end="2"))[0].stage_weight == 0
        assert _build(nodes.Deduplicate(cycle=5))[0].stage_weight == 2
        assert _build(nodes.Compress(bucket="video"))[0].stage_weight == 5


class TestDispatch:
    def test_input_and_comment_produce_nothing(self):
        assert _build(nodes.Input(file_selector="a.mp4", filename="a.mp4"))[0] is None
        assert _build(nodes.Comment(content="# hi"))[0] is None

    def test_unknown_node_warns(self):
        class Mystery:
            kind = "mystery"

        arg, ctx = _build(Mystery())
        assert arg is None
        assert ctx.warnings == ["No filter builder for mystery; ignored"]
