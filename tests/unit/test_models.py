"""Tests for data models."""

from pathlib import Path

import pytest

from vid2av1.models import ConversionPlan, ConversionRequest, ConversionSummary, ProgressEvent


def _plan(**overrides) -> ConversionPlan:
    values = dict(
        tool_path=Path("/usr/bin/ffmpeg"),
        input_path=Path("in.mkv"),
        output_path=Path("in.av1.mp4"),
        duration_sec=10.0,
        target_size_bytes=1_000_000,
        audio_bitrate_kbps=128,
        video_bitrate_kbps=672,
        encoder_candidates=("libsvtav1",),
    )
    values.update(overrides)
    return ConversionPlan(**values)


class TestConversionRequest:
    """Tests for ConversionRequest.from_dict."""

    def test_camel_case_keys(self) -> None:
        """Accepts the external camelCase shape."""
        request = ConversionRequest.from_dict(
            {"inputPath": "/v/a.mkv", "av1Encoder": "libsvtav1"}
        )
        assert request == ConversionRequest(Path("/v/a.mkv"), "libsvtav1")

    def test_snake_case_keys(self) -> None:
        """Accepts snake_case keys too."""
        request = ConversionRequest.from_dict({"input_path": "/v/a.mkv"})
        assert request.requested_encoder is None

    def test_blank_encoder_means_auto(self) -> None:
        """A blank encoder name selects automatically."""
        request = ConversionRequest.from_dict({"inputPath": "a.mkv", "av1Encoder": "  "})
        assert request.requested_encoder is None

    def test_missing_input_path(self) -> None:
        """inputPath is required."""
        with pytest.raises(ValueError, match="inputPath"):
            ConversionRequest.from_dict({"av1Encoder": "libsvtav1"})


class TestConversionPlan:
    """Tests for ConversionPlan invariants."""

    def test_valid_plan(self) -> None:
        """A plan satisfying every invariant constructs."""
        assert _plan().video_bitrate_kbps == 672

    @pytest.mark.parametrize(
        "overrides",
        [
            {"duration_sec": 0.0},
            {"video_bitrate_kbps": 99},
            {"encoder_candidates": ()},
            {"encoder_candidates": ("libsvtav1", "libsvtav1")},
        ],
    )
    def test_rejects_invalid_plans(self, overrides: dict) -> None:
        """Plans violating an invariant are rejected."""
        with pytest.raises(ValueError):
            _plan(**overrides)


class TestSerialization:
    """Tests for the camelCase result shapes."""

    def test_summary_to_dict(self) -> None:
        """Summary serializes with camelCase keys."""
        summary = ConversionSummary(Path("out.av1.mp4"), 1000, 128, 672, "libsvtav1")
        assert summary.to_dict() == {
            "outputPath": "out.av1.mp4",
            "targetSizeBytes": 1000,
            "audioBitrateKbps": 128,
            "videoBitrateKbps": 672,
            "av1Encoder": "libsvtav1",
        }

    def test_progress_event_to_dict(self) -> None:
        """Progress events serialize with camelCase keys."""
        event = ProgressEvent(50.0, None, None, "AV1 (libsvtav1)")
        assert event.to_dict() == {
            "percent": 50.0,
            "speed": None,
            "etaSeconds": None,
            "label": "AV1 (libsvtav1)",
        }
