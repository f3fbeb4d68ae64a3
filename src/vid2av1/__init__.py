"""vid2av1 - size-targeted AV1 re-encoding driven through ffmpeg."""

__version__ = "0.1.0"
