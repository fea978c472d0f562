"""FFmpeg command construction for live HLS capture."""
from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from ..utils import coerce_int, to_bool


@dataclass(slots=True)
class EncoderSettings:
    """Fixed quality/latency parameters shared by every capture session.

    Defaults follow the low-latency camera profile:
    - v4l2 input at 30 fps
    - x264 ``ultrafast`` preset tuned for ``zerolatency``
    - 2s HLS segments, 6 segment playlist, old segments pruned by FFmpeg
    """

    ffmpeg_binary: str = "ffmpeg"
    input_format: str = "v4l2"
    device_template: str = "/dev/video{device}"
    frame_rate: int = 30
    video_codec: str = "libx264"
    preset: str = "ultrafast"
    tune: str = "zerolatency"
    segment_seconds: int = 2
    playlist_size: int = 6
    manifest_name: str = "index.m3u8"
    segment_pattern: str = "segment_%05d.ts"
    verify_device: bool = True
    input_args: Sequence[str] = field(default_factory=tuple)
    extra_output_args: Sequence[str] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.frame_rate = max(1, int(self.frame_rate))
        self.segment_seconds = max(1, int(self.segment_seconds))
        self.playlist_size = max(1, int(self.playlist_size))
        self.verify_device = bool(self.verify_device)
        if "/" in self.manifest_name or "\\" in self.manifest_name:
            raise ValueError(f"Manifest name must be a bare filename: {self.manifest_name!r}")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "EncoderSettings":
        """Build settings from the ``STREAM_*`` keys of a Flask config mapping."""

        defaults = cls()
        return cls(
            ffmpeg_binary=str(config.get("STREAM_FFMPEG_BINARY") or defaults.ffmpeg_binary),
            input_format=str(config.get("STREAM_INPUT_FORMAT") or defaults.input_format),
            device_template=str(config.get("STREAM_DEVICE_TEMPLATE") or defaults.device_template),
            frame_rate=coerce_int(config.get("STREAM_FRAMERATE"), defaults.frame_rate),
            video_codec=str(config.get("STREAM_VIDEO_CODEC") or defaults.video_codec),
            preset=str(config.get("STREAM_VIDEO_PRESET") or defaults.preset),
            tune=str(config.get("STREAM_VIDEO_TUNE") or defaults.tune),
            segment_seconds=coerce_int(config.get("STREAM_SEGMENT_SECONDS"), defaults.segment_seconds),
            playlist_size=coerce_int(config.get("STREAM_PLAYLIST_SIZE"), defaults.playlist_size),
            manifest_name=str(config.get("STREAM_MANIFEST_NAME") or defaults.manifest_name),
            verify_device=to_bool(config.get("STREAM_VERIFY_DEVICE", True)),
        )

    def device_path(self, device_id: str) -> str:
        return self.device_template.format(device=device_id)


def build_encoder_command(settings: EncoderSettings, device_id: str, output_dir: Path) -> List[str]:
    """Construct the FFmpeg CLI that captures ``device_id`` into ``output_dir``."""

    cmd: List[str] = [settings.ffmpeg_binary, "-hide_banner", "-nostdin", "-loglevel", "warning"]
    cmd.extend(["-f", settings.input_format])
    cmd.extend(["-framerate", str(settings.frame_rate)])
    if settings.input_args:
        cmd.extend(str(arg) for arg in settings.input_args)
    cmd.extend(["-i", settings.device_path(device_id)])

    cmd.extend(["-c:v", settings.video_codec])
    if settings.preset:
        cmd.extend(["-preset", settings.preset])
    if settings.tune:
        cmd.extend(["-tune", settings.tune])
    # keyframe every segment so each .ts starts cleanly
    cmd.extend(["-g", str(settings.frame_rate * settings.segment_seconds)])
    cmd.extend(["-sc_threshold", "0"])
    cmd.append("-an")

    cmd.extend(["-f", "hls"])
    cmd.extend(["-hls_time", str(settings.segment_seconds)])
    cmd.extend(["-hls_list_size", str(settings.playlist_size)])
    cmd.extend(["-hls_flags", "delete_segments+omit_endlist"])
    cmd.extend(["-hls_segment_filename", str(output_dir / settings.segment_pattern)])
    if settings.extra_output_args:
        cmd.extend(str(arg) for arg in settings.extra_output_args)
    cmd.append(str(output_dir / settings.manifest_name))
    return cmd


def describe_command(command: Sequence[str]) -> str:
    return shlex.join(command)


__all__ = ["EncoderSettings", "build_encoder_command", "describe_command"]
