from __future__ import annotations

from pathlib import Path

import pytest

from camstream.engine import EncoderSettings, build_encoder_command


def test_default_command_targets_device_and_hls_output(tmp_path: Path) -> None:
    command = build_encoder_command(EncoderSettings(), "0", tmp_path)

    assert command[0] == "ffmpeg"
    assert command[command.index("-f") + 1] == "v4l2"
    assert command[command.index("-framerate") + 1] == "30"
    assert command[command.index("-i") + 1] == "/dev/video0"
    assert command[command.index("-preset") + 1] == "ultrafast"
    assert command[command.index("-tune") + 1] == "zerolatency"
    assert command[command.index("-g") + 1] == "60"
    assert command[command.index("-hls_time") + 1] == "2"
    assert command[command.index("-hls_list_size") + 1] == "6"
    assert command[command.index("-hls_flags") + 1] == "delete_segments+omit_endlist"
    assert command[command.index("-hls_segment_filename") + 1] == str(tmp_path / "segment_%05d.ts")
    assert command[-1] == str(tmp_path / "index.m3u8")


def test_settings_from_config_overrides_defaults(tmp_path: Path) -> None:
    settings = EncoderSettings.from_config(
        {
            "STREAM_FFMPEG_BINARY": "/opt/ffmpeg/bin/ffmpeg",
            "STREAM_DEVICE_TEMPLATE": "/dev/cam{device}",
            "STREAM_FRAMERATE": "15",
            "STREAM_SEGMENT_SECONDS": 4,
            "STREAM_MANIFEST_NAME": "live.m3u8",
            "STREAM_VERIFY_DEVICE": "false",
        }
    )
    command = build_encoder_command(settings, "2", tmp_path)

    assert settings.verify_device is False
    assert command[0] == "/opt/ffmpeg/bin/ffmpeg"
    assert command[command.index("-i") + 1] == "/dev/cam2"
    assert command[command.index("-g") + 1] == "60"
    assert command[-1] == str(tmp_path / "live.m3u8")


def test_manifest_name_must_be_bare_filename() -> None:
    with pytest.raises(ValueError):
        EncoderSettings(manifest_name="../index.m3u8")
