from __future__ import annotations

from pathlib import Path

import pytest

from camstream.exceptions import ArtifactNotFound, PathTraversalRejected, SessionMismatch, TokenExpired
from camstream.gateway import AccessGateway, is_safe_artifact_name

SESSION = "cam-0-0123456789abcdef01234567"


@pytest.fixture
def gateway(tmp_path: Path, codec) -> AccessGateway:
    session_dir = tmp_path / SESSION
    session_dir.mkdir()
    (session_dir / "index.m3u8").write_text("#EXTM3U\n", encoding="utf-8")
    (session_dir / "segment_00001.ts").write_bytes(b"\x47" * 188)
    (tmp_path / "secret.txt").write_text("outside", encoding="utf-8")
    return AccessGateway(tmp_path, codec)


def test_valid_token_serves_session_artifact(gateway: AccessGateway, codec) -> None:
    params = codec.issue(SESSION, 60).to_query()

    assert gateway.serve(SESSION, "index.m3u8", params) == b"#EXTM3U\n"
    assert gateway.resolve(SESSION, "segment_00001.ts", params).name == "segment_00001.ts"


def test_missing_artifact_is_not_found(gateway: AccessGateway, codec) -> None:
    params = codec.issue(SESSION, 60).to_query()

    with pytest.raises(ArtifactNotFound):
        gateway.serve(SESSION, "segment_09999.ts", params)


def test_token_is_checked_before_existence(gateway: AccessGateway, codec, clock) -> None:
    params = codec.issue(SESSION, 60).to_query()
    clock.advance(61)

    with pytest.raises(TokenExpired):
        gateway.serve(SESSION, "segment_09999.ts", params)


def test_token_for_other_session_cannot_read(gateway: AccessGateway, codec, tmp_path: Path) -> None:
    other = "cam-1-fedcba9876543210fedcba98"
    (tmp_path / other).mkdir()
    (tmp_path / other / "index.m3u8").write_text("#EXTM3U\n", encoding="utf-8")
    params = codec.issue(SESSION, 60).to_query()

    with pytest.raises(SessionMismatch):
        gateway.serve(other, "index.m3u8", params)


@pytest.mark.parametrize(
    "file_name",
    ["../secret.txt", "..", "sub/../../secret.txt", "/etc/passwd", "..\\secret.txt", "C:secret", "~root", "a\x00b"],
)
def test_traversal_is_rejected_with_valid_token(
    gateway: AccessGateway, codec, file_name: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    params = codec.issue(SESSION, 60).to_query()
    filesystem_calls: list[str] = []
    for method in ("resolve", "is_file", "exists", "stat", "read_bytes"):
        original = getattr(Path, method)

        def _tracked(self, *args, _method=method, _original=original, **kwargs):
            filesystem_calls.append(f"{_method}({self})")
            return _original(self, *args, **kwargs)

        monkeypatch.setattr(Path, method, _tracked)

    with pytest.raises(PathTraversalRejected):
        gateway.serve(SESSION, file_name, params)

    assert filesystem_calls == []


def test_symlink_escape_is_rejected(gateway: AccessGateway, codec, tmp_path: Path) -> None:
    (tmp_path / SESSION / "leak.ts").symlink_to(tmp_path / "secret.txt")
    params = codec.issue(SESSION, 60).to_query()

    with pytest.raises(PathTraversalRejected):
        gateway.serve(SESSION, "leak.ts", params)


@pytest.mark.parametrize("name", ["index.m3u8", "segment_00001.ts", "init.mp4"])
def test_plain_artifact_names_are_safe(name: str) -> None:
    assert is_safe_artifact_name(name) is True


@pytest.mark.parametrize("name", ["", ".", "..", "a/b", "x" * 256, None])
def test_unsafe_artifact_names(name) -> None:
    assert is_safe_artifact_name(name) is False
