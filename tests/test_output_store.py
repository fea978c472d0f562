from __future__ import annotations

from pathlib import Path

import pytest

from camstream.engine import SessionOutputStore


def _materialise(store: SessionOutputStore, session_id: str) -> Path:
    path = store.register(session_id)
    path.mkdir(parents=True)
    (path / "index.m3u8").write_text("#EXTM3U\n", encoding="utf-8")
    return path


def test_prune_keeps_retention_window(tmp_path: Path) -> None:
    store = SessionOutputStore(tmp_path, retention=2)
    paths = [_materialise(store, f"cam-0-{index}") for index in range(4)]
    for index in range(4):
        store.finish(f"cam-0-{index}")

    removed = store.prune(live_sessions=set())

    assert removed == [paths[0], paths[1]]
    assert [path.exists() for path in paths] == [False, False, True, True]
    assert store.prune(live_sessions=set()) == []


def test_prune_never_removes_live_or_unfinished_sessions(tmp_path: Path) -> None:
    store = SessionOutputStore(tmp_path, retention=0)
    finished = _materialise(store, "cam-0-a")
    live = _materialise(store, "cam-0-b")
    store.finish("cam-0-a")
    store.finish("cam-0-b")

    removed = store.prune(live_sessions={"cam-0-b"})

    assert removed == [finished]
    assert live.exists()


def test_unknown_directories_are_left_alone(tmp_path: Path) -> None:
    foreign = tmp_path / "cam-9-foreign"
    foreign.mkdir()
    store = SessionOutputStore(tmp_path, retention=0)

    store.finish("cam-9-foreign")

    assert store.prune(live_sessions=set()) == []
    assert foreign.exists()


def test_path_for_rejects_unsafe_session_ids(tmp_path: Path) -> None:
    store = SessionOutputStore(tmp_path)

    with pytest.raises(ValueError):
        store.path_for("../outside")
