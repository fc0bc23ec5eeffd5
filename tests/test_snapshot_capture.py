from pathlib import Path

import pytest

from railroad.snapshot_capture import SnapshotError, capture_snapshot, read_manifest


@pytest.fixture
def dirs(tmp_path):
    work = tmp_path / "work"
    snaps = tmp_path / "snaps"
    work.mkdir()
    snaps.mkdir()
    return work, snaps


def test_capture_existing_file(dirs):
    work, snaps = dirs
    target = work / "test.txt"
    target.write_text("hello world")

    entry = capture_snapshot(snaps, "session-1", "tool-1", str(target))

    assert entry.existed
    assert entry.hash != "__new_file_____0"
    assert entry.session_id == "session-1"
    assert entry.tool_use_id == "tool-1"
    assert entry.file_path == str(target)

    snap_file = snaps / "session-1" / f"{entry.hash}.snapshot"
    assert snap_file.exists()
    assert snap_file.read_bytes() == b"hello world"

    manifest = read_manifest(snaps, "session-1")
    assert len(manifest) == 1
    assert manifest[0] == entry


def test_hash_is_sha256_prefix(dirs):
    work, snaps = dirs
    target = work / "test.txt"
    target.write_text("hello world")
    entry = capture_snapshot(snaps, "s", "t", str(target))
    assert entry.hash == "b94d27b9934d3e08"
    assert len(entry.id) == 8


def test_capture_new_file(dirs):
    work, snaps = dirs
    missing = work / "nonexistent_file.txt"

    entry = capture_snapshot(snaps, "session-1", "tool-1", str(missing))

    assert not entry.existed
    assert entry.hash == "__new_file_____0"
    assert list((snaps / "session-1").glob("*.snapshot")) == []
    assert read_manifest(snaps, "session-1")[0].existed is False


def test_multiple_snapshots(dirs):
    work, snaps = dirs
    target = work / "test.txt"
    target.write_text("version 1")
    capture_snapshot(snaps, "session-1", "tool-1", str(target))
    target.write_text("version 2")
    capture_snapshot(snaps, "session-1", "tool-2", str(target))

    manifest = read_manifest(snaps, "session-1")
    assert len(manifest) == 2
    assert manifest[0].hash != manifest[1].hash
    assert [e.tool_use_id for e in manifest] == ["tool-1", "tool-2"]


def test_identical_content_stored_once(dirs):
    work, snaps = dirs
    target = work / "same.txt"
    target.write_text("unchanged")
    first = capture_snapshot(snaps, "s1", "t1", str(target))
    second = capture_snapshot(snaps, "s1", "t2", str(target))

    assert first.hash == second.hash
    assert first.id != second.id
    assert len(list((snaps / "s1").glob("*.snapshot"))) == 1
    assert len(read_manifest(snaps, "s1")) == 2


def test_manifest_records_complete_edit_history(dirs):
    work, snaps = dirs
    target = work / "history.txt"
    target.write_text("start")
    for i in range(10):
        capture_snapshot(snaps, "s1", f"tool-{i}", str(target))
        target.write_text(f"edit {i}")

    manifest = read_manifest(snaps, "s1")
    assert len(manifest) == 10
    assert len({e.tool_use_id for e in manifest}) == 10
    assert all(e.file_path == str(target) for e in manifest)


def test_read_manifest_missing_session(tmp_path):
    assert read_manifest(tmp_path, "no-such-session") == []


def test_read_manifest_skips_malformed_lines(dirs):
    work, snaps = dirs
    target = work / "f.txt"
    target.write_text("x")
    capture_snapshot(snaps, "s1", "t1", str(target))
    manifest_path = snaps / "s1" / "manifest.jsonl"
    with manifest_path.open("a", encoding="utf-8") as handle:
        handle.write("not json\n\n{\"id\": 1}\n")
    capture_snapshot(snaps, "s1", "t2", str(target))

    manifest = read_manifest(snaps, "s1")
    assert [e.tool_use_id for e in manifest] == ["t1", "t2"]


def test_accepts_path_objects(dirs):
    work, snaps = dirs
    target = work / "p.txt"
    target.write_text("data")
    entry = capture_snapshot(snaps, "s1", "t1", target)
    assert entry.file_path == str(target)
    assert entry.existed


def test_home_relative_path_is_expanded(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    (home / "notes.txt").write_text("home file")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    snaps = tmp_path / "snaps"

    entry = capture_snapshot(snaps, "s1", "t1", "~/notes.txt")

    assert entry.existed
    assert entry.file_path == "~/notes.txt"
    assert (snaps / "s1" / f"{entry.hash}.snapshot").read_text() == "home file"


def test_unusable_snapshot_dir_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    with pytest.raises(SnapshotError, match="Failed to create snapshot dir"):
        capture_snapshot(blocker, "s1", "t1", str(tmp_path / "x.txt"))


def test_unreadable_target_raises(dirs):
    work, snaps = dirs
    directory = work / "subdir"
    directory.mkdir()
    with pytest.raises(SnapshotError, match="Failed to read file for snapshot"):
        capture_snapshot(snaps, "s1", "t1", str(directory))
    assert read_manifest(snaps, "s1") == []
    assert Path(snaps / "s1").is_dir()