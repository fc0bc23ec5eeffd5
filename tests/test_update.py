import json
import os
import subprocess
import time
from unittest import mock

import pytest

from railroad.update import (
    ReleaseInfo,
    SECURITY_MESSAGE,
    UPDATE_MESSAGE,
    UpdateError,
    check_for_update,
    current_version,
    fetch_latest_release,
    is_newer,
)


def _completed(stdout=b"", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=b"")


def _git_responder(security=b"", main=b""):
    calls = []

    def run(args, **kwargs):
        calls.append(list(args))
        if args[-1] == "refs/tags/security":
            return _completed(security)
        if args[-1] == "refs/heads/main":
            return _completed(main)
        raise AssertionError(f"unexpected command {args}")

    return run, calls


@pytest.mark.parametrize(
    "local, remote, expected",
    [
        ("0.3.3", "0.3.4", True),
        ("0.3.3", "0.4.0", True),
        ("0.3.3", "1.0.0", True),
        ("0.3.3", "0.3.3", False),
        ("0.3.3", "0.3.2", False),
        ("1.0.0", "0.9.9", False),
    ],
)
def test_is_newer(local, remote, expected):
    assert is_newer(local, remote) is expected


def test_is_newer_ignores_non_numeric_parts():
    assert is_newer("1.0", "1.0.1") is True
    assert is_newer("1.0.x", "1.0") is False


def test_current_version():
    version = current_version()
    assert version
    assert "." in version
    assert version == "0.3.4"


def test_fetch_latest_release_parses_tag_and_body():
    payload = json.dumps({"tag_name": "v0.4.0", "body": "Fixes\nMore"}).encode()
    with mock.patch("subprocess.run", return_value=_completed(payload)) as run:
        release = fetch_latest_release()
    assert release == ReleaseInfo(tag="v0.4.0", version="0.4.0", body="Fixes\nMore")
    assert run.call_args.args[0][0] == "curl"


def test_fetch_latest_release_without_body_or_prefix():
    payload = json.dumps({"tag_name": "1.2.3"}).encode()
    with mock.patch("subprocess.run", return_value=_completed(payload)):
        release = fetch_latest_release()
    assert release.version == "1.2.3"
    assert release.body == ""


def test_fetch_latest_release_curl_failure():
    with mock.patch("subprocess.run", return_value=_completed(b"", returncode=22)):
        with pytest.raises(UpdateError, match="Could not fetch"):
            fetch_latest_release()


def test_fetch_latest_release_missing_curl():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("curl")):
        with pytest.raises(UpdateError, match="Failed to run curl"):
            fetch_latest_release()


def test_fetch_latest_release_bad_json():
    with mock.patch("subprocess.run", return_value=_completed(b"not json")):
        with pytest.raises(UpdateError, match="Failed to parse release JSON"):
            fetch_latest_release()


def test_fetch_latest_release_missing_tag():
    with mock.patch("subprocess.run", return_value=_completed(b'{"body": "x"}')):
        with pytest.raises(UpdateError, match="No tag_name"):
            fetch_latest_release()


def test_fetch_latest_release_invalid_utf8():
    with mock.patch("subprocess.run", return_value=_completed(b"\xff\xfe")):
        with pytest.raises(UpdateError, match="Invalid UTF-8"):
            fetch_latest_release()


def test_unknown_build_hash_only_touches_marker(tmp_path, monkeypatch):
    monkeypatch.delenv("RAILROAD_GIT_HASH", raising=False)
    with mock.patch("subprocess.run") as run:
        assert check_for_update(tmp_path) is None
    assert run.call_count == 0
    assert (tmp_path / ".railroad" / "last-update-check").exists()


def test_security_patch_reported(tmp_path, monkeypatch):
    monkeypatch.setenv("RAILROAD_GIT_HASH", "abc123")
    responder, calls = _git_responder(security=b"fff999\trefs/tags/security\n")
    with mock.patch("subprocess.run", side_effect=responder):
        assert check_for_update(tmp_path) == SECURITY_MESSAGE
    assert len(calls) == 1


def test_new_version_on_main_reported(tmp_path, monkeypatch):
    monkeypatch.setenv("RAILROAD_GIT_HASH", "abc123")
    responder, calls = _git_responder(
        security=b"abc123def\trefs/tags/security\n",
        main=b"0123456789\trefs/heads/main\n",
    )
    with mock.patch("subprocess.run", side_effect=responder):
        assert check_for_update(tmp_path) == UPDATE_MESSAGE
    assert [c[-1] for c in calls] == ["refs/tags/security", "refs/heads/main"]


def test_up_to_date_build(tmp_path, monkeypatch):
    monkeypatch.setenv("RAILROAD_GIT_HASH", "abc123def456")
    responder, _ = _git_responder(security=b"", main=b"abc123\trefs/heads/main\n")
    with mock.patch("subprocess.run", side_effect=responder):
        assert check_for_update(tmp_path) is None


def test_main_check_rate_limited(tmp_path, monkeypatch):
    monkeypatch.setenv("RAILROAD_GIT_HASH", "abc123")
    marker = tmp_path / ".railroad" / "last-update-check"
    marker.parent.mkdir(parents=True)
    marker.write_text("")
    responder, calls = _git_responder(main=b"0123456789\trefs/heads/main\n")
    with mock.patch("subprocess.run", side_effect=responder):
        assert check_for_update(tmp_path) is None
    assert [c[-1] for c in calls] == ["refs/tags/security"]


def test_stale_marker_allows_main_check(tmp_path, monkeypatch):
    monkeypatch.setenv("RAILROAD_GIT_HASH", "abc123")
    marker = tmp_path / ".railroad" / "last-update-check"
    marker.parent.mkdir(parents=True)
    marker.write_text("")
    old = time.time() - 8 * 24 * 60 * 60
    os.utime(marker, (old, old))
    responder, _ = _git_responder(main=b"0123456789\trefs/heads/main\n")
    with mock.patch("subprocess.run", side_effect=responder):
        assert check_for_update(tmp_path) == UPDATE_MESSAGE
    assert marker.stat().st_mtime > old


def test_git_failure_gives_no_message(tmp_path, monkeypatch):
    monkeypatch.setenv("RAILROAD_GIT_HASH", "abc123")
    with mock.patch("subprocess.run", return_value=_completed(b"", returncode=128)):
        assert check_for_update(tmp_path) is None