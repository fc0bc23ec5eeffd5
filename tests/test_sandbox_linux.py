import pytest

from railroad.sandbox_linux import (
    expand_path,
    generate_bwrap_command,
    generate_landlock_snippet,
)
from railroad.types import FenceConfig


@pytest.fixture
def home(monkeypatch):
    monkeypatch.setenv("HOME", "/home/tester")
    monkeypatch.setenv("USERPROFILE", "/home/tester")
    return "/home/tester"


def test_generate_bwrap(home):
    config = FenceConfig(enabled=True, allowed_paths=[], denied_paths=["~/.ssh"])
    cmd = generate_bwrap_command(config, "/home/user/project")
    assert "bwrap" in cmd
    assert "/home/user/project" in cmd
    assert "--tmpfs" in cmd


def test_generate_landlock(home):
    config = FenceConfig(enabled=True, allowed_paths=[], denied_paths=["~/.ssh"])
    code = generate_landlock_snippet(config, "/home/user/project")
    assert "Landlock" in code
    assert "restrict_self" in code


def test_bwrap_starts_and_ends_as_expected(home):
    cmd = generate_bwrap_command(FenceConfig(denied_paths=[]), "/proj")
    assert cmd.startswith("bwrap \\\n  --ro-bind /usr /usr \\\n  ")
    assert cmd.endswith("--unshare-net \\\n  --chdir /proj \\\n  --")


def test_bwrap_sensitive_dirs_not_duplicated(home):
    config = FenceConfig(denied_paths=["~/.ssh"])
    cmd = generate_bwrap_command(config, "/proj")
    args = cmd.split(" \\\n  ")
    assert args.count("--tmpfs /home/tester/.ssh") == 1
    assert args.count("--tmpfs /home/tester/.aws") == 1
    assert args.count("--tmpfs /home/tester/.gnupg") == 1


def test_bwrap_argument_order(home):
    config = FenceConfig(allowed_paths=["~/shared"], denied_paths=["$HOME/secret"])
    args = generate_bwrap_command(config, "/proj").split(" \\\n  ")
    project = args.index("--bind /proj /proj")
    allowed = args.index("--bind /home/tester/shared /home/tester/shared")
    home_ro = args.index("--ro-bind /home/tester /home/tester")
    denied = args.index("--tmpfs /home/tester/secret")
    assert project < allowed < home_ro < denied
    assert args.index("--tmpfs /tmp") < project


def test_bwrap_all_system_paths_read_only(home):
    args = generate_bwrap_command(FenceConfig(), "/proj").split(" \\\n  ")
    for path in ("/usr", "/bin", "/sbin", "/lib", "/lib64", "/opt", "/etc"):
        assert f"--ro-bind {path} {path}" in args


def test_landlock_allowed_paths_expanded(home):
    config = FenceConfig(allowed_paths=["~/data"], denied_paths=[])
    code = generate_landlock_snippet(config, "/proj")
    assert 'PathFd::new("/home/tester/data")?' in code
    assert 'PathFd::new("/proj")?' in code
    assert code.count("AccessFs::ReadFile | AccessFs::ReadDir | AccessFs::Execute") == 5
    assert code.endswith("    Ok(())\n}\n")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("~/.ssh", "/h/.ssh"),
        ("$HOME/.aws", "/h/.aws"),
        ("$HOME/a/$HOME", "/h/a//h"),
        ("/etc", "/etc"),
        ("~", "~"),
        ("relative/~/x", "relative/~/x"),
    ],
)
def test_expand_path(path, expected):
    assert expand_path(path, "/h") == expected