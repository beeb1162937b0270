import os
import stat
import sys
import textwrap

import pytest

from steam_depot_uploader.account import AccountConfig
from steam_depot_uploader.depot import DepotConfig
from steam_depot_uploader.prefs import Prefs
from steam_depot_uploader.steam import SteamCMDInstaller, SteamUploader
from steam_depot_uploader.streams import LogStream


posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="fake SteamCMD is a shell script")


class RecordingStream(LogStream):
    """LogStream that keeps every line instead of printing it."""

    def __init__(self):
        super().__init__("test", redis_client=None, quiet=True)
        self.lines = []

    def log(self, line, level="info"):
        self.lines.append((level, line))

    def text(self, level=None):
        return "\n".join(line for lvl, line in self.lines if level is None or lvl == level)


def write_script(path, body):
    with open(path, "w") as f:
        f.write("#!/bin/sh\n" + textwrap.dedent(body))
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def make_fake_steamcmd(directory, output_lines=(), exit_code=0, stderr_lines=()):
    """Create an installed-looking SteamCMD that prints fixed output.

    The arguments it was called with are written to args.txt next to it.
    """
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "steamclient.so").write_text("")
    stdout = "\n".join(output_lines)
    stderr = "\n".join(stderr_lines)
    body = f"""\
        printf '%s\\n' "$@" > "$(dirname "$0")/args.txt"
        cat <<'OUT'
{stdout}
OUT
        cat >&2 <<'ERR'
{stderr}
ERR
        exit {exit_code}
        """
    return write_script(directory / "steamcmd.sh", body)


def read_args(directory):
    return (directory / "args.txt").read_text().splitlines()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    for name in ("VALKEY_HOST", "STEAM_USERNAME", "STEAM_PASSWORD", "SLACK_WEBHOOK_URL",
                 "DISCORD_WEBHOOK_URL", "STEAM_UPLOADER_PREFS", "STEAM_UPLOADER_PROJECT_ROOT"):
        monkeypatch.delenv(name, raising=False)
    # Keep the CLI away from the real per-user config directory
    monkeypatch.setenv("STEAM_UPLOADER_USER_PREFS", str(tmp_path / "user" / "SteamDepotUploaderPrefs.json"))


@pytest.fixture
def stream():
    return RecordingStream()


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def prefs(project_root):
    return Prefs(str(project_root / "ProjectSettings" / "SteamDepotUploaderPrefs.json"))


@pytest.fixture
def user_prefs(tmp_path):
    return Prefs(str(tmp_path / "user" / "SteamDepotUploaderPrefs.json"))


@pytest.fixture
def steamcmd_dir(tmp_path):
    return tmp_path / "steamcmd"


@pytest.fixture
def installer(user_prefs, stream, steamcmd_dir):
    installer = SteamCMDInstaller(user_prefs, stream, platform="linux")
    installer.set_custom_install_path(str(steamcmd_dir))
    return installer


@pytest.fixture
def account(user_prefs, stream):
    account = AccountConfig(user_prefs, stream)
    account.username = "builder"
    account.password = "hunter2"
    account.auth_code = "ABC12"
    return account


@pytest.fixture
def depot(prefs, project_root, stream):
    depot = DepotConfig(prefs, str(project_root), stream)
    depot.app_id = "480"
    depot.depot_id = "481"
    depot.build_output_path = "Build"
    return depot


@pytest.fixture
def uploader(prefs, installer, account, depot, stream, tmp_path):
    return SteamUploader(prefs, installer, account, depot, stream, vdf_dir=str(tmp_path / "vdf"))
