import os

import pytest

from steam_depot_uploader.exceptions import SubprocessLaunchFailed
from steam_depot_uploader.process import SteamCMDProcess, mask_arguments, strip_ansi

from conftest import posix_only, write_script


def test_strip_ansi():
    assert strip_ansi("\x1b[0m\x1b[1mLoading Steam API...OK\x1b[0m") == "Loading Steam API...OK"


def test_mask_arguments():
    assert mask_arguments(["+login", "user", "pw", "code", "+quit"], ["pw", "code", ""]) == \
        "+login user **** **** +quit"


@posix_only
def test_lines_arrive_in_order_and_cleaned(tmp_path, stream):
    script = write_script(tmp_path / "tool.sh", """\
        echo "first"
        echo ""
        printf '\\033[1msecond\\033[0m\\n'
        echo "third" >&2
        exit 3
        """)

    process = SteamCMDProcess(script, [], stream)
    assert list(process) == ["first", "second", "third"]
    assert process.wait() == 3
    assert process.output == "first\nsecond\nthird"
    assert ("info", "SteamCMD: second") in stream.lines


@posix_only
def test_wait_drains_unread_output(tmp_path, stream):
    script = write_script(tmp_path / "tool.sh", """\
        echo "one"
        echo "two"
        """)
    process = SteamCMDProcess(script, [], stream)
    assert process.wait() == 0
    assert process.output_lines == ["one", "two"]
    assert process.wait() == 0


@posix_only
def test_runs_in_working_directory(tmp_path, stream):
    workdir = tmp_path / "work"
    workdir.mkdir()
    script = write_script(tmp_path / "tool.sh", "pwd\n")
    process = SteamCMDProcess(script, [], stream, cwd=str(workdir))
    assert [os.path.realpath(line) for line in process] == [os.path.realpath(str(workdir))]


def test_launch_failure(tmp_path, stream):
    with pytest.raises(SubprocessLaunchFailed) as excinfo:
        SteamCMDProcess(str(tmp_path / "missing.sh"), ["+quit"], stream)
    assert excinfo.value.executable.endswith("missing.sh")
    assert stream.text("error")
