import dataclasses

import pytest

from steam_depot_uploader.exceptions import AuthCodeRejected, SubprocessNonZeroExit
from steam_depot_uploader.models import ToolInstallation, UploadResult


def test_upload_result_is_immutable():
    result = UploadResult(success=True, exit_code=0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.success = False


def test_partner_url_needs_build_id():
    assert UploadResult(success=True, exit_code=0, app_id="480").partner_url is None
    assert UploadResult(success=True, exit_code=0, app_id="480", build_id="1").partner_url == \
        "https://partner.steamgames.com/apps/builddetails/480/1"


def test_raise_for_status():
    UploadResult(success=True, exit_code=0).raise_for_status()
    with pytest.raises(AuthCodeRejected):
        UploadResult(success=False, exit_code=-1, auth_code_rejected=True).raise_for_status()
    with pytest.raises(SubprocessNonZeroExit):
        UploadResult(success=False, exit_code=8).raise_for_status()


def test_tool_installation_validity(tmp_path):
    executable = tmp_path / "steamcmd.sh"
    installation = ToolInstallation(str(executable), str(tmp_path))
    assert not installation.is_valid
    executable.write_text("")
    assert not installation.is_valid
    (tmp_path / "linux32").mkdir()
    assert not installation.is_valid
    (tmp_path / "SteamCMD_log.txt").write_text("")
    assert installation.is_valid
