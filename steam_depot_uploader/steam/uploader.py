"""SteamCMD integration for uploading builds to Steam."""

import os
import re
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

from ..account import AccountConfig
from ..depot import DepotConfig
from ..exceptions import (
    BuildFailed,
    ConfigInvalid,
    CredentialsMissing,
    DirectoryMissing,
    OperationInProgress,
    SubprocessLaunchFailed,
    ToolNotInstalled,
)
from ..models import UploadManifest, UploadResult
from ..prefs import Prefs, KEY_PREFIX
from ..process import SteamCMDProcess
from ..streams import LogStream
from .builder import SteamVDFBuilder
from .installer import SteamCMDInstaller


KEY_UPLOAD_DESCRIPTION = KEY_PREFIX + "uploadDescription"
KEY_FILE_EXCLUSIONS = KEY_PREFIX + "fileExclusions"
DEFAULT_UPLOAD_DESCRIPTION = "Steam Depot Uploader"
DEFAULT_FILE_EXCLUSIONS = "*.pdb,*.zip,*BurstDebug*,*DontShipIt*"

INVALID_AUTH_CODE_MARKER = "Invalid Login Auth Code"
UPLOAD_ID_MARKER = "Depot build ID:"
BUILD_ID_PATTERN = re.compile(r'BuildID (\d+)')

# Exit code reported when Steam rejected the auth code
AUTH_REJECTED_EXIT_CODE = -1


def normalize_exclusion(exclusion: str) -> str:
    """Trim a pattern and wrap it in wildcards unless it already has one at either end."""
    exclusion = exclusion.strip()
    if exclusion and not exclusion.startswith('*') and not exclusion.endswith('*'):
        exclusion = f"*{exclusion}*"
    return exclusion


# ===============================================================
# Output Classification
# ===============================================================

@dataclass
class UploadOutputState:
    """What has been learned from SteamCMD output so far."""
    auth_code_rejected: bool = False
    build_id: str = ""
    upload_id: str = ""

    def feed(self, line: str) -> None:
        """Apply every classification rule to one output line."""
        if INVALID_AUTH_CODE_MARKER in line:
            self.auth_code_rejected = True

        match = BUILD_ID_PATTERN.search(line)
        if match:
            self.build_id = match.group(1)

        if UPLOAD_ID_MARKER in line:
            self.upload_id = line.split(':')[-1].strip()


# ===============================================================
# SteamCMD Upload Orchestration
# ===============================================================

class SteamUploader:
    """Validates settings and uploads the build output to a Steam depot."""

    def __init__(
        self,
        prefs: Prefs,
        installer: SteamCMDInstaller,
        account: AccountConfig,
        depot: DepotConfig,
        stream: LogStream,
        vdf_dir: Optional[str] = None,
    ) -> None:
        """Initialize Steam uploader.

        Args:
            prefs: Settings store holding the description and exclusions
            installer: SteamCMD installation to run
            account: Steam login and auth code
            depot: App ID, depot ID and build output path
            stream: LogStream instance for logging
            vdf_dir: Directory for the generated VDF, defaults to the temp dir
        """
        self.prefs = prefs
        self.installer = installer
        self.account = account
        self.depot = depot
        self.stream = stream
        self.vdf_dir = vdf_dir or tempfile.gettempdir()
        self.upload_description: str = DEFAULT_UPLOAD_DESCRIPTION
        self.file_exclusions: List[str] = [item.strip() for item in DEFAULT_FILE_EXCLUSIONS.split(',')]
        self._uploading = False

    @property
    def is_uploading(self) -> bool:
        return self._uploading

    # ---------------------------------------------------------------
    # Settings
    # ---------------------------------------------------------------

    def add_file_exclusion(self, exclusion: str) -> None:
        normalized = normalize_exclusion(exclusion)
        if normalized and normalized not in self.file_exclusions:
            self.file_exclusions.append(normalized)

    def remove_file_exclusion(self, exclusion: str) -> None:
        normalized = normalize_exclusion(exclusion)
        if normalized in self.file_exclusions:
            self.file_exclusions.remove(normalized)

    def load(self) -> None:
        self.upload_description = self.prefs.get(KEY_UPLOAD_DESCRIPTION, DEFAULT_UPLOAD_DESCRIPTION)
        stored = self.prefs.get(KEY_FILE_EXCLUSIONS, DEFAULT_FILE_EXCLUSIONS)
        self.file_exclusions = [item.strip() for item in stored.split(',') if item.strip()]

    def save(self) -> None:
        self.prefs.set(KEY_UPLOAD_DESCRIPTION, self.upload_description)
        self.prefs.set(KEY_FILE_EXCLUSIONS, ','.join(self.file_exclusions))

    # ---------------------------------------------------------------
    # Upload
    # ---------------------------------------------------------------

    def validate(self) -> None:
        """Check everything an upload needs, in order, stopping at the first problem.

        Raises:
            ToolNotInstalled: If SteamCMD is missing
            CredentialsMissing: If username or password is empty
            ConfigInvalid: If app ID, depot ID or build output path is empty
            DirectoryMissing: If the build output directory does not exist
        """
        if not self.installer.is_installed():
            raise ToolNotInstalled()
        if not self.account.are_credentials_set():
            raise CredentialsMissing()
        if not self.depot.is_valid():
            raise ConfigInvalid()
        if not self.depot.build_output_directory_exists():
            raise DirectoryMissing(self.depot.get_absolute_build_path())

    def build_manifest(self, branch: Optional[str] = None) -> UploadManifest:
        return UploadManifest(
            app_id=self.depot.app_id,
            depot_id=self.depot.depot_id,
            content_root=self.depot.get_absolute_build_path(),
            description=self.upload_description,
            file_exclusions=list(self.file_exclusions),
            branch=branch,
        )

    def upload(self, branch: Optional[str] = None) -> UploadResult:
        """Upload the build output directory to the configured depot.

        Generates the VDF, runs SteamCMD with it and reads the build and
        upload IDs from the output. If Steam rejects the auth code the stored
        code is cleared and a result with exit code -1 is returned.

        Args:
            branch: Optional branch to set the build live on

        Returns:
            UploadResult describing the attempt

        Raises:
            OperationInProgress: If an upload is already running
            ToolNotInstalled, CredentialsMissing, ConfigInvalid, DirectoryMissing:
                If validation fails
            SubprocessLaunchFailed: If SteamCMD could not be started
        """
        if self._uploading:
            raise OperationInProgress("Upload")
        self.validate()

        self._uploading = True
        try:
            manifest = self.build_manifest(branch)
            vdf_path = os.path.join(self.vdf_dir, f"{manifest.app_id}_build.vdf")
            SteamVDFBuilder(self.stream).write(manifest, vdf_path)
            return self._run_upload(vdf_path)
        finally:
            self._uploading = False

    def _run_upload(self, vdf_path: str) -> UploadResult:
        self.stream.log(f"Starting SteamPipe upload for app {self.depot.app_id}...")
        args = ['+login', self.account.username, self.account.password]
        if self.account.auth_code:
            args.append(self.account.auth_code)
        args += ['+run_app_build', vdf_path, '+quit']
        process = SteamCMDProcess(
            self.installer.steamcmd_path,
            args,
            self.stream,
            secrets=[self.account.password, self.account.auth_code],
        )

        state = UploadOutputState()
        for line in process:
            state.feed(line)
        exit_code = process.wait()
        self.stream.log("SteamCMD process exited.")

        if state.auth_code_rejected:
            self.stream.log("Invalid or missing two-factor authentication code.", level="error")
            self.account.set_auth_code("")
            return UploadResult(
                success=False,
                exit_code=AUTH_REJECTED_EXIT_CODE,
                app_id=self.depot.app_id,
                depot_id=self.depot.depot_id,
                build_path=self.depot.get_absolute_build_path(),
                log_output=process.output,
                auth_code_rejected=True,
            )

        if state.build_id:
            self.stream.log(f"Extracted Build ID: {state.build_id}")
        else:
            self.stream.log("Warning: Could not extract Build ID from output", level="warning")
        if state.upload_id:
            self.stream.log(f"Extracted Upload ID: {state.upload_id}")

        if exit_code == 0:
            self.stream.log(f"SteamPipe upload completed successfully for app {self.depot.app_id}")
        else:
            self.stream.log(f"SteamPipe upload failed with code {exit_code}", level="error")

        return UploadResult(
            success=exit_code == 0,
            exit_code=exit_code,
            upload_id=state.upload_id,
            build_id=state.build_id,
            app_id=self.depot.app_id,
            depot_id=self.depot.depot_id,
            build_path=self.depot.get_absolute_build_path(),
            timestamp=datetime.now(),
            log_output=process.output,
        )

    def build_and_upload(self, build_command: Union[str, Sequence[str]], branch: Optional[str] = None) -> UploadResult:
        """Run the external build step, then upload if it succeeded.

        Args:
            build_command: Command line string or argument list; runs with the
                project root as working directory
            branch: Optional branch to set the build live on

        Returns:
            UploadResult from the upload

        Raises:
            BuildFailed: If the build command exits non-zero
            SubprocessLaunchFailed: If the build command could not be started
        """
        self.depot.create_build_output_directory()

        cmd = shlex.split(build_command, posix=os.name != "nt") if isinstance(build_command, str) else list(build_command)
        if not cmd:
            raise ConfigInvalid("Build command is empty.")

        self.stream.log(f"Running build: {' '.join(cmd)}")
        env = dict(os.environ, STEAM_BUILD_OUTPUT=self.depot.get_absolute_build_path())
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=self.depot.project_root,
                env=env,
                text=True,
                errors='replace',
                bufsize=1
            )
        except OSError as e:
            raise SubprocessLaunchFailed(cmd[0], str(e)) from e

        for line in iter(process.stdout.readline, ''):
            if line.strip():
                self.stream.log(f"Build: {line.rstrip()}")
        process.stdout.close()
        return_code = process.wait()

        if return_code != 0:
            self.stream.log("Build failed. Check the output above for details.", level="error")
            raise BuildFailed(return_code)

        self.stream.log("Build succeeded. Now uploading to Steam Depot...")
        return self.upload(branch)
