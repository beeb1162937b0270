"""Download, extract and initialize SteamCMD."""

import os
import shutil
import sys
import tarfile
import tempfile
import zipfile
from typing import Callable, Optional

import requests

from ..exceptions import (
    ArchiveExtractFailed,
    InstallationFailed,
    NetworkDownloadFailed,
    OperationInProgress,
    SteamUploaderError,
    SubprocessNonZeroExit,
    ToolNotInstalled,
)
from ..models import ToolInstallation
from ..prefs import Prefs, KEY_PREFIX
from ..process import SteamCMDProcess
from ..streams import LogStream


ProgressCallback = Callable[[float, str], None]

STEAMCMD_FOLDER = "SteamCMD_Unity"
STEAMCMD_INIT_LOG = "SteamCMD_log.txt"

# SteamCMD exits with 7 after updating itself on first run
INITIALIZED_EXIT_CODE = 7

KEY_CUSTOM_INSTALL_PATH = KEY_PREFIX + "customInstallPath"
KEY_STEAMCMD_PATH = KEY_PREFIX + "steamCmdPath"

WINDOWS_LAYOUT = {
    "executable": "steamcmd.exe",
    "url": "https://steamcdn-a.akamaihd.net/client/installer/steamcmd.zip",
    "library": "steam.dll",
}
POSIX_LAYOUT = {
    "executable": "steamcmd.sh",
    "url": "https://steamcdn-a.akamaihd.net/client/installer/steamcmd_linux.tar.gz",
    "library": os.path.join("linux32", "steamclient.so"),
}


def platform_layout(platform: Optional[str] = None) -> dict:
    """Return executable name, archive URL and init library for a platform."""
    platform = platform or sys.platform
    return WINDOWS_LAYOUT if platform.startswith("win") else POSIX_LAYOUT


def default_install_dir() -> str:
    return os.path.join(os.path.expanduser("~"), STEAMCMD_FOLDER)


def extract_archive(archive_path: str, target_dir: str) -> None:
    """Unpack a SteamCMD zip or tar.gz archive into target_dir.

    Raises:
        ArchiveExtractFailed: If the archive is unreadable or has unsafe members
    """
    try:
        if zipfile.is_zipfile(archive_path):
            with zipfile.ZipFile(archive_path, 'r') as zip_ref:
                zip_ref.extractall(target_dir)
        elif tarfile.is_tarfile(archive_path):
            with tarfile.open(archive_path, 'r:*') as tar_ref:
                root = os.path.realpath(target_dir)
                for member in tar_ref.getmembers():
                    member_path = os.path.realpath(os.path.join(target_dir, member.name))
                    if os.path.commonpath([root, member_path]) != root:
                        raise ArchiveExtractFailed(archive_path, f"member escapes target: {member.name}")
                if hasattr(tarfile, 'data_filter'):
                    tar_ref.extractall(target_dir, filter='data')
                else:
                    tar_ref.extractall(target_dir)
        else:
            raise ArchiveExtractFailed(archive_path, "not a zip or tar archive")
    except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
        raise ArchiveExtractFailed(archive_path, str(e)) from e


class SteamCMDInstaller:
    """Manages the local SteamCMD installation."""

    def __init__(self, prefs: Prefs, stream: LogStream, platform: Optional[str] = None) -> None:
        """Initialize the installer and load the saved paths.

        Args:
            prefs: Settings store holding the install and executable paths
            stream: LogStream instance for logging progress
            platform: sys.platform style name, defaults to the running platform
        """
        self.prefs = prefs
        self.stream = stream
        self.layout = platform_layout(platform)
        self.custom_install_path: Optional[str] = None
        self.steamcmd_path: str = ""
        self._installing = False
        self.load()

    @property
    def is_installing(self) -> bool:
        return self._installing

    @property
    def install_dir(self) -> str:
        return self.custom_install_path or default_install_dir()

    def executable_path(self, folder: str) -> str:
        return os.path.join(folder, self.layout["executable"])

    def installation(self, path: Optional[str] = None) -> ToolInstallation:
        if path is None:
            if self.steamcmd_path:
                return ToolInstallation(self.steamcmd_path, os.path.dirname(self.steamcmd_path))
            path = self.install_dir
        return ToolInstallation(self.executable_path(path), path)

    def is_installed(self, path: Optional[str] = None) -> bool:
        return self.installation(path).is_valid

    def set_custom_install_path(self, path: str) -> None:
        self.custom_install_path = os.path.abspath(path)
        self.steamcmd_path = self.executable_path(self.custom_install_path)
        self.save()

    def load(self) -> None:
        self.custom_install_path = self.prefs.get(KEY_CUSTOM_INSTALL_PATH) or None
        self.steamcmd_path = self.prefs.get(KEY_STEAMCMD_PATH) or self.executable_path(self.install_dir)

    def save(self) -> None:
        self.prefs.set(KEY_CUSTOM_INSTALL_PATH, self.custom_install_path or "")
        self.prefs.set(KEY_STEAMCMD_PATH, self.steamcmd_path)

    # ===============================================================
    # Installation
    # ===============================================================

    def install(self, progress: Optional[ProgressCallback] = None) -> bool:
        """Download, extract and initialize SteamCMD.

        Args:
            progress: Optional callback receiving (fraction, message)

        Returns:
            True if SteamCMD was installed, False if it was already present

        Raises:
            OperationInProgress: If an installation is already running
            InstallationFailed: If any stage fails; the stage error is chained
        """
        if self._installing:
            raise OperationInProgress("SteamCMD installation")

        report = progress or (lambda fraction, message: None)
        extract_path = self.install_dir

        # Check if SteamCMD is already installed in the selected directory
        if self.is_installed(extract_path):
            self.steamcmd_path = self.executable_path(extract_path)
            self.save()
            self.stream.log(f"SteamCMD is already installed in {extract_path}")
            report(1.0, "SteamCMD is already installed")
            return False

        self._installing = True
        fd, download_path = tempfile.mkstemp(prefix="steamcmd-", suffix=os.path.basename(self.layout["url"]))
        os.close(fd)
        target_wiped = False
        try:
            report(0.1, "Downloading SteamCMD...")
            self._download(self.layout["url"], download_path, report)

            report(0.4, "Extracting SteamCMD...")
            if os.path.exists(extract_path):
                shutil.rmtree(extract_path)
            target_wiped = True
            os.makedirs(extract_path)
            extract_archive(download_path, extract_path)
            self.stream.log(f"Successfully extracted SteamCMD to: {extract_path}")

            report(0.5, "Removing archive...")
            os.remove(download_path)

            self.steamcmd_path = self.executable_path(extract_path)
            if os.name != "nt":
                os.chmod(self.steamcmd_path, 0o755)
            self.save()

            report(0.6, "Initializing SteamCMD...")
            self._initialize(report)

            report(1.0, "SteamCMD installed")
            self.stream.log("SteamCMD has been successfully installed and initialized.")
            return True

        except SteamUploaderError as e:
            self.stream.log(f"SteamCMD installation/initialization error: {e.message}", level="error")
            self._remove_partial_install(extract_path, target_wiped)
            raise InstallationFailed(e.message) from e
        except OSError as e:
            self.stream.log(f"SteamCMD installation/initialization error: {str(e)}", level="error")
            self._remove_partial_install(extract_path, target_wiped)
            raise InstallationFailed(str(e)) from e
        finally:
            self._installing = False
            if os.path.exists(download_path):
                os.remove(download_path)

    def _remove_partial_install(self, extract_path: str, target_wiped: bool) -> None:
        if target_wiped and os.path.isdir(extract_path):
            self.stream.log(f"Removing partial installation at {extract_path}", level="warning")
            shutil.rmtree(extract_path, ignore_errors=True)

    def _download(self, url: str, download_path: str, report: ProgressCallback) -> None:
        """Stream the SteamCMD archive to disk, reporting 0.1 to 0.4."""
        try:
            self.stream.log(f"Downloading SteamCMD from {url}")
            response = requests.get(url, stream=True, timeout=60)
            response.raise_for_status()

            total = int(response.headers.get('Content-Length') or 0)
            received = 0
            with open(download_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        received += len(chunk)
                        if total:
                            report(0.1 + 0.3 * min(received / total, 1.0), "Downloading SteamCMD...")

            self.stream.log(f"Successfully downloaded SteamCMD to: {download_path}")
        except requests.exceptions.RequestException as e:
            raise NetworkDownloadFailed(url, str(e)) from e

    def _initialize(self, report: ProgressCallback) -> None:
        """Run SteamCMD once so it can update itself, then verify the result."""
        install_dir = os.path.dirname(self.steamcmd_path)
        process = SteamCMDProcess(self.steamcmd_path, ['+quit'], self.stream, cwd=install_dir)

        for line in process:
            if "Loading Steam API..." in line or "Logged in OK" in line:
                report(0.7, "Loading Steam API...")
            elif "Waiting for user info...Done" in line:
                report(0.9, "Waiting for user info...")
        exit_code = process.wait()

        if exit_code == INITIALIZED_EXIT_CODE:
            self.stream.log(f"SteamCMD initialization completed with exit code {INITIALIZED_EXIT_CODE}.")
        elif exit_code != 0:
            self.stream.log(f"SteamCMD exited with unexpected non-zero code: {exit_code}", level="warning")
            raise SubprocessNonZeroExit(
                f"SteamCMD initialization failed. Exit code: {exit_code}. Output: {process.output[-2000:]}",
                exit_code
            )

        library_path = os.path.join(install_dir, self.layout["library"])
        if not os.path.exists(library_path):
            raise ToolNotInstalled(
                f"SteamCMD initialization failed: {self.layout['library']} not found after initialization."
            )

        with open(os.path.join(install_dir, STEAMCMD_INIT_LOG), 'w', encoding='utf-8') as f:
            f.write(process.output)
