"""Exception definitions for the Steam depot uploader."""

from typing import Optional


class SteamUploaderError(Exception):
    """Base exception for the Steam depot uploader"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ConfigInvalid(SteamUploaderError):
    """A required setting is missing or invalid"""

    def __init__(self, message: str = "Depot settings are invalid."):
        super().__init__(message, "SDU001")


class SettingsCorrupt(ConfigInvalid):
    """The settings file exists but cannot be parsed"""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Settings file {path} is malformed: {reason}")
        self.path = path


class CredentialsMissing(SteamUploaderError):
    """Steam username or password is not set"""

    def __init__(self, message: str = "Steam account credentials are not set."):
        super().__init__(message, "SDU002")


class ToolNotInstalled(SteamUploaderError):
    """SteamCMD is missing or incomplete"""

    def __init__(self, message: str = "SteamCMD path is invalid."):
        super().__init__(message, "SDU003")


class DirectoryMissing(SteamUploaderError):
    """The build output directory does not exist"""

    def __init__(self, path: Optional[str] = None):
        message = "Build output directory does not exist."
        if path:
            message = f"Build output directory does not exist: {path}"
        super().__init__(message, "SDU004")
        self.path = path


class SubprocessLaunchFailed(SteamUploaderError):
    """The external process could not be started"""

    def __init__(self, executable: str, reason: str):
        super().__init__(f"Failed to launch {executable}: {reason}", "SDU005")
        self.executable = executable


class SubprocessNonZeroExit(SteamUploaderError):
    """The external process exited with an unexpected code"""

    def __init__(self, message: str, exit_code: int):
        super().__init__(message, "SDU006")
        self.exit_code = exit_code


class AuthCodeRejected(SteamUploaderError):
    """Steam rejected the two-factor auth code"""

    def __init__(self, message: str = "Invalid or missing two-factor authentication code. "
                                      "Please request a new auth code."):
        super().__init__(message, "SDU007")


class NetworkDownloadFailed(SteamUploaderError):
    """Downloading the SteamCMD archive failed"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to download {url}: {reason}", "SDU008")
        self.url = url


class ArchiveExtractFailed(SteamUploaderError):
    """Extracting the SteamCMD archive failed"""

    def __init__(self, archive_path: str, reason: str):
        super().__init__(f"Failed to extract {archive_path}: {reason}", "SDU009")
        self.archive_path = archive_path


class InstallationFailed(SteamUploaderError):
    """Installing or initializing SteamCMD failed at some stage"""

    def __init__(self, reason: str):
        super().__init__(f"Failed to install or initialize SteamCMD: {reason}", "SDU010")


class BuildFailed(SteamUploaderError):
    """The external build step did not succeed"""

    def __init__(self, exit_code: int):
        super().__init__(f"The build has failed with exit code {exit_code}.", "SDU011")
        self.exit_code = exit_code


class OperationInProgress(SteamUploaderError):
    """A second run of a long operation was requested while one is running"""

    def __init__(self, operation: str):
        super().__init__(f"{operation} is already in progress.", "SDU012")
        self.operation = operation
