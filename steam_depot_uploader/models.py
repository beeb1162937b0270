"""Data structures shared by the uploader components."""

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .exceptions import AuthCodeRejected, SubprocessNonZeroExit


PARTNER_BUILD_DETAILS_URL = "https://partner.steamgames.com/apps/builddetails/{app_id}/{build_id}"


class AuthCodeDelivery(Enum):
    """Where Steam says it sent the login code."""
    EMAIL = "email"
    MOBILE_APP = "mobile app"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ToolInstallation:
    """A SteamCMD executable and the directory it lives in."""
    executable_path: str
    install_dir: str

    @property
    def is_valid(self) -> bool:
        # More than one file means the archive was extracted and initialized
        if not os.path.isfile(self.executable_path) or not os.path.isdir(self.install_dir):
            return False
        files = [name for name in os.listdir(self.install_dir)
                 if os.path.isfile(os.path.join(self.install_dir, name))]
        return len(files) > 1


@dataclass
class UploadManifest:
    """Everything needed to render a SteamPipe app build file."""
    app_id: str
    depot_id: str
    content_root: str
    description: str = "Steam Depot Uploader"
    file_exclusions: List[str] = field(default_factory=list)
    branch: Optional[str] = None


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one SteamCMD upload attempt."""
    success: bool
    exit_code: int
    app_id: str = ""
    depot_id: str = ""
    build_path: str = ""
    upload_id: str = ""
    build_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    log_output: str = ""
    auth_code_rejected: bool = False

    @property
    def partner_url(self) -> Optional[str]:
        """Steamworks build details page, if a build ID was captured."""
        if not self.build_id or not self.app_id:
            return None
        return PARTNER_BUILD_DETAILS_URL.format(app_id=self.app_id, build_id=self.build_id)

    def raise_for_status(self) -> None:
        """Raise the matching error if the upload did not succeed.

        Raises:
            AuthCodeRejected: If Steam rejected the auth code
            SubprocessNonZeroExit: If SteamCMD exited with a non-zero code
        """
        if self.auth_code_rejected:
            raise AuthCodeRejected()
        if not self.success:
            raise SubprocessNonZeroExit(
                f"SteamPipe upload failed with code {self.exit_code}", self.exit_code
            )
