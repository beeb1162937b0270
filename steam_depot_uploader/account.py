"""Steam account credentials and two-factor code requests."""

import os
from typing import Dict, Optional

from .exceptions import CredentialsMissing, OperationInProgress
from .models import AuthCodeDelivery
from .prefs import Prefs, KEY_PREFIX
from .process import SteamCMDProcess
from .streams import LogStream


KEY_USERNAME = KEY_PREFIX + "username"
KEY_PASSWORD = KEY_PREFIX + "password"
KEY_AUTH_CODE = KEY_PREFIX + "authCode"

EMAIL_CODE_MARKER = "Steam Guard code:"
MOBILE_CODE_MARKER = "Two-factor code:"


def classify_auth_code_line(line: str) -> Optional[AuthCodeDelivery]:
    """Return the delivery channel a SteamCMD login line announces, if any."""
    if EMAIL_CODE_MARKER in line:
        return AuthCodeDelivery.EMAIL
    if MOBILE_CODE_MARKER in line:
        return AuthCodeDelivery.MOBILE_APP
    return None


class AccountConfig:
    """Steam login used for SteamCMD."""

    def __init__(self, prefs: Prefs, stream: LogStream) -> None:
        """Initialize account settings.

        Args:
            prefs: Machine-local settings store used by load(), save() and clear()
            stream: LogStream instance for logging
        """
        self.prefs = prefs
        self.stream = stream
        self.username: str = ""
        self.password: str = ""
        self.auth_code: str = ""
        self._requesting_auth_code = False
        self._from_environment: Dict[str, str] = {}

    @property
    def is_requesting_auth_code(self) -> bool:
        return self._requesting_auth_code

    def are_credentials_set(self) -> bool:
        return bool(self.username) and bool(self.password)

    def request_auth_code(self, steamcmd_path: str) -> AuthCodeDelivery:
        """Ask Steam to send a new two-factor code.

        Runs a login-only SteamCMD session and watches the output for the
        prompt telling which channel the code went to.

        Args:
            steamcmd_path: Path to the SteamCMD executable

        Returns:
            The channel Steam used, or AuthCodeDelivery.UNKNOWN if the output
            did not say

        Raises:
            CredentialsMissing: If username or password is empty
            OperationInProgress: If a request is already running
            SubprocessLaunchFailed: If SteamCMD could not be started
        """
        if not self.are_credentials_set():
            raise CredentialsMissing("Username or password is empty. Cannot request auth code.")
        if self._requesting_auth_code:
            raise OperationInProgress("Auth code request")

        self._requesting_auth_code = True
        try:
            process = SteamCMDProcess(
                steamcmd_path,
                ['+login', self.username, self.password, '+quit'],
                self.stream,
                secrets=[self.password],
            )

            delivery = AuthCodeDelivery.UNKNOWN
            for line in process:
                channel = classify_auth_code_line(line)
                if channel is not None:
                    delivery = channel
            process.wait()
        finally:
            self._requesting_auth_code = False

        self.stream.log("Auth code request process completed.")
        if delivery is AuthCodeDelivery.UNKNOWN:
            self.stream.log("Could not confirm that an auth code was sent", level="warning")
        else:
            self.stream.log(f"An authentication code has been sent to your {delivery.value}.")
        return delivery

    def load(self) -> None:
        """Read the saved login.

        Username and password fall back to the STEAM_USERNAME and
        STEAM_PASSWORD environment variables when nothing is saved. Values
        taken from the environment are never written back by save().
        """
        self._from_environment = {}
        self.username = self._load_credential(KEY_USERNAME, "STEAM_USERNAME")
        self.password = self._load_credential(KEY_PASSWORD, "STEAM_PASSWORD")
        self.auth_code = self.prefs.get(KEY_AUTH_CODE)

    def _load_credential(self, key: str, env_var: str) -> str:
        value = self.prefs.get(key)
        if not value and os.environ.get(env_var):
            value = os.environ[env_var]
            self._from_environment[key] = value
        return value

    def save(self) -> None:
        for key, value in ((KEY_USERNAME, self.username), (KEY_PASSWORD, self.password)):
            if value and self._from_environment.get(key) == value:
                continue
            self.prefs.set(key, value)
        self.prefs.set(KEY_AUTH_CODE, self.auth_code)

    def update(self, username: Optional[str] = None, password: Optional[str] = None,
               auth_code: Optional[str] = None) -> None:
        """Change and save only the fields that are given."""
        for key, attr, value in ((KEY_USERNAME, "username", username),
                                 (KEY_PASSWORD, "password", password),
                                 (KEY_AUTH_CODE, "auth_code", auth_code)):
            if value is None:
                continue
            setattr(self, attr, value)
            self._from_environment.pop(key, None)
            self.prefs.set(key, value)

    def set_auth_code(self, code: str) -> None:
        """Store a new auth code without touching the saved login."""
        self.auth_code = code.strip()
        self.prefs.set(KEY_AUTH_CODE, self.auth_code)

    def clear(self) -> None:
        self.username = ""
        self.password = ""
        self.auth_code = ""
        self.save()
