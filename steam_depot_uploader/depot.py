"""Steam depot settings and build output paths."""

import os
from typing import Optional

from .prefs import Prefs, KEY_PREFIX
from .streams import LogStream


DEFAULT_APP_ID = ""
DEFAULT_DEPOT_ID = ""
DEFAULT_BUILD_OUTPUT_PATH = "Build"

KEY_APP_ID = KEY_PREFIX + "appId"
KEY_DEPOT_ID = KEY_PREFIX + "depotId"
KEY_BUILD_OUTPUT_PATH = KEY_PREFIX + "buildOutputPath"


def _to_forward_slashes(path: str) -> str:
    return path.replace(os.sep, "/").replace("\\", "/")


class DepotConfig:
    """Holds the app ID, depot ID and build output path for one project."""

    def __init__(self, prefs: Prefs, project_root: str, stream: Optional[LogStream] = None) -> None:
        """Initialize depot settings with default values.

        Args:
            prefs: Settings store used by load() and save()
            project_root: Directory relative build paths are resolved against
            stream: Optional LogStream instance for logging
        """
        self.prefs = prefs
        self.project_root = project_root
        self.stream = stream
        self.app_id: str = DEFAULT_APP_ID
        self.depot_id: str = DEFAULT_DEPOT_ID
        self.build_output_path: str = DEFAULT_BUILD_OUTPUT_PATH

    def get_absolute_build_path(self) -> str:
        """Get the absolute, normalized path of the build output directory."""
        return os.path.normpath(os.path.join(os.path.abspath(self.project_root), self.build_output_path))

    def build_output_directory_exists(self) -> bool:
        return os.path.isdir(self.get_absolute_build_path())

    def create_build_output_directory(self) -> None:
        """Create the build output directory if it doesn't exist."""
        path = self.get_absolute_build_path()
        if not os.path.isdir(path):
            os.makedirs(path)
            if self.stream:
                self.stream.log(f"Created build output directory: {path}")

    def is_valid(self) -> bool:
        return bool(self.app_id) and bool(self.depot_id) and bool(self.build_output_path)

    def reset_to_defaults(self) -> None:
        self.app_id = DEFAULT_APP_ID
        self.depot_id = DEFAULT_DEPOT_ID
        self.build_output_path = DEFAULT_BUILD_OUTPUT_PATH

    def get_relative_path(self, path: str) -> str:
        """Get the path of a file or directory relative to the build output directory.

        Both paths are compared with forward slashes. Paths outside the build
        output directory are returned unchanged.

        Args:
            path: Full path to a file or directory

        Returns:
            The relative path with forward slashes and no leading separator,
            or the input path if it is not under the build output directory
        """
        build_root = _to_forward_slashes(self.get_absolute_build_path()).rstrip("/")
        candidate = _to_forward_slashes(path)

        if candidate == build_root:
            return ""
        if build_root and candidate.startswith(build_root + "/"):
            return candidate[len(build_root):].lstrip("/")
        return path

    def load(self) -> None:
        self.app_id = self.prefs.get(KEY_APP_ID, DEFAULT_APP_ID)
        self.depot_id = self.prefs.get(KEY_DEPOT_ID, DEFAULT_DEPOT_ID)
        self.build_output_path = self.prefs.get(KEY_BUILD_OUTPUT_PATH, DEFAULT_BUILD_OUTPUT_PATH)

    def save(self) -> None:
        self.prefs.set(KEY_APP_ID, self.app_id)
        self.prefs.set(KEY_DEPOT_ID, self.depot_id)
        self.prefs.set(KEY_BUILD_OUTPUT_PATH, self.build_output_path)
