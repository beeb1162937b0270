"""Steam VDF configuration builder for SteamPipe uploads."""

import os
from ..models import UploadManifest
from ..streams import LogStream
from .templates import VDF_TEMPLATE, DEPOT_TEMPLATE, SET_LIVE_TEMPLATE, FILE_EXCLUSION_TEMPLATE


def escape_vdf(value: str) -> str:
    """Escape backslashes and double quotes for a quoted VDF value."""
    return value.replace('\\', '\\\\').replace('"', '\\"')


# ===============================================================
# VDF Configuration Builder
# ===============================================================

class SteamVDFBuilder:
    """Builds the SteamPipe app build file for a depot upload."""

    def __init__(self, stream: LogStream):
        """Initialize VDF builder.

        Args:
            stream: LogStream instance for logging
        """
        self.stream = stream

    def render(self, manifest: UploadManifest) -> str:
        """Render the manifest as SteamPipe VDF text.

        The depot block holds the file mapping followed by one FileExclusion
        line per pattern, in the order given.

        Args:
            manifest: App, depot, content root and exclusion settings

        Returns:
            The VDF document
        """
        exclusions = ''.join(
            FILE_EXCLUSION_TEMPLATE.format(pattern=escape_vdf(pattern))
            for pattern in manifest.file_exclusions
        )
        depot_content = DEPOT_TEMPLATE.format(
            depot_id=escape_vdf(manifest.depot_id),
            exclusions=exclusions
        )

        # Add SetLive parameter if branch is specified
        set_live_str = SET_LIVE_TEMPLATE.format(branch=escape_vdf(manifest.branch)) if manifest.branch else ''

        # SteamCMD accepts forward slashes on every platform
        content_root = manifest.content_root.replace('\\', '/')

        return VDF_TEMPLATE.format(
            app_id=escape_vdf(manifest.app_id),
            description=escape_vdf(manifest.description),
            set_live=set_live_str,
            content_root=escape_vdf(content_root),
            depots=depot_content
        )

    def write(self, manifest: UploadManifest, vdf_path: str) -> str:
        """Generate the SteamPipe VDF file.

        Args:
            manifest: App, depot, content root and exclusion settings
            vdf_path: Where to write the file

        Returns:
            Path to the generated VDF file
        """
        self.stream.log(f"Generating SteamPipe VDF for app {manifest.app_id}...")

        directory = os.path.dirname(vdf_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(vdf_path, 'w', encoding='utf-8') as f:
            f.write(self.render(manifest))

        self.stream.log(f"VDF file generated: {vdf_path}")
        return vdf_path
