"""Steam module for handling SteamCMD installs, SteamPipe builds and uploads."""

from .builder import SteamVDFBuilder
from .installer import SteamCMDInstaller
from .uploader import SteamUploader, UploadOutputState

__all__ = [
    'SteamVDFBuilder',
    'SteamCMDInstaller',
    'SteamUploader',
    'UploadOutputState',
]
