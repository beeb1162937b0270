"""Upload game builds to Steam depots through SteamCMD."""

__version__ = "0.1.0"
