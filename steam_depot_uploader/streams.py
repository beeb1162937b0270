from datetime import datetime
import os
import sys
import redis
from typing import Optional


class LogStream():
    """A logging stream that prints log lines and mirrors them to a Redis stream.

    Lines always go to the console. When VALKEY_HOST is set (or a client is
    passed in) every line is also appended to the Redis stream `stream_name`.
    """

    def __init__(self, stream_name: str, redis_client: Optional[redis.Redis] = None, quiet: bool = False) -> None:
        self.stream_name: str = stream_name
        self.quiet: bool = quiet
        self.redis_client: Optional[redis.Redis] = redis_client

        # Connect to Valkey only when one is configured
        if self.redis_client is None and os.environ.get("VALKEY_HOST"):
            use_ssl = os.environ.get("VALKEY_USE_SSL", "false").lower() == "true"
            self.redis_client = redis.Redis(
                host=os.environ.get("VALKEY_HOST"),
                port=int(os.environ.get("VALKEY_PORT", 6379)),
                password=os.environ.get("VALKEY_PASSWORD") or None,
                ssl=use_ssl,
                decode_responses=True,
            )

    # Log a line to the console and the stream
    def log(self, line: str, level: str = "info") -> None:
        """Log a line to the console and, if configured, the Redis stream."""
        if not self.quiet or level in ("warning", "error"):
            out = sys.stderr if level in ("warning", "error") else sys.stdout
            print(line, file=out)

        if self.redis_client is None:
            return

        try:
            self.redis_client.xadd(
                self.stream_name,
                {
                    "line": line,
                    "timestamp": datetime.now().isoformat(),
                    "level": level[0].lower()
                },
            )
        except redis.RedisError as e:
            # Stop mirroring after the first failure
            print(f"Error writing to log stream {self.stream_name}: {str(e)}", file=sys.stderr)
            self.redis_client = None
