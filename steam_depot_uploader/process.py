"""Line-by-line access to a running SteamCMD process."""

import os
import re
import subprocess
from typing import Iterator, List, Optional, Sequence

from .exceptions import SubprocessLaunchFailed
from .streams import LogStream


ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from SteamCMD output."""
    return ANSI_ESCAPE.sub('', text)


def mask_arguments(args: Sequence[str], secrets: Sequence[str]) -> str:
    """Join arguments for logging with every secret value replaced by ****."""
    hidden = {secret for secret in secrets if secret}
    return ' '.join('****' if arg in hidden else arg for arg in args)


class SteamCMDProcess:
    """A launched SteamCMD process whose output is consumed as an iterator.

    stderr is merged into stdout so lines arrive in the order SteamCMD
    flushed them. Iterating yields cleaned, non-empty lines and stops when
    the process closes its output; `wait()` then returns the exit code.
    There is no timeout: a hung SteamCMD blocks the caller.
    """

    def __init__(
        self,
        executable: str,
        args: List[str],
        stream: LogStream,
        cwd: Optional[str] = None,
        secrets: Sequence[str] = (),
    ) -> None:
        self.executable = executable
        self.args = list(args)
        self.stream = stream
        self.output_lines: List[str] = []

        self.stream.log(f"Executing: {os.path.basename(executable)} {mask_arguments(self.args, secrets)}")
        try:
            self.process = subprocess.Popen(
                [executable] + self.args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=cwd,
                text=True,
                encoding='utf-8',
                errors='replace',
                bufsize=1
            )
        except OSError as e:
            self.stream.log(f"Could not start {executable}: {str(e)}", level="error")
            raise SubprocessLaunchFailed(executable, str(e)) from e

    def __iter__(self) -> Iterator[str]:
        for line in iter(self.process.stdout.readline, ''):
            clean_line = strip_ansi(line.rstrip())
            if not clean_line:
                continue
            self.stream.log(f"SteamCMD: {clean_line}")
            self.output_lines.append(clean_line)
            yield clean_line

    @property
    def output(self) -> str:
        return '\n'.join(self.output_lines)

    def wait(self) -> int:
        """Drain any unread output and wait for the process to exit."""
        if not self.process.stdout.closed:
            for _ in self:
                pass
            self.process.stdout.close()
        return self.process.wait()
