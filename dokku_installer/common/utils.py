"""
Dokku Installer - Utility Functions

Small helpers shared by the probes, the boot registrar and the setup
pipeline:
- Running external commands
- Writing files
"""

import os
import subprocess
from pathlib import Path
from typing import Optional, Sequence


def run_command(cmd: Sequence[str], timeout: Optional[float] = None) -> tuple[bool, str, str]:
    """Run a command, return (ok, stdout, stderr).

    A missing binary or a timeout is reported as a failed run rather than
    raised, so callers only have to look at the first element.
    """
    try:
        r = subprocess.run(
            list(cmd), capture_output=True, text=True, timeout=timeout
        )
        return r.returncode == 0, r.stdout.strip(), r.stderr.strip()
    except FileNotFoundError:
        return False, '', f'command not found: {cmd[0]}'
    except subprocess.TimeoutExpired:
        return False, '', f'timeout after {timeout}s'


def describe_failure(cmd: Sequence[str], stdout: str, stderr: str) -> str:
    """Format a one-line error for a failed command."""
    detail = stderr or stdout or 'no output'
    return f"{' '.join(cmd)} failed: {detail}"


def write_file(path: Path, content: str, mode: int = 0o644) -> None:
    """Write content to path, truncating it, and set its mode."""
    path.write_text(content)
    os.chmod(str(path), mode)
