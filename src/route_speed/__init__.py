"""Route Speed - route computation and speed-profile comparison."""

import functools
import os
import subprocess

__version__ = "0.1.0"
__version_date__ = "2025-06-12"


@functools.lru_cache(maxsize=1)
def get_git_hash() -> str:
    """Short commit hash of the checkout holding this package, or 'unknown'."""
    package_dir = os.path.dirname(os.path.abspath(__file__))
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=package_dir,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    if result.returncode != 0:
        return "unknown"
    return result.stdout.strip() or "unknown"
