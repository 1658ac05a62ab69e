import subprocess
from importlib.metadata import PackageNotFoundError, version

# Overwritten during the release build
__version__ = "dev"


def get_version() -> str:
    """
    Returns the current version of storefront.
    Priorities:
    1. Explicitly set __version__ (if not "dev")
    2. Installed distribution metadata
    3. Git commit hash (if inside a git repo)
    4. Fallback "dev"
    """
    if __version__ != "dev":
        return __version__

    try:
        return version("storefront")
    except PackageNotFoundError:
        pass

    try:
        cmd = ["git", "rev-parse", "--short", "HEAD"]
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass

    return "dev"
