from pathlib import Path

import psutil
from loguru import logger
from platformdirs import user_data_dir, user_log_dir

APP_NAME = "frick"
TAG_FILE_NAME = "frick.tag"

# Desktop automounters put removable drives under these
REMOVABLE_MOUNT_PREFIXES = ("/media/", "/run/media/", "/Volumes/")


def get_project_root() -> Path | None:
    """The source checkout root when running from git, else None."""
    potential_root = Path(__file__).resolve().parents[3]
    if (potential_root / "pyproject.toml").exists() and (potential_root / ".git").exists():
        return potential_root
    return None


def get_default_data_dir() -> Path:
    """`outputs/` in a checkout, otherwise the XDG data dir."""
    root = get_project_root()
    return root / "outputs" if root else Path(user_data_dir(appname=APP_NAME))


def get_default_log_dir() -> Path:
    """`outputs/` in a checkout, otherwise the XDG log dir."""
    root = get_project_root()
    return root / "outputs" if root else Path(user_log_dir(appname=APP_NAME))


def removable_mounts() -> list[Path]:
    """Mount points of removable drives currently attached."""
    try:
        partitions = psutil.disk_partitions(all=False)
    except (OSError, psutil.Error) as e:
        logger.debug(f"Could not list partitions: {e}")
        return []

    mounts = []
    for part in partitions:
        opts = part.opts.split(",")
        if "removable" in opts or part.mountpoint.startswith(REMOVABLE_MOUNT_PREFIXES):
            mounts.append(Path(part.mountpoint))
    return mounts


def tag_locations(default: Path) -> list[Path]:
    """Where a tag may be presented: `default`, then the root of every removable drive."""
    return [default] + [mount / TAG_FILE_NAME for mount in removable_mounts()]
