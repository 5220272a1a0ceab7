import sys

from loguru import logger

from frick.settings import settings

LOG_FORMAT_CONSOLE = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)
LOG_FORMAT_FILE = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"
LOG_FORMAT_TRANSITIONS = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
LOG_ROTATION = "10 MB"
LOG_RETENTION = "10 days"
LOG_COMPRESSION = "zip"


def is_transition(record) -> bool:
    """Records bound with transition=True: toggles, wrong tags, refused blocks."""
    return record["extra"].get("transition", False)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for a frick command.

    Three sinks: stderr, `app.log` with everything, and `transitions.log`
    with only the block/unblock history, which is kept for a year since it
    doubles as an audit trail of when blocking was turned off.

    Args:
        verbose (bool): If True, enables DEBUG level logging.
                       Otherwise INFO, unless settings.debug is set.
    """
    logger.remove()

    level = "DEBUG" if verbose or settings.debug else "INFO"
    logger.add(sys.stderr, level=level, format=LOG_FORMAT_CONSOLE)

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = settings.log_dir / "app.log"
    logger.add(
        log_file_path,
        level=level,
        format=LOG_FORMAT_FILE,
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        compression=LOG_COMPRESSION,
    )
    logger.add(
        settings.log_dir / "transitions.log",
        level="INFO",
        format=LOG_FORMAT_TRANSITIONS,
        filter=is_transition,
        rotation="1 MB",
        retention="1 year",
    )

    logger.debug(f"Logging initialized in {settings.log_dir}")
