import os
import sys
from datetime import datetime
from typing import Optional
from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(run_name: str, log_dir: Optional[str] = "logs", level: str = "INFO") -> Optional[str]:
    """Re-level stderr output and add a rotating file sink under log_dir."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())

    if not log_dir:
        return None

    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S_%f')[:-3]
    log_file = os.path.join(log_dir, f"{run_name}_{timestamp}.log")

    logger.add(
        log_file,
        level=level.upper(),
        rotation="1 day",
        retention="30 days",
        format=LOG_FORMAT,
    )

    logger.info(f"{run_name} logging started - {log_file}")
    return log_file
