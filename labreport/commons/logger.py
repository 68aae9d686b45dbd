import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[correlation_id]} | "
    "{name}:{function}:{line} - {message}"
)


def setup_logging(root: Optional[str], level: str = "INFO"):
    logger.remove()
    logger.configure(extra={"correlation_id": "-"})
    if root:
        logdir = Path(root) / datetime.now().strftime("%Y/%m/%d")
        logdir.mkdir(parents=True, exist_ok=True)
        logfile = logdir / "app.log"
        logger.add(
            str(logfile),
            format=LOG_FORMAT,
            rotation="00:00",
            retention="14 days",
            level=level,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
    logger.add(sys.stdout, format=LOG_FORMAT, level=level)
    return logger
