import logging
import logging.handlers
from pathlib import Path

from app.core.config import settings

LOGS_DIR = Path(__file__).resolve().parents[2] / "logs"


def setup_logging(environment: str = settings.ENV, level_name: str = settings.LOG_LEVEL) -> None:
    """
    Configure application logging.

    Console output always; production also writes a rotating file under logs/.
    Calling it again is a no-op once the root logger has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    env = (environment or "development").lower().strip()
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    if env == "development" and settings.DEBUG:
        level = logging.DEBUG

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    handlers.append(console)

    if env == "production":
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            LOGS_DIR / "app.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers)

    # engine echo is noisy at DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
