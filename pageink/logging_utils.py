import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def configure_logging(*, debug: bool = False, log_path: Optional[str] = None) -> None:
    """Configure app-wide logging.

    - Always logs to a rotating file under ./logs (or $PAGEINK_LOG_DIR)
    - Also logs to the console when debug is enabled
    """

    level = logging.DEBUG if debug else logging.INFO

    if log_path is None:
        env_log_dir = os.environ.get("PAGEINK_LOG_DIR")
        if env_log_dir:
            log_dir = Path(env_log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
        else:
            cwd_logs = Path.cwd() / "logs"
            try:
                cwd_logs.mkdir(parents=True, exist_ok=True)
                log_dir = cwd_logs
            except OSError:
                log_dir = Path.home() / ".pageink" / "logs"
                log_dir.mkdir(parents=True, exist_ok=True)

        log_path = str(log_dir / "pageink.log")

    root = logging.getLogger()
    root.setLevel(level)

    # Running twice must not duplicate handlers
    if getattr(root, "_pageink_configured", False):
        return

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if debug:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        root.addHandler(console)

    setattr(root, "_pageink_configured", True)
