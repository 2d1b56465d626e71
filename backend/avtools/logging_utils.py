# avtools/logging_utils.py
import os
import logging
from pathlib import Path

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_FORMATS = {
    "plain": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    "json": '{"t":"%(asctime)s","lv":"%(levelname)s","lg":"%(name)s","msg":"%(message)s"}',
}


def setup_logger(name: str) -> logging.Logger:
    """
    Return the logger `name`, writing to <LOG_DIR>/<name>.log.

    Env:
      LOG_DIR    (default 'logs')
      LOG_LEVEL  (default 'INFO')
      LOG_FORMAT ('plain' or 'json', default 'plain')
    Safe to call repeatedly; the file handler is attached once per path.
    """
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    level = _LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    fmt = _FORMATS.get(os.getenv("LOG_FORMAT", "plain").lower(), _FORMATS["plain"])

    log_dir.mkdir(parents=True, exist_ok=True)
    logfile = str(log_dir / f"{name}.log")

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    already = any(getattr(h, "_avtools_logfile", None) == logfile for h in logger.handlers)
    if not already:
        fh = logging.FileHandler(logfile, encoding="utf-8")
        fh._avtools_logfile = logfile
        fh.setFormatter(logging.Formatter(fmt))
        fh.setLevel(level)
        logger.addHandler(fh)

    return logger


def log_kv(logger: logging.Logger, level: int = logging.INFO, **kv):
    """
    One line of key=value pairs, e.g.
        log_kv(log, event="list", table="Products", records=12)
    """
    logger.log(level, " ".join(f"{k}={v}" for k, v in kv.items()))
