# avtools/timing.py
from time import perf_counter
from contextlib import contextmanager

from .logging_utils import setup_logger, log_kv


@contextmanager
def timed_block(stage: str, **kv):
    """
    Log start/end and elapsed_ms of a block to logs/store.log:
        with timed_block("list", table="Products"):
            ... call the store ...
    """
    log = setup_logger("store")
    log_kv(log, event="start", stage=stage, **kv)
    start = perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        elapsed_ms = int((perf_counter() - start) * 1000)
        log_kv(log, event="end", stage=stage, ok=ok, elapsed_ms=elapsed_ms, **kv)
