import logging, sys

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(level: str = "INFO"):
    root = logging.getLogger()
    level = (level or "INFO").upper()
    # aliniază și loggerele uvicorn la același nivel
    for name in UVICORN_LOGGERS:
        logging.getLogger(name).setLevel(level)
    if root.handlers:
        root.setLevel(level)
        return
    root.setLevel(level)
    h = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    h.setFormatter(fmt)
    root.addHandler(h)
