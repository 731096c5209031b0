import logging
import sys
from pathlib import Path
from typing import Optional, Union


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Configure process logging:
    - Console handler on stderr at ``level``
    - Optional file handler with full DEBUG output

    Call once, before the first request is served.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level.upper() if isinstance(level, str) else level)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)

    # The test client logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
