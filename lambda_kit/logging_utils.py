import logging
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)

    # boto 계열은 -vv 이상에서만 DEBUG 로 내린다.
    boto_level = logging.DEBUG if verbosity >= 2 else logging.WARNING
    for name in ("boto3", "botocore", "urllib3"):
        logging.getLogger(name).setLevel(boto_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def format_duration(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    if seconds < 1:
        return f"{seconds * 1000:0.0f}ms"
    return f"{seconds:0.2f}s"
