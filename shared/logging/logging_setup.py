from datetime import datetime
from pytz import timezone
import logging.config
import logging.handlers
import logging
import os
from logging import Logger


# environment keys whose values never show up in log output
SECRET_ENV_SUFFIXES = ("_API_KEY", "_PASSWORD", "_TOKEN")
_MASK = "***"

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}


def _collect_secrets() -> list[str]:
    secrets = []
    for key, value in os.environ.items():
        if key.upper().endswith(SECRET_ENV_SUFFIXES) and value and len(value.strip()) >= 4:
            secrets.append(value.strip())
    # longest first so overlapping keys are masked completely
    return sorted(set(secrets), key=len, reverse=True)


class SecretRedactionFilter(logging.Filter):
    """Masks configured API keys and tokens in every record passing the handler."""

    def __init__(self, secrets: list[str] | None = None):
        super().__init__()
        self._secrets = secrets if secrets is not None else _collect_secrets()

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        redacted = message
        for secret in self._secrets:
            redacted = redacted.replace(secret, _MASK)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in a configured timezone and marks warnings and errors."""

    LEVEL_MARKERS = {logging.WARNING: "⚠️ ", logging.ERROR: "⛔ ", logging.CRITICAL: "⛔ "}

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def formatMessage(self, record) -> str:
        marker = self.LEVEL_MARKERS.get(record.levelno, "")
        if marker:
            record.message = marker + record.message
        return super().formatMessage(record)


class ColoredFormatter(TimezoneFormatter):
    """Console formatter that wraps a line in ANSI codes when the record has a ``color``."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger(logging.LoggerAdapter):
    """Logger adapter accepting an optional ``color=`` keyword on every log call.

    Usage::

        logger.info("Document id=%s indexed", 4, color="green")

    The color travels as a record attribute and is only rendered by the console handler.
    """

    def __init__(self, logger: Logger):
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        color = kwargs.pop("color", None)
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        return msg, kwargs


def setup_logging(logger_name: str = "doc_rag_bridge") -> ColorLogger:
    """Configure console and rotating file logging for the whole process.

    Reads LOG_LEVEL, TIMEZONE, ROOT_DIR, LOG_MAX_BYTES and LOG_BACKUP_COUNT.
    """
    debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
    loglevel = logging.DEBUG if debug_mode else logging.INFO
    log_dir = os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    os.makedirs(log_dir, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact": {
                "()": SecretRedactionFilter,
            },
        },
        "formatters": {
            "standard": {
                "()": TimezoneFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "filters": ["redact"],
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filters": ["redact"],
                "level": loglevel,
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024))),
                "backupCount": int(os.getenv("LOG_BACKUP_COUNT", "5")),
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    # request lines carry full provider URLs
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return ColorLogger(logging.getLogger(logger_name))
