import json
import logging
import re
import sys

SECRET_PATTERNS = [
    (re.compile(r'(api[_-]?key\s*[=:]\s*)["\']?[\w-]{20,}["\']?', re.IGNORECASE), r"\1***MASKED***"),
    (re.compile(r"sk-[\w-]{10,}"), "sk-***MASKED***"),
    (re.compile(r"(bearer\s+)[\w.-]{20,}", re.IGNORECASE), r"\1***MASKED***"),
]

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def mask_secrets(text: str) -> str:
    """Mask API keys and bearer tokens in text."""
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretMaskingFilter(logging.Filter):
    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = mask_secrets(record.msg)
        if record.args:
            record.args = tuple(mask_secrets(arg) if isinstance(arg, str) else arg for arg in record.args)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def setup_logger(name: str = "app", log_level: str | int = logging.INFO, use_json: bool = False) -> logging.Logger:
    """
    Attach a single stdout handler to the named logger.

    Calling this again is a no-op, so the app factory and tests can both call it.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(SecretMaskingFilter())
    logger.addHandler(handler)
    return logger
