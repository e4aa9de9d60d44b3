import logging
import re
from typing import IO, Any, Iterable, Optional

LOG_EXTRA_FIELDS = (
    "method",
    "url",
    "status",
    "duration_ms",
    "step",
    "domain",
    "challenge",
    "pages",
)

# "user:password@" in a URL authority
_USERINFO = re.compile(r"(?<=://)[^/@\s]+@")


class LogfmtFormatter(logging.Formatter):
    """logfmt formatter for client events. Missing extras are skipped and
    credentials embedded in URLs are masked."""

    def __init__(self, fields: Iterable[str] = LOG_EXTRA_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        kv: list[str] = [
            f"level={record.levelname.lower()}",
            f"logger={record.name}",
        ]

        msg = record.getMessage()
        if msg:
            kv.append(f"event={self._fmt_val(msg)}")

        for key in self.fields:
            val = getattr(record, key, None)
            if val is None:
                continue
            kv.append(f"{key}={self._fmt_val(val)}")

        if record.exc_info and record.exc_info[0] is not None:
            kv.append(f"exc_type={record.exc_info[0].__name__}")
            kv.append(f"exc={self._fmt_val(record.exc_info[1])}")

        return " ".join(kv)

    @staticmethod
    def _fmt_val(val: Any) -> str:
        if isinstance(val, (int, float, bool)):
            return str(val)
        s = _USERINFO.sub("***@", str(val))
        if " " in s or "=" in s or '"' in s:
            s = '"' + s.replace('"', '\\"') + '"'
        return s


def setup_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Initialize root logging with logfmt output."""

    root = logging.getLogger()
    # calling twice must not duplicate output
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(LogfmtFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


__all__ = ["setup_logging", "LogfmtFormatter", "LOG_EXTRA_FIELDS"]
