import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

# Records logged outside an MCP request carry this placeholder session.
NO_SESSION = "-"

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<8}</level> "
    "<magenta>[{extra[session]}]</magenta> <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | session={extra[session]} | {name}:{function}:{line} - {message}"


@runtime_checkable
class LogConsumer(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class ConsoleLogConsumer:
    """Human-readable sink for container logs."""

    def __init__(self, stream: str = "stderr"):
        self._stream_name = stream if stream in ("stderr", "stdout") else "stderr"

    def register(self, level: str) -> None:
        logger.add(
            sys.stdout if self._stream_name == "stdout" else sys.stderr,
            level=level,
            format=_CONSOLE_FORMAT,
        )

    def describe(self, level: str) -> str:
        return f"console ({self._stream_name}, {level})"


class FileLogConsumer:
    """Rotating file sink. With ``serialize`` each record is written as one JSON line."""

    def __init__(
        self,
        path: str = "logs/napkin-mcp-bridge.log",
        rotation: str = "10 MB",
        retention: int = 5,
        serialize: bool = False,
    ):
        self._path = path
        self._rotation = rotation
        self._retention = retention
        self._serialize = bool(serialize)

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format=_FILE_FORMAT,
            rotation=self._rotation,
            retention=self._retention,
            serialize=self._serialize,
            enqueue=True,
        )

    def describe(self, level: str) -> str:
        kind = "json lines" if self._serialize else "text"
        return f"file ({self._path}, {level}, {kind}, rotation {self._rotation})"


_CONSUMER_TYPES: dict[str, type] = {
    "console": ConsoleLogConsumer,
    "file": FileLogConsumer,
}

# Containers collect stderr; the file sink is opt-in through LogConsumers.
_DEFAULT_CONSUMERS = [
    {"type": "console"},
]


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
) -> list[str]:
    """Replace loguru's sinks with the configured consumers and describe each of them.

    Every record carries a ``session`` extra. HTTP handlers set it per request
    with ``logger.contextualize(session=...)``; elsewhere it is ``NO_SESSION``.
    """
    logger.remove()
    logger.configure(extra={"session": NO_SESSION})

    if consumers is None:
        consumers = _DEFAULT_CONSUMERS

    descriptions: list[str] = []

    for config in consumers:
        sink_type = config.get("type", "")
        cls = _CONSUMER_TYPES.get(sink_type)
        if cls is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue

        kwargs = {k: v for k, v in config.items() if k not in ("type", "level")}
        sink_level = str(config.get("level", level)).upper()

        try:
            consumer = cls(**kwargs)
        except TypeError as ex:
            logger.warning(f"Invalid options for log consumer {sink_type!r}: {ex}")
            continue
        consumer.register(sink_level)
        descriptions.append(consumer.describe(sink_level))

    return descriptions
