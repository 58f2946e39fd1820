import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

# Replies stream to stdout; stderr only carries problems unless configured otherwise.
_CONSOLE_DEFAULT_LEVEL = "WARNING"


@runtime_checkable
class LogConsumer(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class ConsoleLogConsumer:
    def register(self, level: str) -> None:
        logger.add(
            sys.stderr,
            level=level,
            format="<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        )

    def describe(self, level: str) -> str:
        return f"console (stderr, {level})"


class FileLogConsumer:
    def __init__(
        self,
        path: str = ".prep_buddy/prep_buddy.log",
        rotation: str = "5 MB",
        retention: int = 3,
    ):
        self._path = path
        self._rotation = rotation
        self._retention = retention

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}",
            rotation=self._rotation,
            retention=self._retention,
        )

    def describe(self, level: str) -> str:
        return f"file ({self._path}, {level})"


_CONSUMER_TYPES: dict[str, type] = {
    "console": ConsoleLogConsumer,
    "file": FileLogConsumer,
}

_DEFAULT_CONSUMERS: list[dict[str, Any]] = [
    {"type": "console", "level": _CONSOLE_DEFAULT_LEVEL},
    {"type": "file"},
]


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
) -> list[str]:
    """Replace loguru's handlers with the configured consumers and describe them.

    An empty ``consumers`` list silences logging entirely.
    """
    logger.remove()

    descriptions: list[str] = []
    for entry in consumers if consumers is not None else _DEFAULT_CONSUMERS:
        consumer_cls = _CONSUMER_TYPES.get(entry.get("type", ""))
        if consumer_cls is None:
            logger.warning(f"Unknown log consumer type: {entry.get('type')!r}")
            continue

        options = {k: v for k, v in entry.items() if k not in ("type", "level")}
        consumer_level = entry.get("level", level)
        consumer = consumer_cls(**options)
        consumer.register(consumer_level)
        descriptions.append(consumer.describe(consumer_level))

    return descriptions
