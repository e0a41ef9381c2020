# cipherlog/logger.py
"""
Logger façade: filters entries by enabled level and output mode, formats them,
and writes them to the console, to the stdlib debug logger and/or to an
(optionally encrypted) log file through EncryptedLogStore.
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Union

from cipherlog.log_store import EncryptedLogStore
from cipherlog.string_cipher import StringCipher
from cipherlog.utils import default_log_path

debug_log = logging.getLogger("cipherlog.debug")


class LogLevel(enum.IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5


class LogMode(enum.Enum):
    CONSOLE = "console"
    DEBUG = "debug"
    FILE = "file"


def _parse_names(raw: Optional[str], enum_cls) -> frozenset:
    if not raw:
        return frozenset()
    members = set()
    for name in raw.split(","):
        name = name.strip()
        if not name:
            continue
        try:
            members.add(enum_cls[name.upper()])
        except KeyError:
            raise ValueError(f"Unknown {enum_cls.__name__} name: {name!r}") from None
    return frozenset(members)


@dataclass(frozen=True)
class LoggerConfig:
    """
    levels is the set of enabled levels (not a threshold); use
    with_minimum_level() for threshold-style configuration.
    encryption_password None means file entries are written as plaintext.
    """
    levels: FrozenSet[LogLevel] = frozenset()
    modes: FrozenSet[LogMode] = frozenset()
    file_path: Path = field(default_factory=default_log_path)
    entry_separator: str = "\n\n"
    encryption_password: Optional[str] = None

    def __post_init__(self):
        if self.file_path is None or not str(self.file_path).strip():
            raise ValueError("file_path must not be empty or whitespace")
        if self.entry_separator is None:
            raise ValueError("entry_separator must not be None")
        object.__setattr__(self, "levels", frozenset(LogLevel(l) for l in self.levels))
        object.__setattr__(self, "modes", frozenset(LogMode(m) for m in self.modes))
        object.__setattr__(self, "file_path", Path(str(self.file_path).strip()))

    @classmethod
    def from_env(cls, environ=None) -> "LoggerConfig":
        environ = os.environ if environ is None else environ
        kwargs = {
            "levels": _parse_names(environ.get("CIPHERLOG_LEVELS"), LogLevel),
            "modes": _parse_names(environ.get("CIPHERLOG_MODES"), LogMode),
            "encryption_password": environ.get("CIPHERLOG_PASSWORD"),
        }
        if environ.get("CIPHERLOG_FILE"):
            kwargs["file_path"] = environ["CIPHERLOG_FILE"]
        return cls(**kwargs)

    def with_minimum_level(self, level: LogLevel) -> "LoggerConfig":
        return dataclasses.replace(self, levels=frozenset(l for l in LogLevel if l >= level))

    def with_modes(self, *modes: LogMode) -> "LoggerConfig":
        return dataclasses.replace(self, modes=frozenset(modes))


Category = Union[str, type, None]


def _category_name(category: Category) -> str:
    if category is None:
        return ""
    if isinstance(category, type):
        return f"{category.__module__}.{category.__qualname__}"
    return category


class Logger:
    def __init__(self, config: LoggerConfig, cipher: Optional[StringCipher] = None):
        self.config = config
        self.store = EncryptedLogStore(
            config.file_path,
            password=config.encryption_password,
            entry_separator=config.entry_separator,
            cipher=cipher,
        )
        self._failures = 0
        self._failure_lock = threading.Lock()

    def format_entry(self, level: LogLevel, message: str, category: str) -> str:
        timestamp = datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")
        return f"{level.name} {category} {timestamp}\n{message}{self.config.entry_separator}"

    def emit(self, level: LogLevel, message: Optional[str], category: Category = "") -> None:
        """Write one entry to every configured mode, ignoring the level filter. Errors propagate."""
        message = "" if message is None or not message.strip() else message
        category = _category_name(category)
        category = "" if not category.strip() else category

        entry = self.format_entry(level, message, category)

        if LogMode.CONSOLE in self.config.modes:
            print(entry, end="")

        if LogMode.DEBUG in self.config.modes:
            debug_log.debug("%s", entry)

        if LogMode.FILE in self.config.modes:
            # the store re-adds the separator (or the comma delimiter when encrypted)
            self.store.append(entry[:len(entry) - len(self.config.entry_separator)])

    def log(self, level: LogLevel, message: Optional[str], category: Category = "") -> None:
        try:
            if not self.config.modes:
                return
            if level not in self.config.levels:
                return
            self.emit(level, message, category)
        except Exception as exc:
            with self._failure_lock:
                self._failures += 1
                give_up = self._failures > 1
                if give_up:
                    self._failures = 0
            if give_up:
                return
            self.debug(f"Logging failed: {exc!r}", Logger)
            with self._failure_lock:
                self._failures = 0

    def trace(self, message, category: Category = ""):
        """Developer-only detail; may contain sensitive data, keep it out of production."""
        self.log(LogLevel.TRACE, message, category)

    def debug(self, message, category: Category = ""):
        self.log(LogLevel.DEBUG, message, category)

    def info(self, message, category: Category = ""):
        """General application flow."""
        self.log(LogLevel.INFO, message, category)

    def warning(self, message, category: Category = ""):
        self.log(LogLevel.WARNING, message, category)

    def error(self, message, category: Category = ""):
        """Failure of the current operation, not of the whole application."""
        self.log(LogLevel.ERROR, message, category)

    def critical(self, message, category: Category = ""):
        self.log(LogLevel.CRITICAL, message, category)

    def decrypt_entries(self, destination, skip_invalid: bool = False) -> int:
        """Write the decrypted log file to destination, one entry per configured separator."""
        return self.store.decrypt_to(
            destination,
            entry_separator=self.config.entry_separator,
            skip_invalid=skip_invalid,
        )
