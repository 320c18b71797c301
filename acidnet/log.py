"""Loggers, appenders and pattern formatters, configurable through the ``logs`` config entry."""

from __future__ import annotations

import sys
import threading
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TextIO, Tuple, Union

import yaml

from .config import default_config

DEFAULT_PATTERN = "%d{%Y-%m-%d %H:%M:%S}%T%t%T%N%T%F%T[%p]%T[%c]%T%f:%l%T%m%n"
_DEFAULT_DATE = "%Y-%m-%d %H:%M:%S"
_RESET = "\033[0m"


class LogLevel(IntEnum):
    UNKNOW = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5

    @classmethod
    def from_string(cls, text: str) -> "LogLevel":
        """Accept a level name in all upper or all lower case; anything else is UNKNOW."""
        for level in cls:
            if level is not cls.UNKNOW and text in (level.name, level.name.lower()):
                return level
        return cls.UNKNOW

    def __str__(self) -> str:
        return self.name


@dataclass
class LogEvent:
    """One log record and where it came from."""

    logger: "Logger"
    level: LogLevel
    file: str = ""
    line: int = 0
    thread_id: int = 0
    fiber_id: int = 0
    elapse: int = 0
    time: float = 0
    thread_name: str = ""
    content: str = ""


FormatItem = Callable[["Logger", LogLevel, LogEvent], str]


def _literal(text: str) -> FormatItem:
    return lambda logger, level, event: text


def _date_item(fmt: str) -> FormatItem:
    fmt = fmt or _DEFAULT_DATE

    def item(logger: "Logger", level: LogLevel, event: LogEvent) -> str:
        return time.strftime(fmt, time.localtime(event.time))

    return item


_SIMPLE_ITEMS: Dict[str, FormatItem] = {
    "m": lambda logger, level, event: event.content,
    "p": lambda logger, level, event: str(LogLevel(level)),
    "r": lambda logger, level, event: str(event.elapse),
    "c": lambda logger, level, event: event.logger.name,
    "t": lambda logger, level, event: str(event.thread_id),
    "n": lambda logger, level, event: "\n",
    "f": lambda logger, level, event: event.file,
    "l": lambda logger, level, event: str(event.line),
    "T": lambda logger, level, event: "\t",
    "F": lambda logger, level, event: str(event.fiber_id),
    "N": lambda logger, level, event: event.thread_name,
}


class LogFormatter:
    """Turns events into text following a ``%``-pattern.

    ``%m`` message, ``%p`` level, ``%r`` elapsed ms, ``%c`` logger name,
    ``%t`` thread id, ``%n`` newline, ``%d{fmt}`` time, ``%f`` file, ``%l`` line,
    ``%T`` tab, ``%F`` fiber id, ``%N`` thread name, ``%%`` a percent sign.
    """

    def __init__(self, pattern: str = DEFAULT_PATTERN) -> None:
        self.pattern = pattern
        self.error = False
        self._items: List[FormatItem] = []
        self._parse()

    def _parse(self) -> None:
        pattern = self.pattern
        size = len(pattern)
        text: List[str] = []

        def flush() -> None:
            if text:
                self._items.append(_literal("".join(text)))
                text.clear()

        def fail(message: str) -> None:
            flush()
            self._items.append(_literal(message))
            self.error = True

        i = 0
        while i < size:
            ch = pattern[i]
            if ch != "%":
                text.append(ch)
                i += 1
                continue
            if i + 1 >= size:
                fail("<error format %>")
                i += 1
                continue
            i += 1
            spec = pattern[i]
            if spec == "%":
                text.append("%")
                i += 1
                continue
            flush()
            if spec != "d":
                item = _SIMPLE_ITEMS.get(spec)
                if item is None:
                    fail(f"<error format %{spec}>")
                else:
                    self._items.append(item)
                i += 1
                continue
            if i + 1 >= size or pattern[i + 1] != "{":
                self._items.append(_date_item(""))
                i += 1
                continue
            i += 1
            if i + 1 >= size:
                fail("<error format %d{ >")
                i += 1
                continue
            i += 1
            end = pattern.find("}", i)
            if end == -1:
                fail("<error format %d{" + pattern[i:] + " >")
                break
            self._items.append(_date_item(pattern[i:end]))
            i = end + 1
        flush()

    def format(self, logger: "Logger", level: LogLevel, event: LogEvent) -> str:
        return "".join(item(logger, level, event) for item in self._items)

    def __repr__(self) -> str:
        return f"LogFormatter({self.pattern!r})"


class LogAppender:
    """Destination for log events; subclasses decide where the text goes."""

    def __init__(self) -> None:
        self.level = LogLevel.DEBUG
        self._formatter: Optional[LogFormatter] = None
        self.has_formatter = False
        self._lock = threading.RLock()

    @property
    def formatter(self) -> Optional[LogFormatter]:
        with self._lock:
            return self._formatter

    def _active_formatter(self) -> LogFormatter:
        if self._formatter is None:
            self._formatter = LogFormatter()
        return self._formatter

    def log(self, logger: "Logger", level: LogLevel, event: LogEvent) -> None:
        raise NotImplementedError

    def set_formatter(self, formatter: LogFormatter) -> None:
        """Use ``formatter`` from now on; a formatter with pattern errors is refused."""
        with self._lock:
            if formatter.error:
                print(f"LogAppender setFormatter value={formatter.pattern} invalid formatter")
                return
            self._formatter = formatter
            self.has_formatter = True

    def _inherit_formatter(self, formatter: LogFormatter) -> None:
        with self._lock:
            self._formatter = formatter

    def _pattern(self) -> str:
        return self._formatter.pattern if self._formatter else ""

    def to_yaml(self) -> Dict[str, Any]:
        with self._lock:
            return {"type": type(self).__name__, "level": str(self.level),
                    "formatter": self._pattern()}


class StdoutLogAppender(LogAppender):
    """Writes coloured lines to standard output."""

    _COLORS = {
        LogLevel.DEBUG: "\033[34m",
        LogLevel.WARN: "\033[33m",
        LogLevel.ERROR: "\033[31m",
        LogLevel.FATAL: "\033[31m",
    }

    def log(self, logger: "Logger", level: LogLevel, event: LogEvent) -> None:
        if level < self.level:
            return
        color = self._COLORS.get(level, "")
        with self._lock:
            text = self._active_formatter().format(logger, level, event)
            sys.stdout.write(color + text + _RESET)
            sys.stdout.flush()

    def to_yaml(self) -> Dict[str, Any]:
        with self._lock:
            return {"type": "StdoutLogAppender", "level": str(self.level),
                    "formatter": self._pattern()}


class FileLogAppender(LogAppender):
    """Appends formatted lines to a file, reopening it every few seconds."""

    def __init__(self, filename: str) -> None:
        super().__init__()
        self.filename = filename
        self._stream: Optional[TextIO] = None
        self._last_time = 0.0
        self.reopen()

    def reopen(self) -> bool:
        """Close and reopen the file; False if it cannot be opened."""
        with self._lock:
            if self._stream is not None:
                self._stream.close()
                self._stream = None
            try:
                self._stream = open(self.filename, "a", encoding="utf-8")
            except OSError:
                return False
            return True

    def close(self) -> None:
        with self._lock:
            if self._stream is not None:
                self._stream.close()
                self._stream = None

    def log(self, logger: "Logger", level: LogLevel, event: LogEvent) -> None:
        now = time.time()
        if now > self._last_time + 3:
            self.reopen()
            self._last_time = now
        with self._lock:
            if level >= self.level and self._stream is not None:
                self._stream.write(self._active_formatter().format(logger, level, event))
                self._stream.flush()

    def to_yaml(self) -> Dict[str, Any]:
        with self._lock:
            return {"type": "FileLogAppender", "file": self.filename,
                    "level": str(self.level), "formatter": self._pattern()}


class Logger:
    """A named logger; with no appenders of its own it hands events to the root logger."""

    def __init__(self, name: str = "root") -> None:
        self.name = name
        self.level = LogLevel.DEBUG
        self._formatter = LogFormatter()
        self._appenders: List[LogAppender] = []
        self.root: Optional[Logger] = None
        self._lock = threading.RLock()

    @property
    def formatter(self) -> LogFormatter:
        with self._lock:
            return self._formatter

    @property
    def appenders(self) -> Tuple[LogAppender, ...]:
        with self._lock:
            return tuple(self._appenders)

    def log(self, level: LogLevel, event: LogEvent) -> None:
        if level < self.level:
            return
        with self._lock:
            if not self._appenders:
                if self.root is not None:
                    self.root.log(level, event)
                return
            for appender in self._appenders:
                appender.log(self, level, event)

    def debug(self, event: LogEvent) -> None:
        self.log(LogLevel.DEBUG, event)

    def info(self, event: LogEvent) -> None:
        self.log(LogLevel.INFO, event)

    def warn(self, event: LogEvent) -> None:
        self.log(LogLevel.WARN, event)

    def error(self, event: LogEvent) -> None:
        self.log(LogLevel.ERROR, event)

    def fatal(self, event: LogEvent) -> None:
        self.log(LogLevel.FATAL, event)

    def add_appender(self, appender: LogAppender) -> None:
        with self._lock:
            if appender.formatter is None:
                appender._inherit_formatter(self._formatter)
            self._appenders.append(appender)

    def del_appender(self, appender: LogAppender) -> None:
        with self._lock:
            for index, existing in enumerate(self._appenders):
                if existing is appender:
                    del self._appenders[index]
                    return

    def clear_appenders(self) -> None:
        with self._lock:
            self._appenders.clear()

    def set_formatter(self, formatter: Union[str, LogFormatter]) -> None:
        """Set the formatter, also for appenders that have none of their own.

        A pattern string with errors is reported and ignored.
        """
        if isinstance(formatter, str):
            parsed = LogFormatter(formatter)
            if parsed.error:
                print(f"Logger setFormatter name={self.name} value={formatter} invalid formatter")
                return
            formatter = parsed
        with self._lock:
            self._formatter = formatter
            for appender in self._appenders:
                if not appender.has_formatter:
                    appender._inherit_formatter(formatter)

    def to_yaml(self) -> Dict[str, Any]:
        with self._lock:
            result: Dict[str, Any] = {
                "name": self.name,
                "level": str(self.level),
                "formatter": self._formatter.pattern,
            }
            if self._appenders:
                result["appender"] = [appender.to_yaml() for appender in self._appenders]
            return result

    def __repr__(self) -> str:
        return f"Logger({self.name!r})"


class LogManager:
    """Holds the named loggers; the root logger writes to standard output."""

    def __init__(self) -> None:
        self.root = Logger()
        self.root.add_appender(StdoutLogAppender())
        self._loggers: Dict[str, Logger] = {"root": self.root}
        self._lock = threading.RLock()

    def get_logger(self, name: str) -> Logger:
        with self._lock:
            logger = self._loggers.get(name)
            if logger is None:
                logger = Logger(name)
                logger.root = self.root
                self._loggers[name] = logger
            return logger

    def set_logger(self, logger: Logger) -> None:
        with self._lock:
            self._loggers[logger.name] = logger

    def to_yaml(self) -> Dict[str, Any]:
        with self._lock:
            return {"logs": [self._loggers[name].to_yaml() for name in sorted(self._loggers)]}

    def to_string(self) -> str:
        return yaml.safe_dump(self.to_yaml(), default_flow_style=False, sort_keys=False)


class AppenderType(IntEnum):
    NONE = 0
    STDOUTLOG = 1
    FILELOG = 2


@dataclass(frozen=True)
class LogAppenderDefine:
    type: AppenderType = AppenderType.NONE
    level: LogLevel = LogLevel.UNKNOW
    file: str = ""
    formatter: str = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"level": str(self.level), "formatter": self.formatter}
        if self.type is AppenderType.STDOUTLOG:
            result["type"] = "StdoutLogAppender"
        elif self.type is AppenderType.FILELOG:
            result["type"] = "FileLogAppender"
            result["file"] = self.file
        else:
            result["type"] = "NONE"
        return result


@dataclass(frozen=True)
class LogDefine:
    name: str
    level: LogLevel = LogLevel.UNKNOW
    formatter: str = ""
    appenders: Tuple[LogAppenderDefine, ...] = field(default_factory=tuple)

    def __lt__(self, other: "LogDefine") -> bool:
        return self.name < other.name

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "level": str(self.level), "formatter": self.formatter,
                "appender": [appender.to_dict() for appender in self.appenders]}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _appender_from_mapping(node: Any) -> LogAppenderDefine:
    if not isinstance(node, Mapping):
        print("Log config error: appender type is null")
        return LogAppenderDefine()
    kind = _text(node.get("type", "")).lower()
    if kind == "stdoutlogappender":
        appender_type, file = AppenderType.STDOUTLOG, ""
    elif kind == "filelogappender":
        if "file" not in node:
            print("Log config error: FileLogAppender file is null")
            return LogAppenderDefine()
        appender_type, file = AppenderType.FILELOG, _text(node["file"])
    else:
        print("Log config error: appender type is null")
        return LogAppenderDefine()
    return LogAppenderDefine(
        type=appender_type,
        level=LogLevel.from_string(_text(node.get("level", ""))),
        file=file,
        formatter=_text(node.get("formatter", "")),
    )


def _define_from_mapping(node: Any) -> Optional[LogDefine]:
    if not isinstance(node, Mapping) or "name" not in node:
        print(f"Log config error: name is null {node!r}")
        return None
    level = LogLevel.from_string(_text(node.get("level", "")))
    if level is LogLevel.UNKNOW:
        return None
    appenders: Tuple[LogAppenderDefine, ...] = ()
    if node.get("appender") is not None:
        parsed = (_appender_from_mapping(item) for item in node["appender"])
        appenders = tuple(a for a in parsed if a.type is not AppenderType.NONE)
    return LogDefine(name=_text(node["name"]), level=level,
                     formatter=_text(node.get("formatter", "")), appenders=appenders)


class LogDefines(frozenset):
    """A set of logger definitions, at most one per logger name."""

    def __new__(cls, items: Iterable[Any] = ()) -> "LogDefines":
        chosen: Dict[str, LogDefine] = {}
        for item in items:
            define = item if isinstance(item, LogDefine) else _define_from_mapping(item)
            if define is not None and define.name not in chosen:
                chosen[define.name] = define
        return super().__new__(cls, chosen.values())

    def names(self) -> List[str]:
        return sorted(define.name for define in self)


def parse_appender_define(text: str) -> LogAppenderDefine:
    """Parse one appender definition from YAML text."""
    return _appender_from_mapping(yaml.safe_load(text))


def parse_log_defines(text: str) -> LogDefines:
    """Parse a YAML sequence of logger definitions, skipping invalid entries."""
    loaded = yaml.safe_load(text)
    if loaded is None:
        return LogDefines()
    if not isinstance(loaded, list):
        raise ValueError("log definitions must be a sequence")
    return LogDefines(loaded)


def apply_log_defines(old_defines: Iterable[LogDefine], new_defines: Iterable[LogDefine],
                      manager: Optional[LogManager] = None) -> None:
    """Configure loggers for ``new_defines`` and silence those only in ``old_defines``."""
    manager = manager or _manager
    new_defines = list(new_defines)
    for define in new_defines:
        logger = manager.get_logger(define.name)
        logger.level = define.level
        if define.formatter:
            logger.set_formatter(define.formatter)
        logger.clear_appenders()
        for spec in define.appenders:
            appender: LogAppender
            if spec.type is AppenderType.STDOUTLOG:
                appender = StdoutLogAppender()
            elif spec.type is AppenderType.FILELOG:
                appender = FileLogAppender(spec.file)
            else:
                continue
            appender.level = define.level if spec.level is LogLevel.UNKNOW else spec.level
            if spec.formatter:
                appender.set_formatter(LogFormatter(spec.formatter))
            logger.add_appender(appender)
    new_names = {define.name for define in new_defines}
    for define in old_defines:
        if define.name not in new_names:
            logger = manager.get_logger(define.name)
            logger.clear_appenders()
            logger.level = LogLevel.UNKNOW


_manager = LogManager()


def get_logger(name: str) -> Logger:
    return _manager.get_logger(name)


def root_logger() -> Logger:
    return _manager.root


log_defines = default_config.lookup("logs", LogDefines(), "logs config")
log_defines.add_listener(lambda old, new: apply_log_defines(old, new, _manager))