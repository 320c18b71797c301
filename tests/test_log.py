import pytest

from acidnet.config import default_config
from acidnet.log import (
    AppenderType,
    FileLogAppender,
    LogAppenderDefine,
    LogDefine,
    LogEvent,
    LogFormatter,
    LogLevel,
    LogManager,
    Logger,
    StdoutLogAppender,
    apply_log_defines,
    get_logger,
    parse_appender_define,
    parse_log_defines,
    root_logger,
)


class ListAppender(StdoutLogAppender):
    def __init__(self):
        super().__init__()
        self.lines = []

    def log(self, logger, level, event):
        if level >= self.level:
            self.lines.append(self.formatter.format(logger, level, event))


def make_event(logger, level=LogLevel.INFO, content="hello", **kwargs):
    return LogEvent(logger=logger, level=level, content=content, **kwargs)


def test_level_from_string():
    assert LogLevel.from_string("debug") is LogLevel.DEBUG
    assert LogLevel.from_string("ERROR") is LogLevel.ERROR
    assert LogLevel.from_string("Warn") is LogLevel.UNKNOW
    assert LogLevel.from_string("") is LogLevel.UNKNOW
    assert str(LogLevel.FATAL) == "FATAL"


def test_formatter_level_and_message():
    logger = Logger("x")
    fmt = LogFormatter("%p %m%n")
    assert not fmt.error
    assert fmt.format(logger, LogLevel.INFO, make_event(logger)) == "INFO hello\n"


def test_formatter_fields():
    logger = Logger("net")
    event = make_event(logger, file="a.py", line=7, thread_id=3, fiber_id=9,
                       thread_name="main", elapse=5)
    out = LogFormatter("%c|%t|%F|%N|%f:%l|%r%T%%").format(logger, LogLevel.INFO, event)
    assert out == "net|3|9|main|a.py:7|5\t%"


def test_formatter_literal_date():
    logger = Logger()
    assert LogFormatter("%d{abc}").format(logger, LogLevel.INFO, make_event(logger)) == "abc"


def test_formatter_unknown_spec():
    fmt = LogFormatter("%x")
    logger = Logger()
    assert fmt.error
    assert "<error format %x>" in fmt.format(logger, LogLevel.INFO, make_event(logger))


def test_formatter_unclosed_date_and_trailing_percent():
    assert LogFormatter("%d{%Y").error
    assert LogFormatter("abc%").error
    logger = Logger()
    out = LogFormatter("%d{%Y").format(logger, LogLevel.INFO, make_event(logger))
    assert out == "<error format %d{%Y >"


def test_logger_routes_to_appender_and_respects_level():
    logger = Logger("a")
    appender = ListAppender()
    logger.add_appender(appender)
    logger.set_formatter("%m")
    logger.level = LogLevel.WARN
    logger.info(make_event(logger, content="low"))
    logger.error(make_event(logger, content="high"))
    assert appender.lines == ["high"]


def test_logger_without_appenders_uses_root():
    manager = LogManager()
    root_appender = ListAppender()
    manager.root.clear_appenders()
    manager.root.add_appender(root_appender)
    manager.root.set_formatter("%c:%m")
    child = manager.get_logger("child")
    child.info(make_event(child, content="msg"))
    assert root_appender.lines == ["child:msg"]


def test_invalid_formatter_string_is_ignored():
    logger = Logger()
    logger.set_formatter("%m")
    logger.set_formatter("%q")
    assert logger.formatter.pattern == "%m"


def test_appender_own_formatter_kept():
    logger = Logger()
    own = ListAppender()
    own.set_formatter(LogFormatter("%p"))
    shared = ListAppender()
    logger.add_appender(own)
    logger.add_appender(shared)
    logger.set_formatter("%m")
    assert own.formatter.pattern == "%p"
    assert shared.formatter.pattern == "%m"


def test_appender_refuses_bad_formatter():
    appender = ListAppender()
    appender.set_formatter(LogFormatter("%m"))
    appender.set_formatter(LogFormatter("%z"))
    assert appender.formatter.pattern == "%m"
    assert appender.has_formatter


def test_del_and_clear_appenders():
    logger = Logger()
    first, second = ListAppender(), ListAppender()
    logger.add_appender(first)
    logger.add_appender(second)
    logger.del_appender(first)
    assert logger.appenders == (second,)
    logger.clear_appenders()
    assert logger.appenders == ()


def test_stdout_appender_colours(capsys):
    logger = Logger()
    appender = StdoutLogAppender()
    logger.add_appender(appender)
    logger.set_formatter("%m")
    logger.debug(make_event(logger, content="dbg"))
    assert capsys.readouterr().out == "\033[34mdbg\033[0m"


def test_file_appender_writes(tmp_path):
    path = tmp_path / "out.log"
    logger = Logger("f")
    appender = FileLogAppender(str(path))
    logger.add_appender(appender)
    logger.set_formatter("%p %m%n")
    logger.warn(make_event(logger, content="one"))
    appender.close()
    assert path.read_text() == "WARN one\n"
    assert appender.to_yaml()["file"] == str(path)
    assert appender.to_yaml()["type"] == "FileLogAppender"


def test_logger_to_yaml():
    logger = Logger("y")
    logger.set_formatter("%m")
    logger.add_appender(StdoutLogAppender())
    data = logger.to_yaml()
    assert data["name"] == "y"
    assert data["level"] == "DEBUG"
    assert data["appender"][0]["type"] == "StdoutLogAppender"
    assert data["appender"][0]["formatter"] == "%m"


def test_manager_get_and_set_logger():
    manager = LogManager()
    assert manager.get_logger("svc") is manager.get_logger("svc")
    replacement = Logger("svc")
    manager.set_logger(replacement)
    assert manager.get_logger("svc") is replacement
    names = [entry["name"] for entry in manager.to_yaml()["logs"]]
    assert names == sorted(names)
    assert "svc" in manager.to_string()


def test_parse_appender_define():
    stdout = parse_appender_define("type: StdoutLogAppender\nlevel: info\n")
    assert stdout == LogAppenderDefine(AppenderType.STDOUTLOG, LogLevel.INFO, "", "")
    missing_file = parse_appender_define("type: FileLogAppender\n")
    assert missing_file.type is AppenderType.NONE
    unknown = parse_appender_define("type: other\n")
    assert unknown.type is AppenderType.NONE


def test_parse_log_defines_skips_invalid_and_duplicates():
    text = (
        "- name: a\n  level: info\n  appender:\n    - type: StdoutLogAppender\n    - type: bogus\n"
        "- level: info\n"
        "- name: b\n  level: nope\n"
        "- name: a\n  level: error\n"
    )
    defines = parse_log_defines(text)
    assert defines.names() == ["a"]
    (define,) = defines
    assert define.level is LogLevel.INFO
    assert [a.type for a in define.appenders] == [AppenderType.STDOUTLOG]
    assert parse_log_defines("") == frozenset()


def test_parse_log_defines_rejects_mapping():
    with pytest.raises(ValueError):
        parse_log_defines("name: a\n")


def test_apply_log_defines_creates_and_removes(tmp_path):
    manager = LogManager()
    file_spec = LogAppenderDefine(AppenderType.FILELOG, LogLevel.UNKNOW,
                                  str(tmp_path / "x.log"), "%m")
    define = LogDefine("svc", LogLevel.WARN, "%p", (file_spec,))
    apply_log_defines([], [define], manager)
    logger = manager.get_logger("svc")
    assert logger.level is LogLevel.WARN
    assert logger.formatter.pattern == "%p"
    (appender,) = logger.appenders
    assert appender.level is LogLevel.WARN
    assert appender.formatter.pattern == "%m"
    appender.close()
    apply_log_defines([define], [], manager)
    assert logger.appenders == ()
    assert logger.level is LogLevel.UNKNOW


def test_config_logs_entry_configures_logger():
    default_config.load_from_yaml(
        "logs:\n  - name: cfgtest\n    level: warn\n    appender:\n      - type: StdoutLogAppender\n"
    )
    logger = get_logger("cfgtest")
    assert logger.level is LogLevel.WARN
    assert [type(a) for a in logger.appenders] == [StdoutLogAppender]
    assert logger.root is root_logger()