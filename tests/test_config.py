import pytest

from acidnet.config import Config, ConfigVar


@pytest.fixture
def config():
    return Config()


def test_lookup_creates_with_default(config):
    var = config.lookup("server.port", 8080, "port")
    assert var.value == 8080
    assert var.description == "port"
    assert config.lookup("server.port", 1) is var
    assert config.lookup_base("server.port") is var


def test_lookup_missing_without_default(config):
    assert config.lookup("nothing.here") is None
    assert config.lookup_base("nothing.here") is None


def test_lookup_type_mismatch(config):
    config.lookup("a.b", 1)
    with pytest.raises(TypeError):
        config.lookup("a.b", "text")


def test_lookup_invalid_name(config):
    with pytest.raises(ValueError):
        config.lookup("Bad-Name", 1)


def test_load_scalars(config):
    port = config.lookup("server.port", 80)
    name = config.lookup("server.name", "main")
    flag = config.lookup("server.debug", False)
    ratio = config.lookup("server.ratio", 0.5)
    config.load_from_yaml("server:\n  port: 9000\n  name: edge\n  debug: true\n  ratio: 2.5\n")
    assert port.value == 9000
    assert name.value == "edge"
    assert flag.value is True
    assert ratio.value == 2.5


def test_load_sequence_and_mapping(config):
    items = config.lookup("app.items", [1])
    table = config.lookup("app.table", {"x": 1})
    config.load_from_yaml({"app": {"items": [3, 4, 5], "table": {"y": 2}}})
    assert items.value == [3, 4, 5]
    assert table.value == {"y": 2}


def test_load_set(config):
    tags = config.lookup("app.tags", {"a"})
    config.load_from_yaml("app:\n  tags: [b, c, b]\n")
    assert tags.value == {"b", "c"}


def test_uppercase_subtree_is_skipped(config):
    var = config.lookup("app.value", 1)
    config.load_from_yaml("App:\n  value: 5\n")
    assert var.value == 1


def test_bad_value_keeps_old(config):
    var = config.lookup("app.count", 3)
    config.load_from_yaml("app:\n  count: many\n")
    assert var.value == 3


def test_unknown_keys_ignored(config):
    var = config.lookup("known", 1)
    config.load_from_yaml("unknown: 5\nknown: 2\n")
    assert var.value == 2


def test_load_empty_document(config):
    var = config.lookup("known", 1)
    config.load_from_yaml("")
    assert var.value == 1


def test_load_from_file(config, tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text("tcp:\n  timeout: 1234\n", encoding="utf-8")
    var = config.lookup("tcp.timeout", 5000)
    config.load_from_file(str(path))
    assert var.value == 1234


def test_load_from_missing_file(config, tmp_path):
    with pytest.raises(OSError):
        config.load_from_file(str(tmp_path / "missing.yml"))


def test_listeners_notified_on_change(config):
    var = config.lookup("threads", 4)
    seen = []
    key = var.add_listener(lambda old, new: seen.append((old, new)))
    var.from_string("8")
    var.from_string("8")
    assert seen == [(4, 8)]
    var.remove_listener(key)
    var.from_string("2")
    assert seen == [(4, 8)]
    assert var.value == 2


def test_clear_listeners(config):
    var = config.lookup("threads", 4)
    seen = []
    var.add_listener(lambda old, new: seen.append(new))
    var.add_listener(lambda old, new: seen.append(new))
    var.clear_listeners()
    var.value = 6
    assert seen == []
    assert var.value == 6


def test_from_string_invalid_raises():
    var = ConfigVar("x", 1)
    with pytest.raises(ValueError):
        var.from_string("abc")
    assert var.value == 1


def test_to_string_round_trip():
    var = ConfigVar("list", [1, 2])
    text = var.to_string()
    other = ConfigVar("other", [0])
    other.from_string(text)
    assert other.value == [1, 2]
    assert ConfigVar("flag", True).to_string() == "true"


def test_custom_converter():
    var = ConfigVar("csv", ["a"], "values", lambda text: text.split(","))
    var.from_string("x,y")
    assert var.value == ["x", "y"]


def test_name_lowered():
    assert ConfigVar("Mixed.Name", 1).name == "mixed.name"


def test_visit(config):
    config.lookup("a", 1)
    config.lookup("b.c", "x")
    names = []
    config.visit(lambda var: names.append(var.name))
    assert sorted(names) == ["a", "b.c"]