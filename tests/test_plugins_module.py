from __future__ import annotations

import sys
from types import ModuleType, SimpleNamespace

import pytest

from errorcloak import plugins


class XmlFormatter:
    def content_type(self) -> str:
        return "application/xml"


def test_resolve_object_walks_attribute_path(monkeypatch: pytest.MonkeyPatch) -> None:
    module = ModuleType("fake_resolve_mod")
    module.holder = SimpleNamespace(factory=XmlFormatter)  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "fake_resolve_mod", module)
    assert plugins.resolve_object("fake_resolve_mod:holder.factory") is XmlFormatter


@pytest.mark.parametrize(
    "spec",
    ["no-colon", ":attr", "module:", "no_such_module_abc:thing", "os:no_such_attr"],
)
def test_resolve_object_errors(spec: str) -> None:
    with pytest.raises(plugins.PluginError):
        plugins.resolve_object(spec)


def test_load_formatter_plugins_combines_entry_points_and_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        plugins,
        "_load_entry_point_plugins",
        lambda: [plugins.FormatterPlugin(name="entry", target=XmlFormatter)],
    )
    module = ModuleType("fake_env_formatters")
    module.XmlFormatter = XmlFormatter  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "fake_env_formatters", module)
    monkeypatch.setenv(
        plugins.ENV_PLUGIN_SPEC,
        "xml=fake_env_formatters:XmlFormatter, broken, missing=no_such_mod_q:X,",
    )

    loaded = plugins.load_formatter_plugins()
    assert [(p.name, p.target) for p in loaded] == [
        ("entry", XmlFormatter),
        ("xml", XmlFormatter),
    ]


def test_env_plugins_absent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(plugins.ENV_PLUGIN_SPEC, raising=False)
    assert plugins._load_env_plugins() == []


def test_entry_point_plugins_loaded_and_failures_skipped(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class GoodEntry:
        name = "xml"

        def load(self) -> type:
            return XmlFormatter

    class BadEntry:
        name = "bad"

        def load(self) -> type:
            raise ImportError("missing dependency")

    class FakeEntryPoints:
        def select(self, group: str) -> list[object]:
            assert group == plugins.PLUGIN_GROUP
            return [GoodEntry(), BadEntry()]

    monkeypatch.setattr(plugins.metadata, "entry_points", lambda: FakeEntryPoints())
    loaded = plugins._load_entry_point_plugins()
    assert [p.name for p in loaded] == ["xml"]
