from __future__ import annotations

import textwrap

import pytest

import collectortest
from collectortest.collectors import load_collector, registry

PLUGIN_SOURCE = textwrap.dedent(
    """
    from collectortest.collectors import register_collector

    from stubs import StubCollector


    def register():
        register_collector("{name}")(StubCollector)
    """
)


@pytest.fixture
def plugin_module(tmp_path, monkeypatch):
    def _write(module_name: str, collector_name: str) -> str:
        (tmp_path / f"{module_name}.py").write_text(PLUGIN_SOURCE.format(name=collector_name), encoding="utf-8")
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.setattr(collectortest, "_BOOTSTRAPPED", False)
        return module_name

    return _write


def test_bootstrap_registers_listed_plugins(plugin_module) -> None:
    module = plugin_module("listed_plugin", "ListedCollector")
    try:
        collectortest.bootstrap([module])
        assert "ListedCollector" in registry
        assert type(load_collector("ListedCollector")).__name__ == "StubCollector"
    finally:
        registry.unregister("ListedCollector")


def test_bootstrap_reads_environment(plugin_module, monkeypatch) -> None:
    module = plugin_module("env_plugin", "EnvCollector")
    monkeypatch.setenv(collectortest.PLUGINS_ENV, f" {module} ,")
    try:
        collectortest.bootstrap()
        assert "EnvCollector" in registry
    finally:
        registry.unregister("EnvCollector")


def test_bootstrap_is_idempotent(plugin_module) -> None:
    module = plugin_module("once_plugin", "OnceCollector")
    try:
        collectortest.bootstrap([module])
        collectortest.bootstrap([module])
        assert list(registry.names()).count("OnceCollector") == 1
    finally:
        registry.unregister("OnceCollector")


def test_bootstrap_missing_module(monkeypatch) -> None:
    monkeypatch.setattr(collectortest, "_BOOTSTRAPPED", False)
    with pytest.raises(ImportError):
        collectortest.bootstrap(["collectortest_no_such_plugin"])
