import importlib

import pytest


@pytest.mark.parametrize("package", ["appdist", "appdist.app", "appdist.foundation"])
def test_namespace_packages_import_without_init(package):
    module = importlib.import_module(package)
    assert getattr(module, "__file__", None) is None


@pytest.mark.parametrize(
    "module_name",
    ["appdist.cli", "appdist.app.build", "appdist.foundation.config_io", "appdist.framework.config"],
)
def test_modules_resolve_through_namespace_packages(module_name):
    assert importlib.import_module(module_name).__name__ == module_name
