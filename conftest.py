# pytester drives the plugin tests in tests/test_pytest_plugin.py
pytest_plugins = ["pytester"]
