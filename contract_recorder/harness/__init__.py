"""
Test-harness adapters: Flask test client (flask_client) and pytest plugin
(pytest_plugin, registered through the pytest11 entry point).
"""
