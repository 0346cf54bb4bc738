"""
serversetup - shared server lifecycle for integration tests

Starts (or attaches to) the server under test once per process, waits until
it answers its readiness paths, installs additional bundles and hands tests
a ready base URL and clients.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
