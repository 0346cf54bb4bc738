"""Launching the server process under test.

The orchestrator only needs ``start()`` and ``server_port`` from a launcher;
``JarLauncher`` is the implementation used when no server URL is supplied.
"""

from .executor import JarLauncher, terminate_process_tree
from .models import LauncherConfig, find_free_port, find_jar

__all__ = [
    "JarLauncher",
    "LauncherConfig",
    "find_free_port",
    "find_jar",
    "terminate_process_tree",
]
