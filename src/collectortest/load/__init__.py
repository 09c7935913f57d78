"""Load-test supervision exports."""
from .child import run_load_test_entry
from .monitor import ProcessMonitor, PsutilProcessMonitor
from .supervisor import LoadTestSupervisor, popen_launcher

__all__ = [
    "LoadTestSupervisor",
    "ProcessMonitor",
    "PsutilProcessMonitor",
    "popen_launcher",
    "run_load_test_entry",
]
