"""
    Host identity for report headers.
"""
import platform
import socket

from host_tuner.shared.hardware import get_cpu_info


def get_system_info():
    """Basic facts about the host being tuned."""
    system_info = {
        "hostname": socket.gethostname(),
        "os": platform.system(),
        "kernel": platform.release(),
        "machine": platform.machine(),
    }
    system_info.update(get_cpu_info())
    return system_info


def is_linux() -> bool:
    return platform.system() == "Linux"
