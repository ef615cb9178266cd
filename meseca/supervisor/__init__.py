"""
Local process supervision for the voice backends.
"""

from .models import ServiceDescriptor, ServiceState, SupervisedProcess
from .port_probe import is_port_occupied
from .process_supervisor import ProcessSupervisor
from .reaper import PosixProcessReaper, ProcessReaper, WindowsProcessReaper, get_process_reaper

__all__ = [
    "PosixProcessReaper",
    "ProcessReaper",
    "ProcessSupervisor",
    "ServiceDescriptor",
    "ServiceState",
    "SupervisedProcess",
    "WindowsProcessReaper",
    "get_process_reaper",
    "is_port_occupied",
]
