"""
Supervisor data model: static service descriptors and live process handles.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceState(Enum):
    """Lifecycle of one supervised service."""
    IDLE = "idle"
    PROBING = "probing"
    REAPING = "reaping"
    SPAWNING = "spawning"
    RUNNING = "running"
    EXITED = "exited"
    FAILED = "failed"


class ServiceDescriptor(BaseModel):
    """Static configuration for one supervised backend."""

    name: str = Field(description="Label used to tag the service's log lines")
    port: int = Field(ge=1, le=65535, description="Port the service is expected to own")
    command: str = Field(description="Executable to launch")
    args: List[str] = Field(default_factory=list, description="Arguments passed to the command")

    model_config = ConfigDict(frozen=True)


@dataclass
class SupervisedProcess:
    """A service the supervisor has tried to start."""

    descriptor: ServiceDescriptor
    state: ServiceState = ServiceState.IDLE
    process: Optional[asyncio.subprocess.Process] = None
    pid: Optional[int] = None
    exit_code: Optional[int] = None
    error: Optional[str] = None
    reaped_pids: List[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.descriptor.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.descriptor.name,
            "port": self.descriptor.port,
            "state": self.state.value,
            "pid": self.pid,
            "exit_code": self.exit_code,
            "error": self.error,
        }
