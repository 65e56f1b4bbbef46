"""
Language drivers and the static driver registry.

The registry is fixed at import time; which entries a manager may use is
controlled by ``Settings.drivers``.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from .base import LanguageDriver
from .node import NodeDriver
from .python import PythonDriver


@dataclass(frozen=True)
class DriverDescriptor:
    """
    Registered language: ``factory(settings, executor, filesystem)`` builds
    the driver instance.
    """

    name: str
    factory: Callable[..., LanguageDriver]


DRIVER_REGISTRY: Mapping[str, DriverDescriptor] = MappingProxyType(
    {
        descriptor.name: descriptor
        for descriptor in (
            DriverDescriptor("python", PythonDriver),
            DriverDescriptor("node", NodeDriver),
        )
    }
)

__all__ = [
    "DRIVER_REGISTRY",
    "DriverDescriptor",
    "LanguageDriver",
    "NodeDriver",
    "PythonDriver",
]
