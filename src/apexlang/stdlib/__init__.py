"""
Standard native modules shipped with apexlang.

- os: process and environment introspection
- signal: named counter registry
"""

import logging
from typing import Optional, Sequence

from . import osinfo
from . import signals as signal_module
from .signals import SignalTable

logger = logging.getLogger(__name__)

STANDARD_MODULES = (osinfo.MODULE_NAME, signal_module.MODULE_NAME)


def register_standard_library(registry, signals: Optional[SignalTable] = None,
                              modules: Optional[Sequence[str]] = None) -> None:
    """
    Install standard modules into `registry`.

    Args:
        registry: The NativeRegistry to populate
        signals: SignalTable for the `signal` module (fresh if omitted)
        modules: Subset of STANDARD_MODULES to install (default: all)

    Raises:
        ValueError: If `modules` names an unknown module
    """
    selected = list(STANDARD_MODULES if modules is None else modules)
    unknown = [name for name in selected if name not in STANDARD_MODULES]
    if unknown:
        raise ValueError(
            f"unknown standard module(s): {', '.join(unknown)}; "
            f"available: {', '.join(STANDARD_MODULES)}"
        )

    if osinfo.MODULE_NAME in selected:
        osinfo.register(registry)
    if signal_module.MODULE_NAME in selected:
        signal_module.register(registry, signals if signals is not None else SignalTable())
    logger.debug("standard library installed: %s", ", ".join(selected))


__all__ = [
    'STANDARD_MODULES',
    'SignalTable',
    'register_standard_library',
]
