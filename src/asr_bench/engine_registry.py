"""
Transcription engine registry for asr-bench.

Maps engine identifiers from configuration (``BENCH_ENGINE``) onto
engine classes.  Exactly one registered engine is instantiated per
process and handed to the transcription adapter.
"""

from __future__ import annotations

from typing import TypeVar

import structlog

from asr_bench.engine_base import TranscriptionEngine

logger = structlog.get_logger()

E = TypeVar("E", bound=type[TranscriptionEngine])

_REGISTRY: dict[str, type[TranscriptionEngine]] = {}


def register_engine(name: str, cls: E) -> E:
    """Register engine class *cls* under *name* and return it unchanged.

    Re-registering a name replaces the previous class.

    Raises:
        TypeError: If *cls* is not a subclass of :class:`TranscriptionEngine`.
    """
    if not (isinstance(cls, type) and issubclass(cls, TranscriptionEngine)):
        raise TypeError(f"{cls!r} is not a subclass of TranscriptionEngine")
    previous = _REGISTRY.get(name)
    _REGISTRY[name] = cls
    if previous is not None and previous is not cls:
        logger.warning("engine_replaced", engine=name, previous=previous.__name__)
    else:
        logger.debug("engine_registered", engine=name)
    return cls


def is_registered(name: str) -> bool:
    return name in _REGISTRY


def get_engine_class(name: str) -> type[TranscriptionEngine]:
    """Look up a registered engine class by *name*.

    Raises:
        KeyError: If *name* is not registered; the message lists the
            registered names.
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(
            f"Unknown transcription engine '{name}'. Available: {sorted(_REGISTRY)}"
        ) from None


def list_engines() -> list[str]:
    """Return the registered engine names, sorted."""
    return sorted(_REGISTRY)


def clear_registry() -> None:
    """Remove all registered engines (useful in tests)."""
    _REGISTRY.clear()
