"""Name -> engine class lookup, used to build the engine named in the settings.

The engines shipped with tokenloop register themselves with the
``@register_engine`` decorator when :mod:`tokenloop.engine` is imported.
Engines from other distributions advertise themselves under the
``tokenloop.engines`` entry-point group; that group is only scanned when a
name is asked for that no imported module has registered.
"""

from __future__ import annotations

import importlib.metadata
import inspect
import logging
from typing import TYPE_CHECKING, ClassVar

from tokenloop.engine.base import ExecutionEngine
from tokenloop.exceptions import EngineUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable

    from tokenloop.config import GenerationSettings

logger = logging.getLogger("tokenloop")

_ENTRY_POINT_GROUP = "tokenloop.engines"


class EngineRegistry:
    """Class-level table of engine classes keyed by ``engine_type``.

    A name registered in code always wins over an entry point of the same
    name. Entry points that fail to import, or that do not resolve to an
    :class:`ExecutionEngine` subclass, are skipped with a warning.
    """

    _registry: ClassVar[dict[str, type[ExecutionEngine]]] = {}
    _entry_points_loaded: ClassVar[bool] = False

    @classmethod
    def register(cls, name: str) -> Callable[[type[ExecutionEngine]], type[ExecutionEngine]]:
        """Class decorator binding *name* to the decorated engine class.

        Rebinding a name to a different class replaces the old binding and
        logs a warning.
        """

        def bind(engine_cls: type[ExecutionEngine]) -> type[ExecutionEngine]:
            previous = cls._registry.get(name)
            if previous is not None and previous is not engine_cls:
                logger.warning(
                    "Engine name %r rebound from %s to %s",
                    name,
                    previous.__qualname__,
                    engine_cls.__qualname__,
                )
            cls._registry[name] = engine_cls
            return engine_cls

        return bind

    @classmethod
    def get(cls, name: str) -> type[ExecutionEngine]:
        """Return the engine class registered as *name*.

        Raises:
            KeyError: If neither code nor an entry point provides *name*.
        """
        engine_cls = cls._registry.get(name)
        if engine_cls is None and not cls._entry_points_loaded:
            cls._load_entry_points()
            engine_cls = cls._registry.get(name)
        if engine_cls is None:
            known = ", ".join(sorted(cls._registry)) or "(none)"
            raise KeyError(f"Unknown execution engine: {name!r}. Available: {known}")
        return engine_cls

    @classmethod
    def list_available(cls) -> list[str]:
        """Sorted names of every engine, entry points included."""
        if not cls._entry_points_loaded:
            cls._load_entry_points()
        return sorted(cls._registry)

    @classmethod
    def create(cls, name: str, settings: GenerationSettings) -> ExecutionEngine:
        """Instantiate the engine registered as *name*.

        Constructors whose first parameter takes the settings receive
        *settings*; all others are called without arguments.
        """
        engine_cls = cls.get(name)
        if _accepts_config(engine_cls):
            return engine_cls(settings)  # type: ignore[call-arg]
        return engine_cls()

    @classmethod
    def _load_entry_points(cls) -> None:
        cls._entry_points_loaded = True
        try:
            eps = importlib.metadata.entry_points(group=_ENTRY_POINT_GROUP)
        except Exception:  # Intentional: broken metadata must not break built-in engines
            logger.warning("Cannot read entry points for %s", _ENTRY_POINT_GROUP, exc_info=True)
            return

        for ep in eps:
            if ep.name in cls._registry:
                continue
            try:
                target = ep.load()
            except Exception:  # Intentional: one bad plugin must not block others
                logger.warning("Skipping engine plugin %r (%s)", ep.name, ep.value, exc_info=True)
                continue
            if not (isinstance(target, type) and issubclass(target, ExecutionEngine)):
                logger.warning(
                    "Skipping engine plugin %r: %r is not an ExecutionEngine subclass",
                    ep.name,
                    target,
                )
                continue
            cls._registry[ep.name] = target
            logger.debug("Registered engine plugin %r", ep.name)

    @classmethod
    def _reset(cls) -> None:
        """Forget every registration. Tests only."""
        cls._registry.clear()
        cls._entry_points_loaded = False


register_engine = EngineRegistry.register


def _accepts_config(engine_cls: type) -> bool:
    """True if the constructor's first parameter is the settings object.

    That parameter must be named ``config`` or annotated
    ``GenerationSettings``.
    """
    try:
        params = list(inspect.signature(engine_cls).parameters.values())
    except (TypeError, ValueError):
        return False
    if not params:
        return False
    first = params[0]
    return first.name == "config" or "GenerationSettings" in str(first.annotation)


def build_engine(settings: GenerationSettings) -> ExecutionEngine:
    """Build the engine named by ``settings.engine_type`` and check it can run.

    Raises:
        KeyError: If the engine type is not registered.
        EngineUnavailableError: If the engine cannot be constructed, or
            reports itself unavailable once built. In the latter case the
            engine is closed first.
    """
    engine = EngineRegistry.create(settings.engine_type, settings)
    if not engine.is_available:
        engine.close()
        raise EngineUnavailableError(
            f"Execution engine {settings.engine_type!r} is not available"
        )
    logger.info("Execution engine %r ready", engine.name)
    return engine
