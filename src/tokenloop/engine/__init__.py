"""Execution engine subsystem for tokenloop.

Re-exports the ABC, registry, and built-in engines for convenient access::

    from tokenloop.engine import ExecutionEngine, EngineRegistry, build_engine
    from tokenloop.engine import OnnxRuntimeEngine, StaticScoresEngine
"""

from tokenloop.engine.base import ExecutionEngine
from tokenloop.engine.onnx import OnnxRuntimeEngine
from tokenloop.engine.registry import EngineRegistry, build_engine, register_engine
from tokenloop.engine.static import StaticScoresEngine

__all__ = [
    "EngineRegistry",
    "ExecutionEngine",
    "OnnxRuntimeEngine",
    "StaticScoresEngine",
    "build_engine",
    "register_engine",
]
