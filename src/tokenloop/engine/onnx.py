"""Execution engine backed by onnxruntime.

Loads an ONNX model into an ``onnxruntime.InferenceSession`` and translates
the session's declared inputs into :class:`~tokenloop.tensors.types.TensorSlot`
values. Symbolic dimensions (``"batch_size"``, ``"sequence_length"``) and
unknown dimensions become dynamic (``None``).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tokenloop.engine.base import ExecutionEngine
from tokenloop.engine.registry import register_engine
from tokenloop.exceptions import EngineUnavailableError, UnsupportedTensorTypeError
from tokenloop.tensors.types import ElementType, TensorSlot

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np

    from tokenloop.config import GenerationSettings

logger = logging.getLogger("tokenloop")

# ---------------------------------------------------------------------------
# Import guard: no crash when onnxruntime is not installed
# ---------------------------------------------------------------------------

try:
    import onnxruntime as ort

    _ORT_AVAILABLE = True
except ImportError:
    _ORT_AVAILABLE = False

_ORT_TYPES: dict[str, ElementType] = {
    "tensor(int64)": ElementType.INT64,
    "tensor(int32)": ElementType.INT32,
    "tensor(int8)": ElementType.INT8,
    "tensor(uint8)": ElementType.UINT8,
    "tensor(uint16)": ElementType.UINT16,
    "tensor(uint32)": ElementType.UINT32,
    "tensor(uint64)": ElementType.UINT64,
    "tensor(float16)": ElementType.FLOAT16,
    "tensor(float)": ElementType.FLOAT32,
    "tensor(double)": ElementType.FLOAT64,
    "tensor(bool)": ElementType.BOOL,
}

_OPTIMIZATION_LEVELS = {
    "disabled": "ORT_DISABLE_ALL",
    "basic": "ORT_ENABLE_BASIC",
    "extended": "ORT_ENABLE_EXTENDED",
    "all": "ORT_ENABLE_ALL",
}

# Runtime-wide setup runs once per process, whichever engine gets there first.
_environment_lock = threading.Lock()
_environment_ready = False


def _init_environment() -> None:
    """Idempotent one-time onnxruntime setup."""
    global _environment_ready
    with _environment_lock:
        if _environment_ready:
            return
        # Only surface runtime errors; warnings about unused initializers are noise.
        ort.set_default_logger_severity(3)
        _environment_ready = True
        logger.debug("onnxruntime %s initialized", ort.__version__)


def _element_type(type_str: str) -> ElementType | None:
    """Map an onnxruntime type string to an ElementType.

    Args:
        type_str: Type as reported by ``NodeArg.type``, e.g. ``"tensor(int64)"``
            or ``"optional(tensor(int64))"``.

    Returns:
        The element type, or ``None`` if the input is not a tensor.

    Raises:
        UnsupportedTensorTypeError: For tensors of an element type that
            cannot be bound (strings, bfloat16, ...).
    """
    if type_str.startswith("optional(") and type_str.endswith(")"):
        type_str = type_str[len("optional(") : -1]
    if not type_str.startswith("tensor("):
        return None
    try:
        return _ORT_TYPES[type_str]
    except KeyError:
        raise UnsupportedTensorTypeError(f"Unsupported tensor type: {type_str}") from None


def _dimension(dim: Any) -> int | None:
    """Symbolic (str) and unknown (None) dimensions are dynamic."""
    if isinstance(dim, int):
        return dim if dim >= 0 else None
    return None


@register_engine("onnxruntime")
class OnnxRuntimeEngine(ExecutionEngine):
    """Runs an ONNX model through onnxruntime.

    The ``onnxruntime`` package must be installed::

        pip install onnxruntime

    Configuration fields used from ``GenerationSettings``:

    * ``model_path``: the ``.onnx`` file to load.
    * ``ort_optimization_level``: graph optimization level.
    * ``ort_providers``: comma-separated execution providers.
    """

    def __init__(self, config: GenerationSettings) -> None:
        """Load the model and create the inference session.

        Args:
            config: Settings providing ``model_path`` and ``ort_*`` fields.

        Raises:
            EngineUnavailableError: If onnxruntime is not installed, the
                model file does not exist, or the session cannot be created.
        """
        if not _ORT_AVAILABLE:
            raise EngineUnavailableError(
                "onnxruntime package not installed. Install with: pip install onnxruntime"
            )

        model_path = Path(config.model_path)
        if not config.model_path or not model_path.exists():
            raise EngineUnavailableError(f"Model file not found: {model_path}")

        _init_environment()

        options = ort.SessionOptions()
        level = _OPTIMIZATION_LEVELS.get(config.ort_optimization_level)
        if level is None:
            logger.warning(
                "Unknown ort_optimization_level %r, using 'basic'",
                config.ort_optimization_level,
            )
            level = _OPTIMIZATION_LEVELS["basic"]
        options.graph_optimization_level = getattr(ort.GraphOptimizationLevel, level)

        providers = [p.strip() for p in config.ort_providers.split(",") if p.strip()]
        try:
            self._session = ort.InferenceSession(
                str(model_path),
                sess_options=options,
                providers=providers or None,
            )
        except Exception as exc:
            raise EngineUnavailableError(f"Failed to load model {model_path}: {exc}") from exc

        self._model_path = model_path
        self._closed = False
        logger.info(
            "Loaded %s with providers %s",
            model_path.name,
            ",".join(self._session.get_providers()),
        )

    @property
    def name(self) -> str:
        """Return ``'onnxruntime'``."""
        return "onnxruntime"

    @property
    def is_available(self) -> bool:
        """True while the session is open."""
        return not self._closed

    @property
    def model_path(self) -> Path:
        """The loaded model file."""
        return self._model_path

    def declared_inputs(self) -> list[TensorSlot]:
        """Translate the session's inputs; non-tensor inputs are skipped."""
        slots: list[TensorSlot] = []
        for node in self._session.get_inputs():
            element_type = _element_type(node.type)
            if element_type is None:
                logger.debug("Skipping non-tensor input %s (%s)", node.name, node.type)
                continue
            shape = tuple(_dimension(dim) for dim in (node.shape or ()))
            slots.append(TensorSlot(node.name, element_type, shape))
        return slots

    def execute(self, inputs: Sequence[tuple[str, np.ndarray]]) -> dict[str, np.ndarray]:
        """Run the session and return every output by name."""
        if self._closed:
            raise RuntimeError("onnxruntime session is closed")
        output_names = [node.name for node in self._session.get_outputs()]
        results = self._session.run(output_names, dict(inputs))
        return dict(zip(output_names, results))

    def close(self) -> None:
        """Drop the session so the runtime can free the model."""
        if not self._closed:
            self._closed = True
            self._session = None
