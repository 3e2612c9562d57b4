"""Tests for InputBinder and build_int_tensor."""

from __future__ import annotations

import numpy as np
import pytest

from tokenloop.exceptions import TokenLoopError, UnsupportedTensorTypeError
from tokenloop.tensors.binder import InputBinder, build_int_tensor
from tokenloop.tensors.types import ElementType, TensorSlot


def _decoder_slots() -> list[TensorSlot]:
    """Signature of a typical exported decoder with a KV cache."""
    return [
        TensorSlot("input_ids", ElementType.INT64, (None, None)),
        TensorSlot("attention_mask", ElementType.INT64, (None, None)),
        TensorSlot("position_ids", ElementType.INT64, (None, None)),
        TensorSlot("past_key_values.0.key", ElementType.FLOAT32, (None, 4, None, 8)),
        TensorSlot("past_key_values.0.value", ElementType.FLOAT32, (None, 4, None, 8)),
    ]


@pytest.fixture()
def binder() -> InputBinder:
    return InputBinder()


class TestBuildIntTensor:
    @pytest.mark.parametrize(
        "element_type",
        [
            ElementType.INT64,
            ElementType.INT32,
            ElementType.INT8,
            ElementType.UINT8,
            ElementType.UINT16,
            ElementType.UINT32,
            ElementType.UINT64,
        ],
    )
    def test_declared_dtype(self, element_type: ElementType) -> None:
        tensor = build_int_tensor(element_type, (1, 3), [1, 2, 3])
        assert tensor.dtype == element_type.dtype
        assert tensor.shape == (1, 3)
        assert tensor.tolist() == [[1, 2, 3]]

    def test_narrowing_wraps(self) -> None:
        """Values wider than the declared type wrap around like a C cast."""
        tensor = build_int_tensor(ElementType.INT8, (2,), [300, -1])
        assert tensor.tolist() == [44, -1]
        tensor = build_int_tensor(ElementType.UINT8, (1,), [256 + 7])
        assert tensor.tolist() == [7]

    @pytest.mark.parametrize(
        "element_type", [ElementType.FLOAT32, ElementType.FLOAT16, ElementType.BOOL]
    )
    def test_non_integer_rejected(self, element_type: ElementType) -> None:
        with pytest.raises(UnsupportedTensorTypeError):
            build_int_tensor(element_type, (1,), [1])

    def test_error_is_type_error(self) -> None:
        with pytest.raises(TypeError):
            build_int_tensor(ElementType.FLOAT64, (1,), [1])
        with pytest.raises(TokenLoopError):
            build_int_tensor(ElementType.FLOAT64, (1,), [1])


class TestInputBinder:
    def test_binds_every_slot_in_order(self, binder: InputBinder) -> None:
        inputs = binder.bind(_decoder_slots(), [5, 6, 7], "input_ids")
        assert [name for name, _ in inputs] == [slot.name for slot in _decoder_slots()]

    def test_primary_holds_history(self, binder: InputBinder) -> None:
        inputs = dict(binder.bind(_decoder_slots(), [5, 6, 7], "input_ids"))
        assert inputs["input_ids"].shape == (1, 3)
        assert inputs["input_ids"].dtype == np.int64
        assert inputs["input_ids"].tolist() == [[5, 6, 7]]

    def test_attention_mask_all_ones(self, binder: InputBinder) -> None:
        inputs = dict(binder.bind(_decoder_slots(), [5, 6, 7], "input_ids"))
        assert inputs["attention_mask"].tolist() == [[1, 1, 1]]

    def test_position_ids_range(self, binder: InputBinder) -> None:
        inputs = dict(binder.bind(_decoder_slots(), [5, 6, 7, 8], "input_ids"))
        assert inputs["position_ids"].tolist() == [[0, 1, 2, 3]]

    def test_token_type_ids_zeros(self, binder: InputBinder) -> None:
        slots = [
            TensorSlot("input_ids", ElementType.INT64, (None, None)),
            TensorSlot("token_type_ids", ElementType.INT32, (None, None)),
        ]
        inputs = dict(binder.bind(slots, [9, 9], "input_ids"))
        assert inputs["token_type_ids"].dtype == np.int32
        assert inputs["token_type_ids"].tolist() == [[0, 0]]

    def test_cache_placeholders_empty(self, binder: InputBinder) -> None:
        inputs = dict(binder.bind(_decoder_slots(), [5, 6, 7], "input_ids"))
        key = inputs["past_key_values.0.key"]
        assert key.shape == (1, 4, 0, 8)
        assert key.dtype == np.float32
        assert key.size == 0

    def test_rank_one_slots(self, binder: InputBinder) -> None:
        slots = [
            TensorSlot("tokens", ElementType.INT32, (None,)),
            TensorSlot("attention_mask", ElementType.UINT8, (None,)),
        ]
        inputs = dict(binder.bind(slots, [3, 4], "tokens"))
        assert inputs["tokens"].shape == (2,)
        assert inputs["tokens"].dtype == np.int32
        assert inputs["attention_mask"].dtype == np.uint8
        assert inputs["attention_mask"].tolist() == [1, 1]

    def test_other_slot_gets_sequence_length(self, binder: InputBinder) -> None:
        slots = [
            TensorSlot("input_ids", ElementType.INT64, (None, None)),
            TensorSlot("encoder_hidden_states", ElementType.FLOAT32, (None, None, 16)),
        ]
        inputs = dict(binder.bind(slots, [1, 2, 3, 4, 5], "input_ids"))
        assert inputs["encoder_hidden_states"].shape == (1, 5, 16)
        assert not inputs["encoder_hidden_states"].any()

    def test_float_primary_rejected(self, binder: InputBinder) -> None:
        slots = [TensorSlot("input_ids", ElementType.FLOAT32, (None, None))]
        with pytest.raises(UnsupportedTensorTypeError):
            binder.bind(slots, [1, 2], "input_ids")

    def test_history_not_mutated(self, binder: InputBinder) -> None:
        history = [5, 6, 7]
        inputs = dict(binder.bind(_decoder_slots(), history, "input_ids"))
        inputs["input_ids"][0, 0] = 99
        assert history == [5, 6, 7]
