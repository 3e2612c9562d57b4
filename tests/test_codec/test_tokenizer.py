"""Tests for TokenizerCodec using a small in-memory word-level tokenizer."""

from __future__ import annotations

from pathlib import Path

import pytest
from tokenizers import Tokenizer, models, pre_tokenizers

from tokenloop.codec import tokenizer as tokenizer_module
from tokenloop.codec.tokenizer import TokenizerCodec, load_codec
from tokenloop.exceptions import CodecError

_VOCAB = {"[UNK]": 0, "hello": 1, "world": 2, "again": 3}


@pytest.fixture()
def tokenizer_file(tmp_path: Path) -> Path:
    tok = Tokenizer(models.WordLevel(vocab=_VOCAB, unk_token="[UNK]"))
    tok.pre_tokenizer = pre_tokenizers.Whitespace()
    path = tmp_path / "tokenizer.json"
    tok.save(str(path))
    return path


class TestTokenizerCodec:
    def test_encode(self, tokenizer_file: Path) -> None:
        codec = TokenizerCodec.from_file(str(tokenizer_file))
        assert codec.encode("hello world") == [1, 2]
        assert codec.vocab_size == len(_VOCAB)

    def test_decode(self, tokenizer_file: Path) -> None:
        codec = TokenizerCodec.from_file(str(tokenizer_file))
        text = codec.decode([1, 2, 3])
        assert "hello" in text
        assert text.split() == ["hello", "world", "again"]

    def test_unknown_word_maps_to_unk(self, tokenizer_file: Path) -> None:
        codec = TokenizerCodec.from_file(str(tokenizer_file))
        assert codec.encode("hello there") == [1, 0]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CodecError, match="Failed to load tokenizer"):
            TokenizerCodec.from_file(str(tmp_path / "missing.json"))

    def test_decode_failure_wrapped(self, tokenizer_file: Path) -> None:
        codec = TokenizerCodec.from_file(str(tokenizer_file))
        with pytest.raises(CodecError, match="Failed to decode"):
            codec.decode([-1])


class TestLoadCodec:
    @pytest.fixture(autouse=True)
    def _clear_cache(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(tokenizer_module, "_cached", None)

    def test_reuses_same_path(self, tokenizer_file: Path) -> None:
        first = load_codec(str(tokenizer_file))
        assert load_codec(str(tokenizer_file)) is first
        assert first.path == str(tokenizer_file)

    def test_reloads_on_new_path(self, tokenizer_file: Path, tmp_path: Path) -> None:
        other = tmp_path / "other.json"
        other.write_text(tokenizer_file.read_text())
        first = load_codec(str(tokenizer_file))
        second = load_codec(str(other))
        assert second is not first
        assert second.path == str(other)
