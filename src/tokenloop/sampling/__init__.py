"""Sampling subsystem for tokenloop.

Turns one decode step's raw scores into a single token id. Implements
repetition penalty, temperature scaling, top-k, top-p, and a weighted
categorical draw from a per-request random generator.
"""

from tokenloop.sampling.sampler import TokenSampler, extract_last_scores, make_rng
from tokenloop.sampling.types import SampleResult, SamplingConfig

__all__ = [
    "SampleResult",
    "SamplingConfig",
    "TokenSampler",
    "extract_last_scores",
    "make_rng",
]
