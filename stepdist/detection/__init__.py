"""Stride detection: extrema classification, smoothing, stride building and matching."""

from .extrema import AxisBuffer, Extremum, classify_extremum, smooth_window
from .similarity import SimilarityEngine, strides_similar
from .stride_builder import StrideBuilder

__all__ = [
    'AxisBuffer',
    'Extremum',
    'SimilarityEngine',
    'StrideBuilder',
    'classify_extremum',
    'smooth_window',
    'strides_similar',
]
