"""Synthetic span generators."""

from .background_generators import BackgroundTraceGenerator
from .sample_trace_generator import SampleTraceGenerator

__all__ = [
    "BackgroundTraceGenerator",
    "SampleTraceGenerator",
]
