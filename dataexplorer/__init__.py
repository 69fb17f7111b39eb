"""Dataset exploration engine: type coercion, profiling, transforms and normal-model probabilities."""

__version__ = "0.3.0"
