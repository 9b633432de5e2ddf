"""Per-frame blow detection: features, classification and debouncing."""

from .classifier import Classification, classify, threshold_for
from .debounce import BLOW_COOLDOWN_MS, NEVER, gate
from .features import FeatureSet, band_edges, count_peaks, extract_features

__all__ = [
    "BLOW_COOLDOWN_MS",
    "Classification",
    "FeatureSet",
    "NEVER",
    "band_edges",
    "classify",
    "count_peaks",
    "extract_features",
    "gate",
    "threshold_for",
]
