"""Spectral features of one byte-spectrum frame."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

# Band boundaries as fractions of the bin count
LOW_BAND_FRACTION = 0.15
MID_BAND_FRACTION = 0.35
HIGH_BAND_FRACTION = 0.55

# A bin counts as a harmonic peak when it exceeds both neighbours by more than this
PEAK_PROMINENCE = 30

# Smallest spectrum for which all three bands are non-empty
MIN_BINS = 20


@dataclass(frozen=True)
class FeatureSet:
    """Coarse spectral shape of one frame."""
    low_avg: float
    mid_avg: float
    high_avg: float
    peak_count: int
    avg_volume: float


def band_edges(n_bins: int) -> tuple[int, int, int]:
    """
    Return the exclusive upper indices of the low, mid and high bands.

    The bands are ``[0, low)``, ``[low, mid)`` and ``[mid, high)``; bins from
    ``high`` upwards only count towards the overall volume.

    Raises:
        ValueError: if ``n_bins`` is below MIN_BINS, which would leave a band empty.
    """
    if n_bins < MIN_BINS:
        raise ValueError(f"Spectrum needs at least {MIN_BINS} bins, got {n_bins}")
    low = math.floor(n_bins * LOW_BAND_FRACTION)
    mid = math.floor(n_bins * MID_BAND_FRACTION)
    high = math.floor(n_bins * HIGH_BAND_FRACTION)
    return low, mid, high


def count_peaks(frame: np.ndarray, prominence: int = PEAK_PROMINENCE) -> int:
    """Count interior bins standing more than ``prominence`` above both neighbours."""
    values = np.asarray(frame, dtype=np.float64)
    if values.size < 3:
        return 0
    centre = values[1:-1]
    is_peak = (centre > values[:-2] + prominence) & (centre > values[2:] + prominence)
    return int(np.count_nonzero(is_peak))


def extract_features(frame: np.ndarray) -> FeatureSet:
    """
    Reduce a byte spectrum (values 0..255) to band averages, peak count and volume.

    Args:
        frame: One-dimensional spectrum, lowest frequency first.

    Returns:
        FeatureSet for the frame.
    """
    values = np.asarray(frame, dtype=np.float64).reshape(-1)
    n_bins = values.size
    low, mid, high = band_edges(n_bins)

    low_sum = float(values[:low].sum())
    mid_sum = float(values[low:mid].sum())
    high_sum = float(values[mid:high].sum())
    total_energy = float(values.sum())

    return FeatureSet(
        low_avg=low_sum / low,
        mid_avg=mid_sum / (mid - low),
        high_avg=high_sum / (high - mid),
        peak_count=count_peaks(values),
        avg_volume=total_energy / n_bins,
    )
