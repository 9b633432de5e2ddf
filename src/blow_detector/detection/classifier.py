"""Heuristic blow classifier.

Exhaling into a microphone produces broadband, bass-heavy noise with no
harmonic structure and a sudden rise in level. Speech and music fail the
harmonic test because their spectra carry sharp peaks.
"""

from __future__ import annotations

from dataclasses import dataclass

from .features import FeatureSet

FULL_SCALE = 255.0

LOW_FREQ_FACTOR = 1.2
BROADBAND_FACTOR = 0.8
VOLUME_FACTOR = 0.7
MAX_HARMONIC_PEAKS = 5
MIN_ONSET = 15.0


@dataclass(frozen=True)
class Classification:
    """Outcome of one frame, with every criterion kept for diagnostics."""
    is_blowing: bool
    volume_change: float
    threshold: float
    low_freq_strong: bool
    broadband: bool
    not_harmonic: bool
    has_volume: bool
    sudden_onset: bool


def threshold_for(sensitivity: float) -> float:
    """Base byte-level threshold for ``sensitivity`` in (0, 1]."""
    if not 0.0 < sensitivity <= 1.0:
        raise ValueError(f"sensitivity must be in (0, 1], got {sensitivity}")
    return FULL_SCALE * sensitivity


def classify(
    features: FeatureSet,
    previous_volume: float,
    sensitivity: float,
) -> Classification:
    """
    Apply the five blow criteria to one frame.

    All comparisons are strict, so values sitting exactly on a boundary do not
    trigger. The caller stores ``features.avg_volume`` as the next frame's
    ``previous_volume``.
    """
    threshold = threshold_for(sensitivity)
    volume_change = features.avg_volume - previous_volume

    band_mean = (features.low_avg + features.mid_avg + features.high_avg) / 3
    low_freq_strong = features.low_avg > threshold * LOW_FREQ_FACTOR
    broadband = band_mean > threshold * BROADBAND_FACTOR
    not_harmonic = features.peak_count < MAX_HARMONIC_PEAKS
    has_volume = features.avg_volume > threshold * VOLUME_FACTOR
    sudden_onset = volume_change > MIN_ONSET

    return Classification(
        is_blowing=low_freq_strong and broadband and not_harmonic and has_volume and sudden_onset,
        volume_change=volume_change,
        threshold=threshold,
        low_freq_strong=low_freq_strong,
        broadband=broadband,
        not_harmonic=not_harmonic,
        has_volume=has_volume,
        sudden_onset=sudden_onset,
    )
