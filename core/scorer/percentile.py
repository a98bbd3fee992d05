#!/usr/bin/env python3
"""
Percentile Calculations - population-relative normalization of raw metrics.

A value's percentile is the share of the population strictly below it:

    percentile = 100 * count(v < value) / n

Ties are not "less than", so repeated values share a percentile. When lower
raw values are better the result is inverted (100 - percentile).
"""

import math
from typing import Sequence

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves up (round() would send 62.5 to 62)."""
    return int(math.floor(value + 0.5))


def percentile_score(value: float, population: Sequence[float], higher_is_better: bool = True) -> float:
    """
    Percentile of ``value`` within ``population``, in [0, 100].

    A population of size 1 scores 100 in both directions: the lone member
    has nothing below it, and there is no one to rank it against.

    Raises:
        ValueError: if the population is empty.
    """
    size = len(population)
    if size == 0:
        raise ValueError("Cannot compute a percentile against an empty population")
    if size == 1:
        return 100.0

    ordered = np.sort(np.asarray(population, dtype=float))
    rank = int(np.searchsorted(ordered, value, side='left'))
    percentile = 100.0 * rank / size
    return percentile if higher_is_better else 100.0 - percentile


def percentile_scores(population: Sequence[float], higher_is_better: bool = True) -> np.ndarray:
    """Percentile of every member of ``population`` against the whole population."""
    values = np.asarray(population, dtype=float)
    size = len(values)
    if size == 0:
        return np.zeros(0, dtype=float)
    if size == 1:
        return np.array([100.0])

    ordered = np.sort(values)
    ranks = np.searchsorted(ordered, values, side='left')
    percentiles = 100.0 * ranks / size
    return percentiles if higher_is_better else 100.0 - percentiles
