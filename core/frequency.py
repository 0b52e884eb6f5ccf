"""
frequency.py
-------------
Cadence classification for a series of charge intervals.

Given the day gaps between consecutive charges, decide whether the series
is weekly, biweekly, monthly or yearly, and how consistent it is.

Logic:
    1. Mean and population standard deviation of the gaps.
    2. consistency = 1 - min(std / mean, 1)
    3. The mean is matched against inclusive day bands from config, in order.
       The first band that contains it sets the frequency; its weight scales
       the consistency into the confidence.
    4. No band matches: fall back to monthly at a fixed low confidence.
"""

import logging
from datetime import date, timedelta
from typing import Sequence

import numpy as np

from config.config_loader import get_frequency_config

logger = logging.getLogger(__name__)


class FrequencyAnalyzer:
    """
    Classifies day-intervals into a billing cadence.

    Usage:
        analyzer = FrequencyAnalyzer()
        frequency, confidence = analyzer.analyze([30, 31, 29])
    """

    def __init__(self, config: dict | None = None):
        self.config = config["frequency"] if config is not None else get_frequency_config()
        self.bands = self.config["bands"]
        self.fallback_frequency = self.config["fallback_frequency"]
        self.fallback_confidence = float(self.config["fallback_confidence"])
        self.next_charge_days = self.config["next_charge_days"]

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def analyze(self, intervals: Sequence[float]) -> tuple[str, float]:
        """
        Returns (frequency, confidence) for the given day-intervals.

        An empty interval list carries no evidence: (fallback, 0.0).
        """
        if len(intervals) == 0:
            return (self.fallback_frequency, 0.0)

        gaps = np.asarray(intervals, dtype=float)
        mean_interval = float(np.mean(gaps))
        if mean_interval <= 0:
            # Same-day duplicates: no cadence to speak of.
            return (self.fallback_frequency, self.fallback_confidence)

        std_dev = float(np.std(gaps))
        consistency = 1.0 - min(std_dev / mean_interval, 1.0)

        for band in self.bands:
            if band["min_days"] <= mean_interval <= band["max_days"]:
                return (band["frequency"], consistency * band["weight"])

        logger.debug(f"Mean interval {mean_interval:.1f}d matched no band, falling back.")
        return (self.fallback_frequency, self.fallback_confidence)

    def next_charge(self, last_charge: date, frequency: str) -> date:
        """Estimates the next charge date from the last one."""
        return last_charge + timedelta(days=int(self.next_charge_days[frequency]))

    @staticmethod
    def intervals_between(dates: Sequence[date]) -> list[float]:
        """Day gaps between consecutive dates. Expects dates sorted ascending."""
        return [float((later - earlier).days) for earlier, later in zip(dates, dates[1:])]
