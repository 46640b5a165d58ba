"""Linear trend fits over yearly incident counts and per-capita rates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np
import pandas as pd
from scipy import stats


@dataclass
class TrendFit:
    slope: float
    intercept: float
    r_value: float
    p_value: float
    stderr: float
    n: int

    @property
    def r_squared(self) -> float:
        return self.r_value ** 2

    def to_dict(self) -> dict:
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "r_squared": self.r_squared,
            "p_value": self.p_value,
            "stderr": self.stderr,
            "n": self.n,
        }


def fit_linear_trend(df: pd.DataFrame, x: str = "year", y: str = "rate") -> TrendFit:
    """Ordinary least-squares line of `y` on `x`, ignoring rows where either is null."""
    working = df[[x, y]].apply(pd.to_numeric, errors="coerce").dropna()
    if len(working) < 2:
        raise ValueError(f"Need at least two points to fit a trend, got {len(working)}.")
    if working[x].nunique() < 2:
        raise ValueError(f"Column {x!r} has a single distinct value; slope is undefined.")
    result = stats.linregress(working[x].to_numpy(dtype=float), working[y].to_numpy(dtype=float))
    return TrendFit(
        slope=float(result.slope),
        intercept=float(result.intercept),
        r_value=float(result.rvalue),
        p_value=float(result.pvalue),
        stderr=float(result.stderr),
        n=int(len(working)),
    )


def fit_region_trends(buckets: pd.DataFrame, value: str = "rate", region_col: str = "region", x: str = "year") -> pd.DataFrame:
    """Fit one trend per region over (year, region) aggregate buckets."""
    rows = []
    for region, group in buckets.groupby(region_col, sort=True):
        if group[x].nunique() < 2:
            continue
        fit = fit_linear_trend(group, x=x, y=value)
        rows.append({region_col: region, "value": value, **fit.to_dict()})
    return pd.DataFrame(rows, columns=[region_col, "value", "slope", "intercept", "r_squared", "p_value", "stderr", "n"])


def project(fit: TrendFit, years: Iterable[int]) -> pd.Series:
    """Evaluate the fitted line at the given years."""
    years_arr = np.asarray(list(years), dtype=float)
    values = fit.intercept + fit.slope * years_arr
    return pd.Series(values, index=pd.Index(years_arr.astype(int), name="year"), name="trend")
