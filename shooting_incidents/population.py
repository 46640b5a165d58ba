"""Population series - expand sparse census snapshots into a dense year x borough table.

Each borough has three census counts (2000/2010/2020). Years between two
anchors are linearly interpolated; years past the last anchor continue the
last decade's slope on a single straight line. The per-borough series are
then unioned into one long-form table keyed by (year, region), which the
enrichment step joins onto incident records.
"""

from __future__ import annotations

import numbers
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from shooting_incidents.config import ANCHOR_YEARS, CENSUS_SNAPSHOTS, TARGET_MAX_YEAR
from shooting_incidents.utils.boroughs import BOROUGHS
from shooting_incidents.utils.exceptions import ConfigError, PopulationLookupError
from shooting_incidents.utils.logger_config import setup_logger

logger = setup_logger(__name__)

ANCHOR_COUNT = 3
TABLE_COLUMNS = ['year', 'region', 'population']

# {year: population}, or (year, population) pairs in anchor order
Anchors = Union[Mapping[int, int], Sequence[Tuple[int, int]]]


def _validate_anchors(anchors: Anchors, target_max_year: int, region: str) -> Tuple[np.ndarray, np.ndarray]:
    pairs = list(anchors.items()) if isinstance(anchors, Mapping) else [tuple(p) for p in anchors]
    if len(pairs) != ANCHOR_COUNT:
        raise ConfigError(f'{region}: expected {ANCHOR_COUNT} census anchors, got {len(pairs)}')

    years = [year for year, _ in pairs]
    for year in [*years, target_max_year]:
        if isinstance(year, bool) or not isinstance(year, (int, np.integer)):
            raise ConfigError(f'{region}: years must be integers, got {year!r}')

    # Insertion order is the configured order; it has to be strictly increasing already
    if any(later <= earlier for earlier, later in zip(years, years[1:])):
        raise ConfigError(f'{region}: anchor years must be strictly increasing, got {years}')

    populations = [population for _, population in pairs]
    for year, population in zip(years, populations):
        if isinstance(population, bool) or not isinstance(population, numbers.Real):
            raise ConfigError(f'{region}: census population for {year} must be a number, got {population!r}')
        if not np.isfinite(population) or population < 0:
            raise ConfigError(f'{region}: census population for {year} must be non-negative, got {population!r}')

    if target_max_year < years[0]:
        raise ConfigError(f'{region}: target year {target_max_year} is before the first anchor {years[0]}')

    return np.asarray(years, dtype=np.int64), np.asarray(populations, dtype=float)


def build_population_series(anchors: Anchors, target_max_year: int, region: str) -> pd.Series:
    """
    Expand three census anchors into a population estimate for every year.

    Args:
        anchors: {year: population} (or year/population pairs) for exactly three increasing census years
        target_max_year: last year to produce; may lie past the last anchor
        region: borough the anchors belong to, used as the series name

    Returns:
        pd.Series: float populations indexed by year, covering [first anchor, target_max_year]

    Raises:
        ConfigError: malformed anchors or a target year before the first anchor
    """
    anchor_years, anchor_pops = _validate_anchors(anchors, target_max_year, region)

    years = np.arange(anchor_years[0], target_max_year + 1, dtype=np.int64)
    values = np.interp(years, anchor_years, anchor_pops)

    # np.interp clamps past the last anchor; extend the last segment's line instead
    beyond = years > anchor_years[-1]
    if beyond.any():
        base_year, last_year = anchor_years[-2], anchor_years[-1]
        base_pop, last_pop = anchor_pops[-2], anchor_pops[-1]
        slope = (last_pop - base_pop) / (last_year - base_year)
        values[beyond] = base_pop + slope * (years[beyond] - base_year)

    series = pd.Series(values, index=pd.Index(years, name='year'), name=region, dtype=float)
    logger.debug(f'Built population series for {region}: {years[0]}-{years[-1]} ({len(series)} years)')
    return series


def build_all_series(
    snapshots: Mapping[str, Mapping[int, int]],
    target_max_year: int,
    anchor_years: Sequence[int] = ANCHOR_YEARS,
) -> Dict[str, pd.Series]:
    """Apply build_population_series once per configured borough."""
    if not snapshots:
        raise ConfigError('No census snapshots configured')
    unknown = [region for region in sorted(snapshots) if region not in BOROUGHS]
    if unknown:
        raise ConfigError(f'Census snapshots reference unknown boroughs: {unknown}')
    for region in sorted(snapshots):
        if set(snapshots[region]) != set(anchor_years):
            raise ConfigError(f'{region}: snapshot years {sorted(snapshots[region])} do not match census years {list(anchor_years)}')

    return {
        region: build_population_series(snapshots[region], target_max_year, region)
        for region in sorted(snapshots)
    }


class RegionPopulationTable:
    """
    Long-form (year, region, population) table, one row per year and borough.

    The table is validated on construction and never handed out by reference:
    `to_frame()` and `series_for()` return copies.
    """

    def __init__(self, frame: pd.DataFrame) -> None:
        missing = set(TABLE_COLUMNS) - set(frame.columns)
        if missing:
            raise ConfigError(f'Population table is missing columns {sorted(missing)}')

        data = frame[TABLE_COLUMNS].copy()
        data['year'] = data['year'].astype('int64')
        data['region'] = data['region'].astype(str)
        data['population'] = data['population'].astype(float)

        non_finite = ~np.isfinite(data['population'])
        if non_finite.any():
            keys = [tuple(k) for k in data.loc[non_finite, ['year', 'region']].itertuples(index=False)]
            raise ConfigError(f'Population table has missing or infinite populations: {keys[:10]}')

        duplicated = data.duplicated(subset=['year', 'region'], keep=False)
        if duplicated.any():
            keys = sorted(set(map(tuple, data.loc[duplicated, ['year', 'region']].itertuples(index=False))))
            raise ConfigError(f'Population table has duplicate (year, region) rows: {keys[:10]}')

        for region, years in data.groupby('region')['year']:
            expected = years.max() - years.min() + 1
            if len(years) != expected:
                raise ConfigError(f'Population table has gaps for {region}: {len(years)} of {expected} years present')

        self._frame = data.sort_values(['region', 'year'], kind='mergesort').reset_index(drop=True)

    @classmethod
    def from_series(cls, series_by_region: Mapping[str, pd.Series]) -> 'RegionPopulationTable':
        parts = []
        for region, series in series_by_region.items():
            part = pd.DataFrame({
                'year': series.index.to_numpy(dtype=np.int64),
                'region': region,
                'population': series.to_numpy(dtype=float),
            })
            parts.append(part)
        if not parts:
            raise ConfigError('Cannot build a population table from zero series')
        return cls(pd.concat(parts, ignore_index=True))

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        lo, hi = self.years if len(self) else (None, None)
        return f'RegionPopulationTable(regions={list(self.regions)}, years={lo}-{hi})'

    @property
    def regions(self) -> Tuple[str, ...]:
        return tuple(sorted(self._frame['region'].unique()))

    @property
    def years(self) -> Tuple[int, int]:
        """Covered (first, last) year across all regions."""
        return int(self._frame['year'].min()), int(self._frame['year'].max())

    def lookup(self, year: int, region: str) -> float:
        hit = self._frame.loc[(self._frame['year'] == year) & (self._frame['region'] == region), 'population']
        if hit.empty:
            raise PopulationLookupError(f'No population for ({year}, {region})')
        return float(hit.iloc[0])

    def series_for(self, region: str) -> pd.Series:
        rows = self._frame.loc[self._frame['region'] == region]
        if rows.empty:
            raise PopulationLookupError(f'No population series for region {region}')
        return pd.Series(
            rows['population'].to_numpy(dtype=float),
            index=pd.Index(rows['year'].to_numpy(dtype=np.int64), name='year'),
            name=region,
            dtype=float,
        )

    def to_frame(self) -> pd.DataFrame:
        return self._frame.copy()


def build_population_table(
    snapshots: Optional[Mapping[str, Mapping[int, int]]] = None,
    target_max_year: Optional[int] = None,
) -> RegionPopulationTable:
    """Build the borough population table from the configured census snapshots."""
    snapshots = CENSUS_SNAPSHOTS if snapshots is None else snapshots
    target_max_year = TARGET_MAX_YEAR if target_max_year is None else target_max_year

    table = RegionPopulationTable.from_series(build_all_series(snapshots, target_max_year))
    lo, hi = table.years
    logger.info(f'Population table ready: {len(table.regions)} regions x {lo}-{hi} ({len(table)} rows)')
    return table
