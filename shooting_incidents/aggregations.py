"""Incident aggregations

Groups enriched incident records by a key and counts them. Groupings by
(year, region) also get a per-million rate from the population attached
during enrichment; other groupings (hour, weekday, month, precinct) are
plain counts.

Results only depend on the set of records, not their order: groups are
emitted sorted by key and top/bottom selections break count ties on the
key.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Union

import numpy as np
import pandas as pd

from shooting_incidents.config import RATE_PER, TOP_N_PRECINCTS
from shooting_incidents.utils.exceptions import AggregationInconsistencyError, DataProcessingError
from shooting_incidents.utils.logger_config import setup_logger

logger = setup_logger(__name__)

GroupBy = Union[str, Sequence[str], Callable[[pd.DataFrame], Union[pd.Series, List[pd.Series]]]]

PER_CAPITA_KEYS = ('year', 'region')

STANDARD_GROUPINGS: Dict[str, List[str]] = {
    'year_region': ['year', 'region'],
    'hour': ['hour'],
    'weekday': ['day_of_week'],
    'month': ['month'],
    'precinct': ['precinct'],
}


def _resolve_keys(df: pd.DataFrame, by: GroupBy):
    if callable(by):
        keys = by(df)
        keys = list(keys) if isinstance(keys, (list, tuple)) else [keys]
        names = [k.name if k.name is not None else f'key_{i}' for i, k in enumerate(keys)]
        return [k.rename(n) for k, n in zip(keys, names)], names
    names = [by] if isinstance(by, str) else list(by)
    missing = [c for c in names if c not in df.columns]
    if missing:
        raise DataProcessingError(f'Cannot group by missing columns {missing}')
    return [df[c] for c in names], names


def _check_uniform_population(df: pd.DataFrame, names: List[str]) -> pd.Series:
    per_group = df.groupby(names, observed=True, sort=True)['population']
    distinct = per_group.nunique(dropna=False)
    inconsistent = distinct[distinct > 1]
    if not inconsistent.empty:
        keys = [k if isinstance(k, tuple) else (k,) for k in inconsistent.index]
        raise AggregationInconsistencyError(
            f'{len(keys)} (year, region) groups carry more than one population value: {keys[:10]}'
        )
    return per_group.first()


def aggregate_counts(enriched: pd.DataFrame, by: GroupBy) -> pd.DataFrame:
    """
    Count records per distinct key.

    Args:
        enriched: incident records (enriched when grouping by year and region)
        by: column name, list of column names, or a callable returning key series

    Returns:
        pd.DataFrame: key columns + `count`; (year, region) groupings also
        carry `population` and `rate` (count per RATE_PER residents)

    Raises:
        AggregationInconsistencyError: a (year, region) group has more than one population
    """
    keys, names = _resolve_keys(enriched, by)
    per_capita = not callable(by) and tuple(names) == PER_CAPITA_KEYS

    if enriched.empty:
        columns = [*names, 'count'] + (['population', 'rate'] if per_capita else [])
        return pd.DataFrame(columns=columns)

    counts = (
        pd.Series(np.ones(len(enriched), dtype=np.int64), index=enriched.index)
        .groupby(keys, observed=True, sort=True)
        .sum()
        .rename('count')
    )
    buckets = counts.reset_index()
    buckets.columns = [*names, 'count']

    if per_capita:
        if 'population' not in enriched.columns:
            raise DataProcessingError('Per-capita grouping needs enriched records with a population column')
        population = _check_uniform_population(enriched, names).rename('population').reset_index()
        buckets = buckets.merge(population, on=names, how='left', validate='one_to_one')
        # Zero or negative (extrapolated) populations have no meaningful rate
        valid = buckets['population'] > 0
        if not valid.all():
            dropped = [tuple(k) for k in buckets.loc[~valid, names].itertuples(index=False)]
            logger.warning(f'No rate for {len(dropped)} (year, region) groups with non-positive population: {dropped[:10]}')
        buckets['rate'] = buckets['count'] * RATE_PER / buckets['population'].where(valid)

    logger.debug(f'Aggregated {len(enriched)} records into {len(buckets)} buckets by {names}')
    return buckets


def aggregate_standard(enriched: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Run every grouping in STANDARD_GROUPINGS."""
    return {name: aggregate_counts(enriched, cols) for name, cols in STANDARD_GROUPINGS.items()}


def _key_columns(buckets: pd.DataFrame) -> List[str]:
    return [c for c in buckets.columns if c not in ('count', 'population', 'rate')]


def _select(buckets: pd.DataFrame, n: int, descending: bool) -> pd.DataFrame:
    if n < 0:
        raise ValueError(f'n must be non-negative, got {n}')
    keys = _key_columns(buckets)
    ordered = buckets.sort_values(
        ['count', *keys],
        ascending=[not descending] + [True] * len(keys),
        kind='mergesort',
    )
    return ordered.head(n).reset_index(drop=True)


def top_n(buckets: pd.DataFrame, n: int = TOP_N_PRECINCTS) -> pd.DataFrame:
    """Highest counts first; ties by ascending key."""
    return _select(buckets, n, descending=True)


def bottom_n(buckets: pd.DataFrame, n: int = TOP_N_PRECINCTS) -> pd.DataFrame:
    """Lowest counts first; ties by ascending key."""
    return _select(buckets, n, descending=False)
