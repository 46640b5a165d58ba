"""Attach borough population to incident records by (year, region).

The join is explicit about misses: records whose (year, region) has no
population entry are returned separately with a failure reason instead of
being dropped or given a default population.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from shooting_incidents.population import RegionPopulationTable
from shooting_incidents.utils.exceptions import DataProcessingError, PopulationLookupError
from shooting_incidents.utils.logger_config import setup_logger

logger = setup_logger(__name__)

JOIN_KEYS = ['year', 'region']
UNKNOWN_REGION = 'unknown_region'
YEAR_OUT_OF_RANGE = 'year_out_of_range'


@dataclass(frozen=True)
class EnrichmentResult:
    enriched: pd.DataFrame
    unmatched: pd.DataFrame

    @property
    def ok(self) -> bool:
        return self.unmatched.empty

    @property
    def failed_keys(self) -> pd.DataFrame:
        """Distinct (year, region) pairs that had no population, with record counts."""
        if self.unmatched.empty:
            return pd.DataFrame(columns=[*JOIN_KEYS, 'failure_reason', 'n_records'])
        return (
            self.unmatched.groupby([*JOIN_KEYS, 'failure_reason'], dropna=False)
            .size()
            .rename('n_records')
            .reset_index()
        )

    def raise_for_unmatched(self) -> None:
        if self.ok:
            return
        keys = [tuple(k) for k in self.failed_keys[JOIN_KEYS].itertuples(index=False)]
        raise PopulationLookupError(
            f'{len(self.unmatched)} incidents have no population entry; failing (year, region) keys: {keys[:10]}'
        )


def enrich_incidents(incidents: pd.DataFrame, table: RegionPopulationTable) -> EnrichmentResult:
    """
    Join population onto every incident by (year, region).

    Args:
        incidents: prepared incident records with `year` and `region` columns
        table: borough population table

    Returns:
        EnrichmentResult: matched records with `population`, and the unmatched
        records with a `failure_reason` column

    Raises:
        DataProcessingError: join keys missing, or population already attached
    """
    missing = [c for c in JOIN_KEYS if c not in incidents.columns]
    if missing:
        raise DataProcessingError(f'Incidents are missing join columns {missing}')
    if 'population' in incidents.columns:
        raise DataProcessingError('Incidents already carry a population column')

    population = table.to_frame()
    left = incidents.copy()
    year = pd.to_numeric(left['year'], errors='coerce')
    # Fractional years never match a table row
    left['year'] = year.where(year.isna() | (year % 1 == 0)).astype('Int64')
    left['region'] = left['region'].astype(object)
    right = population.assign(year=population['year'].astype('Int64'), region=population['region'].astype(object))

    merged = left.merge(right, on=JOIN_KEYS, how='left', validate='many_to_one', indicator='_match')
    merged.index = incidents.index
    matched = merged['_match'] == 'both'

    enriched = merged.loc[matched].drop(columns='_match')
    enriched['year'] = enriched['year'].astype('int64')

    unmatched = merged.loc[~matched].drop(columns=['_match', 'population'])
    known_region = unmatched['region'].isin(table.regions)
    unmatched['failure_reason'] = known_region.map({True: YEAR_OUT_OF_RANGE, False: UNKNOWN_REGION})

    if len(unmatched):
        logger.warning(f'{len(unmatched)} of {len(incidents)} incidents have no population entry')
    logger.info(f'Enriched {len(enriched)} incidents with population')
    return EnrichmentResult(enriched=enriched, unmatched=unmatched)
