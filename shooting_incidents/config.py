"""Pipeline configuration: census snapshots, year range and data paths.

Values can be overridden through the environment or a `.env` file in the
project root:

    SHOOTINGS_RAW_DATA_PATH    raw NYPD shooting incident CSV
    SHOOTINGS_OUTPUT_PATH      directory for the enriched dataset and aggregates
    SHOOTINGS_TARGET_MAX_YEAR  last year the population series is extended to
"""

import os
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv

from shooting_incidents.utils.exceptions import ConfigError

load_dotenv(Path(__file__).resolve().parent.parent / '.env')

# Decennial census years with an actual population count
ANCHOR_YEARS: Tuple[int, ...] = (2000, 2010, 2020)

# Decennial census resident population per borough (US Census Bureau, 2000/2010/2020)
CENSUS_SNAPSHOTS: Dict[str, Dict[int, int]] = {
    'BRONX': {2000: 1_332_650, 2010: 1_385_108, 2020: 1_472_654},
    'BROOKLYN': {2000: 2_465_326, 2010: 2_504_700, 2020: 2_736_074},
    'MANHATTAN': {2000: 1_537_195, 2010: 1_585_873, 2020: 1_694_251},
    'QUEENS': {2000: 2_229_379, 2010: 2_230_722, 2020: 2_405_464},
    'STATEN ISLAND': {2000: 443_728, 2010: 468_730, 2020: 495_747},
}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f'{name} must be an integer year, got {raw!r}') from e


# The historic dataset runs through 2023, three years past the last census
TARGET_MAX_YEAR: int = _env_int('SHOOTINGS_TARGET_MAX_YEAR', 2023)

RAW_DATA_PATH = Path(os.environ.get('SHOOTINGS_RAW_DATA_PATH', 'data/raw/NYPD_Shooting_Incident_Data__Historic_.csv'))
OUTPUT_PATH = Path(os.environ.get('SHOOTINGS_OUTPUT_PATH', 'data/gold'))

# Events per this many residents
RATE_PER = 1_000_000

TOP_N_PRECINCTS = 5
