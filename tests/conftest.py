import os
import sys
import tempfile
from pathlib import Path

import pandas as pd
import pytest

# Keep test runs from writing into ./logs
os.environ.setdefault('SHOOTINGS_LOG_DIR', tempfile.mkdtemp(prefix='shootings-logs-'))

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shooting_incidents.population import RegionPopulationTable, build_population_series


@pytest.fixture
def small_table():
    """Two regions, 2000-2023."""
    return RegionPopulationTable.from_series({
        'BRONX': build_population_series({2000: 100, 2010: 200, 2020: 400}, 2023, 'BRONX'),
        'QUEENS': build_population_series({2000: 1_000_000, 2010: 1_000_000, 2020: 1_000_000}, 2023, 'QUEENS'),
    })


@pytest.fixture
def make_incidents():
    def _make(rows):
        df = pd.DataFrame(rows, columns=['incident_key', 'year', 'region', 'precinct', 'hour', 'day_of_week', 'month'])
        return df
    return _make
