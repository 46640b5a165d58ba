import numpy as np
import pandas as pd
import pytest

from shooting_incidents.config import CENSUS_SNAPSHOTS
from shooting_incidents.population import (
    RegionPopulationTable,
    build_all_series,
    build_population_series,
    build_population_table,
)
from shooting_incidents.utils.boroughs import BOROUGHS
from shooting_incidents.utils.exceptions import ConfigError, PopulationLookupError

ANCHORS = {2000: 100, 2010: 200, 2020: 400}


class TestPopulationSeries:
    def test_known_values(self):
        series = build_population_series(ANCHORS, 2023, 'BRONX')
        assert series[2000] == pytest.approx(100)
        assert series[2005] == pytest.approx(150)
        assert series[2010] == pytest.approx(200)
        assert series[2015] == pytest.approx(300)
        assert series[2020] == pytest.approx(400)
        assert series[2023] == pytest.approx(460)

    def test_covers_every_year(self):
        series = build_population_series(ANCHORS, 2023, 'BRONX')
        assert list(series.index) == list(range(2000, 2024))
        assert series.name == 'BRONX'
        assert series.dtype == 'float64'

    def test_interpolation_between_anchors(self):
        series = build_population_series(ANCHORS, 2020, 'BRONX')
        first = series.loc[2001:2009]
        second = series.loc[2011:2019]
        assert ((first > 100) & (first < 200)).all()
        assert ((second > 200) & (second < 400)).all()

    def test_declining_population_stays_between_anchors(self):
        series = build_population_series({2000: 900, 2010: 600, 2020: 500}, 2020, 'QUEENS')
        assert ((series.loc[2001:2009] < 900) & (series.loc[2001:2009] > 600)).all()
        assert ((series.loc[2011:2019] < 600) & (series.loc[2011:2019] > 500)).all()

    def test_extrapolation_is_a_single_line(self):
        series = build_population_series(ANCHORS, 2035, 'BRONX')
        steps = series.loc[2020:].diff().dropna()
        assert np.allclose(steps, 20.0)

    def test_extrapolation_uses_last_decade_slope(self):
        # 2000->2020 average would give a 15/yr slope; the last decade is 20/yr
        series = build_population_series(ANCHORS, 2021, 'BRONX')
        assert series[2021] == pytest.approx(420)

    def test_extrapolation_may_go_negative(self):
        series = build_population_series({2000: 300, 2010: 200, 2020: 10}, 2023, 'BRONX')
        assert series[2023] == pytest.approx(-47)

    def test_target_before_last_anchor_truncates(self):
        series = build_population_series(ANCHORS, 2012, 'BRONX')
        assert series.index.max() == 2012
        assert series[2012] == pytest.approx(240)

    def test_target_before_first_anchor(self):
        with pytest.raises(ConfigError):
            build_population_series(ANCHORS, 1999, 'BRONX')

    @pytest.mark.parametrize('anchors', [
        {2010: 200, 2000: 100, 2020: 400},
        {2000: 100, 2020: 200, 2010: 400},
    ])
    def test_non_increasing_anchor_years(self, anchors):
        with pytest.raises(ConfigError):
            build_population_series(anchors, 2023, 'BRONX')

    def test_equal_anchor_years(self):
        with pytest.raises(ConfigError):
            build_population_series([(2000, 100), (2010, 200), (2010, 300)], 2023, 'BRONX')

    def test_anchor_pairs(self):
        series = build_population_series([(2000, 100), (2010, 200), (2020, 400)], 2023, 'BRONX')
        pd.testing.assert_series_equal(series, build_population_series(ANCHORS, 2023, 'BRONX'))

    @pytest.mark.parametrize('anchors', [
        {2000: 100, 2010: 200},
        {1990: 50, 2000: 100, 2010: 200, 2020: 400},
    ])
    def test_wrong_anchor_count(self, anchors):
        with pytest.raises(ConfigError):
            build_population_series(anchors, 2023, 'BRONX')

    def test_negative_population(self):
        with pytest.raises(ConfigError):
            build_population_series({2000: 100, 2010: -5, 2020: 400}, 2023, 'BRONX')

    def test_non_numeric_population(self):
        with pytest.raises(ConfigError):
            build_population_series({2000: '100', 2010: 200, 2020: 400}, 2023, 'BRONX')

    def test_non_integer_year(self):
        with pytest.raises(ConfigError):
            build_population_series({2000: 100, 2010.5: 200, 2020: 400}, 2023, 'BRONX')


class TestBuildAllSeries:
    def test_one_series_per_borough(self):
        series = build_all_series(CENSUS_SNAPSHOTS, 2023)
        assert sorted(series) == sorted(BOROUGHS)
        assert series['BROOKLYN'][2010] == pytest.approx(2_504_700)

    def test_unknown_region(self):
        with pytest.raises(ConfigError):
            build_all_series({'NEWARK': ANCHORS}, 2023)

    def test_empty_snapshots(self):
        with pytest.raises(ConfigError):
            build_all_series({}, 2023)

    def test_snapshot_years_must_be_census_years(self):
        with pytest.raises(ConfigError):
            build_all_series({'BRONX': {1990: 1, 2000: 2, 2010: 3}}, 2023)


class TestRegionPopulationTable:
    def test_one_row_per_year_region(self, small_table):
        frame = small_table.to_frame()
        assert len(frame) == 2 * 24
        assert not frame.duplicated(subset=['year', 'region']).any()
        assert list(frame.columns) == ['year', 'region', 'population']

    def test_round_trip_by_region(self):
        bronx = build_population_series(ANCHORS, 2023, 'BRONX')
        queens = build_population_series({2000: 5, 2010: 6, 2020: 7}, 2023, 'QUEENS')
        table = RegionPopulationTable.from_series({'BRONX': bronx, 'QUEENS': queens})
        pd.testing.assert_series_equal(table.series_for('BRONX'), bronx)
        pd.testing.assert_series_equal(table.series_for('QUEENS'), queens)

    def test_lookup(self, small_table):
        assert small_table.lookup(2015, 'BRONX') == pytest.approx(300)
        with pytest.raises(PopulationLookupError):
            small_table.lookup(1999, 'BRONX')
        with pytest.raises(LookupError):
            small_table.lookup(2015, 'NEWARK')

    def test_regions_and_years(self, small_table):
        assert small_table.regions == ('BRONX', 'QUEENS')
        assert small_table.years == (2000, 2023)

    def test_read_only(self, small_table):
        frame = small_table.to_frame()
        frame['population'] = 0.0
        assert small_table.lookup(2000, 'BRONX') == pytest.approx(100)

    def test_rejects_duplicates(self):
        frame = pd.DataFrame({'year': [2000, 2000], 'region': ['BRONX', 'BRONX'], 'population': [1.0, 2.0]})
        with pytest.raises(ConfigError):
            RegionPopulationTable(frame)

    def test_rejects_gaps(self):
        frame = pd.DataFrame({'year': [2000, 2002], 'region': ['BRONX', 'BRONX'], 'population': [1.0, 2.0]})
        with pytest.raises(ConfigError):
            RegionPopulationTable(frame)

    def test_rejects_missing_population(self):
        frame = pd.DataFrame({'year': [2010, 2011], 'region': ['BRONX', 'BRONX'], 'population': [np.nan, 2.0]})
        with pytest.raises(ConfigError):
            RegionPopulationTable(frame)

    def test_build_population_table_defaults(self):
        table = build_population_table()
        assert table.regions == tuple(sorted(BOROUGHS))
        assert table.lookup(2020, 'STATEN ISLAND') == pytest.approx(495_747)
