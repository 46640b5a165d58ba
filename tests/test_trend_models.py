import numpy as np
import pandas as pd
import pytest

from stats.trend_models import fit_linear_trend, fit_region_trends, project


@pytest.fixture
def buckets():
    years = list(range(2010, 2016))
    return pd.DataFrame({
        'year': years * 2,
        'region': ['BRONX'] * 6 + ['QUEENS'] * 6,
        'rate': [10 + 2 * (y - 2010) for y in years] + [50 - (y - 2010) for y in years],
        'count': [1] * 12,
    })


class TestTrendModels:
    def test_exact_line(self, buckets):
        fit = fit_linear_trend(buckets[buckets['region'] == 'BRONX'], 'year', 'rate')
        assert fit.slope == pytest.approx(2.0)
        assert fit.r_squared == pytest.approx(1.0)
        assert fit.n == 6

    def test_region_trends(self, buckets):
        trends = fit_region_trends(buckets, value='rate').set_index('region')
        assert trends.loc['BRONX', 'slope'] == pytest.approx(2.0)
        assert trends.loc['QUEENS', 'slope'] == pytest.approx(-1.0)

    def test_region_with_single_year_skipped(self, buckets):
        single = pd.DataFrame({'year': [2010], 'region': ['MANHATTAN'], 'rate': [5.0], 'count': [1]})
        trends = fit_region_trends(pd.concat([buckets, single]), value='rate')
        assert 'MANHATTAN' not in set(trends['region'])

    def test_project(self, buckets):
        fit = fit_linear_trend(buckets[buckets['region'] == 'BRONX'], 'year', 'rate')
        projected = project(fit, [2016, 2017])
        assert np.allclose(projected.to_numpy(), [22.0, 24.0])
        assert list(projected.index) == [2016, 2017]

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            fit_linear_trend(pd.DataFrame({'year': [2010], 'rate': [1.0]}))
