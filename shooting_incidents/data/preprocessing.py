import pandas as pd
from pathlib import Path
from typing import Dict, List, Union

from shooting_incidents.utils.boroughs import normalize_borough
from shooting_incidents.utils.exceptions import DataProcessingError
from shooting_incidents.utils.logger_config import setup_logger

logger = setup_logger(__name__)


# Raw NYPD column names -> standardized names used across the pipeline
COLUMN_MAPPING: Dict[str, str] = {
    'INCIDENT_KEY': 'incident_key',
    'OCCUR_DATE': 'occur_date',
    'OCCUR_TIME': 'occur_time',
    'BORO': 'region',
    'LOC_OF_OCCUR_DESC': 'location_of_occurrence',
    'PRECINCT': 'precinct',
    'JURISDICTION_CODE': 'jurisdiction_code',
    'LOC_CLASSFCTN_DESC': 'location_classification',
    'LOCATION_DESC': 'location_description',
    'STATISTICAL_MURDER_FLAG': 'statistical_murder_flag',
    'PERP_AGE_GROUP': 'perp_age_group',
    'PERP_SEX': 'perp_sex',
    'PERP_RACE': 'perp_race',
    'VIC_AGE_GROUP': 'vic_age_group',
    'VIC_SEX': 'vic_sex',
    'VIC_RACE': 'vic_race',
    'Latitude': 'latitude',
    'Longitude': 'longitude',
}

REQUIRED_COLUMNS: List[str] = ['INCIDENT_KEY', 'OCCUR_DATE', 'OCCUR_TIME', 'BORO', 'PRECINCT']

# Passed through untouched apart from null normalisation
DEMOGRAPHIC_COLUMNS: List[str] = [
    'perp_age_group', 'perp_sex', 'perp_race',
    'vic_age_group', 'vic_sex', 'vic_race',
]

# The published CSV spells missing values in several ways
NULL_MARKERS = ['(null)', '(NULL)', 'NULL', 'null', '']

CALENDAR_COLUMNS: List[str] = ['year', 'month', 'day', 'hour', 'day_of_week', 'weekday']


class IncidentDataProcessor:
    """
    Turns the raw NYPD Shooting Incident CSV into incident records.

    This class handles:
    - Loading the raw CSV
    - Standardizing column names and borough spellings
    - Parsing occurrence date/time and deriving calendar fields once

    Attributes:
    date_format (str): strftime format of OCCUR_DATE. Defaults to '%m/%d/%Y'
    time_format (str): strftime format of OCCUR_TIME. Defaults to '%H:%M:%S'
    dedupe (bool): Keep one row per incident key. The source has one row per victim
    """

    def __init__(self, date_format:str='%m/%d/%Y', time_format:str='%H:%M:%S', dedupe:bool=True) -> None:
        self.date_format = date_format
        self.time_format = time_format
        self.dedupe = dedupe

    def load_raw(self, path:Union[str, Path]) -> pd.DataFrame:
        """
        Loads the raw shooting incident CSV

        Args:
        path (str | Path): Location of the CSV

        Returns:
        pd.DataFrame: Every column read as a string

        Raises:
        DataProcessingError: File could not be read or required columns are missing
        """
        try:
            logger.info(f'Loading raw incidents from {path}')
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except Exception as e:
            logger.error(f'Error in Loading {path} : {str(e)}')
            raise DataProcessingError(f'Error in Loading {path} : {str(e)}') from e

        self._check_columns(df)
        logger.debug(f'Sucessfully loaded {len(df)} raw rows')
        return df

    def _check_columns(self, df:pd.DataFrame) -> None:
        missing_cols = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing_cols:
            raise DataProcessingError(f'Missing expected columns {missing_cols}. Are you sure you have the right Dataset?')

    def _clean_data(self, df:pd.DataFrame) -> pd.DataFrame:
        df = df.rename(columns=COLUMN_MAPPING)
        keep = [c for c in COLUMN_MAPPING.values() if c in df.columns]
        df = df[keep].copy()

        for col in df.columns:
            if pd.api.types.is_string_dtype(df[col]):
                df[col] = df[col].str.strip().replace(NULL_MARKERS, pd.NA)

        df['region'] = df['region'].map(normalize_borough, na_action='ignore')
        df['precinct'] = pd.to_numeric(df['precinct'], errors='coerce').astype('Int64')

        if 'statistical_murder_flag' in df.columns:
            df['statistical_murder_flag'] = df['statistical_murder_flag'].str.lower().map({'true': True, 'false': False}).astype('boolean')
        for col in ('latitude', 'longitude'):
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors='coerce')
        for col in DEMOGRAPHIC_COLUMNS:
            if col in df.columns:
                df[col] = df[col].astype('string')

        if self.dedupe:
            before = len(df)
            df = df.drop_duplicates(subset=['incident_key'], keep='first')
            logger.debug(f'Dropped {before - len(df)} additional victim rows')
        return df

    def _engineer_features(self, df:pd.DataFrame) -> pd.DataFrame:
        occurred = pd.to_datetime(
            df['occur_date'] + ' ' + df['occur_time'].fillna('00:00:00'),
            format=f'{self.date_format} {self.time_format}',
            errors='coerce',
        )

        invalid = occurred.isna()
        if invalid.any():
            logger.warning(f'Removed {int(invalid.sum())} records with invalid occurrence date/time')
        df = df.loc[~invalid].copy()
        occurred = occurred.loc[~invalid]

        df['occur_date'] = occurred.dt.normalize()
        df['occur_time'] = occurred.dt.time
        df['year'] = occurred.dt.year.astype('int64')
        df['month'] = occurred.dt.month.astype('int64')
        df['day'] = occurred.dt.day.astype('int64')
        df['hour'] = occurred.dt.hour.astype('int64')
        df['day_of_week'] = occurred.dt.dayofweek.astype('int64')
        df['weekday'] = occurred.dt.day_name()
        return df

    def prepare(self, raw:pd.DataFrame) -> pd.DataFrame:
        """
        Cleans raw rows and derives the calendar fields.

        Args:
        raw (pd.DataFrame): Output of load_raw (or any frame with the raw column names)

        Returns:
        pd.DataFrame: One row per incident with year/month/day/hour/day_of_week/weekday

        Raises:
        DataProcessingError: Required columns are missing or preparation failed
        """
        self._check_columns(raw)
        try:
            logger.info(f'Preparing {len(raw)} raw rows')
            df = self._clean_data(raw)
            df = self._engineer_features(df)
        except Exception as e:
            logger.error(f'Error in Preparing incidents : {str(e)}')
            raise DataProcessingError(f'Error in Preparing incidents : {str(e)}') from e

        logger.info(f'Prepared {len(df)} incident records')
        return df.reset_index(drop=True)

    def process(self, path:Union[str, Path]) -> pd.DataFrame:
        return self.prepare(self.load_raw(path))
