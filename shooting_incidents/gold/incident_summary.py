import sys
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from shooting_incidents.aggregations import aggregate_standard, bottom_n, top_n
from shooting_incidents.config import OUTPUT_PATH, RAW_DATA_PATH, TARGET_MAX_YEAR, TOP_N_PRECINCTS
from shooting_incidents.data.preprocessing import IncidentDataProcessor
from shooting_incidents.enrichment import EnrichmentResult, enrich_incidents
from shooting_incidents.population import RegionPopulationTable, build_population_table
from shooting_incidents.utils.exceptions import (
    AggregationInconsistencyError,
    ConfigError,
    DataProcessingError,
    PopulationLookupError,
)
from shooting_incidents.utils.logger_config import setup_logger
from stats.trend_models import fit_region_trends

logger = setup_logger(__name__)

# Errors that already describe the failure precisely and are re-raised untouched
_PASSTHROUGH_ERRORS = (ConfigError, PopulationLookupError, AggregationInconsistencyError)


class IncidentSummaryBuilder:
    """Builder for the enriched shooting dataset and its aggregate tables.

    Design:
        - Orchestrates an ordered set of steps (load → prepare → population
          table → enrich → aggregate → trends → write).
        - Population table problems are configuration errors and stop the run
          before any incident is touched.
        - Incidents without a population entry are reported and written to
          `unmatched_incidents`; with `strict=True` they abort the run.

    Public API:
        - build(): runs the full pipeline and writes every output.
    """
    def __init__(
        self,
        raw_data_path: Union[str, Path] = RAW_DATA_PATH,
        output_path: Union[str, Path] = OUTPUT_PATH,
        target_max_year: int = TARGET_MAX_YEAR,
        strict: bool = False,
        processor: Optional[IncidentDataProcessor] = None,
    ):
        """
        Initialize the IncidentSummaryBuilder.

        Args:
            raw_data_path: NYPD shooting incident CSV
            output_path: Directory where the enriched dataset and aggregates are saved
            target_max_year: Last year the population series is extended to
            strict: Abort when any incident has no population entry
            processor: Ingestion step; defaults to IncidentDataProcessor()
        """
        self.raw_data_path = Path(raw_data_path)
        self.output_path = Path(output_path)
        self.target_max_year = target_max_year
        self.strict = strict
        self.processor = processor or IncidentDataProcessor()

        logger.info(f"Initialized IncidentSummaryBuilder with output path: {self.output_path}")

    def _load_incidents(self) -> pd.DataFrame:
        return self.processor.process(self.raw_data_path)

    def _build_population(self) -> RegionPopulationTable:
        return build_population_table(target_max_year=self.target_max_year)

    def _enrich(self, incidents: pd.DataFrame, table: RegionPopulationTable) -> EnrichmentResult:
        result = enrich_incidents(incidents, table)
        if not result.ok:
            for row in result.failed_keys.itertuples(index=False):
                logger.warning(
                    f"No population for year={row.year} region={row.region} "
                    f"({row.failure_reason}): {row.n_records} incidents"
                )
            if self.strict:
                result.raise_for_unmatched()
        return result

    def _aggregate(self, enriched: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        tables = aggregate_standard(enriched)
        tables['precinct_top'] = top_n(tables['precinct'], TOP_N_PRECINCTS)
        tables['precinct_bottom'] = bottom_n(tables['precinct'], TOP_N_PRECINCTS)
        tables['region_trends'] = fit_region_trends(tables['year_region'], value='rate')
        return tables

    def _write(self, frame: pd.DataFrame, name: str, output_format: str) -> Path:
        frame = frame.copy()
        # datetime.time objects do not round-trip through parquet/csv consistently
        if 'occur_time' in frame.columns:
            frame['occur_time'] = frame['occur_time'].astype(str)
        if output_format == 'parquet':
            output_file = self.output_path / f"{name}.parquet"
            frame.to_parquet(output_file, index=False, engine='pyarrow')
        else:
            output_file = self.output_path / f"{name}.csv"
            frame.to_csv(output_file, index=False)
        logger.debug(f"Wrote {output_file} rows={len(frame)}")
        return output_file

    def build(self, output_format: str = 'parquet') -> Dict[str, Path]:
        """
        Execute the full pipeline.

        Args:
            output_format: Output format ('parquet' or 'csv')

        Returns:
            Mapping of output name to written file

        Raises:
            ConfigError: Census snapshots or target year are malformed
            PopulationLookupError: strict mode and some incidents had no population
            AggregationInconsistencyError: a (year, region) group had several populations
            DataProcessingError: Any other pipeline failure
        """
        output_format = output_format.lower()
        if output_format not in ('parquet', 'csv'):
            raise ConfigError(f"Unsupported output format: {output_format}")

        try:
            logger.info("Starting IncidentSummaryBuilder pipeline...")

            # Step 1: Population table, before any incident is read
            table = self._build_population()

            # Step 2: Load and prepare incidents
            incidents = self._load_incidents()

            # Step 3: Join population onto incidents
            result = self._enrich(incidents, table)

            # Step 4: Aggregates and trends
            tables = self._aggregate(result.enriched)

            # Step 5: Save outputs
            self.output_path.mkdir(parents=True, exist_ok=True)
            outputs = {
                'population': self._write(table.to_frame(), 'population_by_year_region', output_format),
                'enriched': self._write(result.enriched, 'enriched_incidents', output_format),
                'unmatched': self._write(result.unmatched, 'unmatched_incidents', output_format),
            }
            for name, frame in tables.items():
                outputs[name] = self._write(frame, f"incidents_by_{name}", output_format)

            logger.info(f"Successfully wrote {len(outputs)} outputs to {self.output_path}")
            logger.info("Dataset Summary:")
            logger.info(f"  Incidents: {len(incidents)} ({len(result.unmatched)} without population)")
            if not result.enriched.empty:
                logger.info(f"  Years: {result.enriched['year'].min()} to {result.enriched['year'].max()}")
            return outputs

        except _PASSTHROUGH_ERRORS as e:
            logger.error(f"Pipeline stopped: {str(e)}")
            raise
        except DataProcessingError:
            raise
        except Exception as e:
            logger.error(f"Pipeline execution failed: {str(e)}")
            raise DataProcessingError(f"Pipeline execution failed: {str(e)}") from e


def main():
    """
    CLI entry point for building the enriched dataset and aggregates.

    Important:
    Run as python -m shooting_incidents.gold.incident_summary [csv_path] [output_dir]
    """
    raw_data_path = sys.argv[1] if len(sys.argv) > 1 else RAW_DATA_PATH
    output_path = sys.argv[2] if len(sys.argv) > 2 else OUTPUT_PATH
    try:
        builder = IncidentSummaryBuilder(raw_data_path=raw_data_path, output_path=output_path)
        outputs = builder.build()
        print(f"✅ Wrote {len(outputs)} outputs to {builder.output_path}")
    except Exception as e:
        logger.error(f"Failed to build incident summary: {str(e)}")
        print(f"❌ Failed to build incident summary: {str(e)}")
        raise


if __name__ == '__main__':
    main()
