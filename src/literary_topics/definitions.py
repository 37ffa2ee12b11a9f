from pathlib import Path

from dagster import AssetSelection, Definitions, define_asset_job, load_from_defs_folder

from literary_topics.config import DB_PATH, RAW_DIR
from literary_topics.defs.io_managers import RawTablesIOManager
from literary_topics.defs.resources import AnalyticsDB

# Reload the exports and rebuild every derived dataset in one run
refresh_topic_datasets = define_asset_job(
    "refresh_topic_datasets", selection=AssetSelection.all()
)


def _load_definitions() -> Definitions:
    """Load the topic assets with the raw table snapshot and analytics database."""
    loaded = load_from_defs_folder(path_within_project=Path(__file__).parent)

    return Definitions(
        assets=loaded.assets,
        asset_checks=loaded.asset_checks,
        schedules=loaded.schedules,
        sensors=loaded.sensors,
        jobs=[*(loaded.jobs or []), refresh_topic_datasets],
        resources={
            **(loaded.resources or {}),
            "raw_tables_io": RawTablesIOManager(storage_dir=str(RAW_DIR)),
            "analytics_db": AnalyticsDB(db_path=str(DB_PATH)),
        },
    )


defs = _load_definitions()
