import json
from dataclasses import asdict
from pathlib import Path

import dagster as dg

from literary_topics.models import RawTables


class RawTablesIOManager(dg.ConfigurableIOManager):
    """I/O Manager that stores the raw source tables as a local JSON file.

    Each asset is stored as {storage_dir}/<asset_name>.json, so the exact
    input of a load can be inspected or replayed later.
    Defaults to XDG_DATA_HOME/literary-topics/raw.
    """

    storage_dir: str

    def _get_path(self, context: dg.OutputContext | dg.InputContext) -> Path:
        """Get file path for an asset."""
        name = "_".join(context.asset_key.path)
        base_path = Path(self.storage_dir)
        base_path.mkdir(parents=True, exist_ok=True)
        return base_path / f"{name}.json"

    def handle_output(self, context: dg.OutputContext, obj: RawTables):
        """Save raw tables to a JSON file."""
        path = self._get_path(context)
        path.write_text(json.dumps(asdict(obj), ensure_ascii=False), encoding="utf-8")
        context.log.info(f"Stored raw tables at {path}")

    def load_input(self, context: dg.InputContext) -> RawTables:
        """Load raw tables from a JSON file."""
        path = self._get_path(context)

        if not path.exists():
            raise FileNotFoundError(
                f"Raw tables not found: {path}. "
                "Materialize the source_tables asset first."
            )

        context.log.info(f"Loaded raw tables from {path}")
        data = json.loads(path.read_text(encoding="utf-8"))
        return RawTables(**data)
