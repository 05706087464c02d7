# ingest_main.py
"""
Standalone planet ingestion.

Re-runs the habitable planet load against the configured store without
starting the HTTP server. Same code path the server runs at startup:

    python ingest_main.py [path/to/kepler_data.csv]

Exit status is 0 on success and 1 when the dataset or the store fails;
in that case the previously loaded planet set is left as it was.
"""

import os
import sys
import logging

from rich.console import Console

from classes.backend import Backend
from classes.errors import IngestionError, StoreError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("mission_control")

console = Console()


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    csv_path = argv[0] if argv else None

    backend = Backend(csv_path=csv_path)
    console.print(f"Ingesting planets from [cyan]{backend.planets.csv_path}[/cyan] ...")
    try:
        count = backend.startup()
    except (IngestionError, StoreError) as e:
        logger.error("Planet ingestion failed: %s", e)
        console.print(f"[red]Ingestion failed:[/red] {e}")
        return 1

    console.print(f"[green]Planets loaded:[/green] {count} habitable planets")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
