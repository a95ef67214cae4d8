"""
Stage one remote CSV for the demo project and print a few rows.
"""

from __future__ import annotations

import csv
import sys
from pathlib import Path

from remotestage import StagingContext, load_settings, resolve_local_path, setup_logging_from_config


def main() -> None:
    project_dir = Path(__file__).parent
    settings = load_settings(project_dir / "settings.yaml")
    setup_logging_from_config(settings.data, project_dir=project_dir)

    remote_path = sys.argv[1] if len(sys.argv) > 1 else "/exports/data.csv"
    with StagingContext(settings, storage_root=project_dir / ".remotestage") as ctx:
        local_path = resolve_local_path({"path": remote_path, "settings": "default"}, context=ctx)
        with open(local_path, newline="") as f:
            for i, row in enumerate(csv.reader(f)):
                print(row)
                if i >= 4:
                    break


if __name__ == "__main__":
    main()
