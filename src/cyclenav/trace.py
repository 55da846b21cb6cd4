# trace.py
# Replays a recorded ride from CSV as a stream of Fix objects.

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional

import pandas as pd

from .models import Fix

logger = logging.getLogger(__name__)


def _optional(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


class FixTrace:
    """
    Reads a CSV of GPS fixes chunk by chunk.

    Rows with missing coordinates are still yielded (with lat/lon set to
    None); dropping them is the navigation session's decision. Optional
    columns (speed, heading, accuracy) may be absent entirely.
    """

    def __init__(
        self,
        filepath: str | Path,
        sep: str = ",",
        col_mapping: Optional[Dict[str, str]] = None,
        chunksize: int = 1000,
    ):
        self.filepath = Path(filepath)
        self.sep = sep
        self.chunksize = chunksize
        self.mapping = col_mapping or {
            "lat": "lat",
            "lon": "lon",
            "timestamp": "timestamp",
            "speed": "speed",
            "heading": "heading",
            "accuracy": "accuracy",
        }

    def stream(self) -> Iterator[Fix]:
        """
        Yields fixes one by one in file order.

        Raises:
            ValueError: If the latitude, longitude or timestamp column is missing.
        """
        header = pd.read_csv(self.filepath, nrows=0, sep=self.sep)
        for required in ("lat", "lon", "timestamp"):
            if self.mapping[required] not in header.columns:
                raise ValueError(f"Trace must contain a '{self.mapping[required]}' column.")
        optional = {
            key: self.mapping[key]
            for key in ("speed", "heading", "accuracy")
            if self.mapping.get(key) in header.columns
        }

        count = 0
        with pd.read_csv(self.filepath, chunksize=self.chunksize, sep=self.sep) as reader:
            for chunk in reader:
                chunk[self.mapping["timestamp"]] = pd.to_datetime(chunk[self.mapping["timestamp"]])
                for _, row in chunk.iterrows():
                    count += 1
                    yield Fix(
                        lat=_optional(row[self.mapping["lat"]]),
                        lon=_optional(row[self.mapping["lon"]]),
                        timestamp=row[self.mapping["timestamp"]].to_pydatetime(),
                        speed=_optional(row[optional["speed"]]) if "speed" in optional else None,
                        heading=_optional(row[optional["heading"]]) if "heading" in optional else None,
                        accuracy=_optional(row[optional["accuracy"]]) if "accuracy" in optional else None,
                    )
        logger.info(f"Replayed {count} fixes from {self.filepath}.")
