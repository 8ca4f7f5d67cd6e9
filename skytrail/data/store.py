"""Loading trajectories from external sources.

Each source locator names one document. Remote URLs and local ``.json`` files
hold either a single object or a list of objects of the form::

    {"name": "ab1fbb",
     "path": [[-91.2, 29.9, 1250.0], ...],
     "timestamps": [0, 12.5, ...]}

Local ``.parquet`` and ``.csv`` tables hold one row per point with columns
``name, longitude, latitude, altitude, timestamp``.

Loading is all-or-nothing: the first unreachable, malformed or invalid
source aborts the load.

Example:
    >>> from skytrail.data import TrajectoryStore
    >>> store = TrajectoryStore(timeout=10.0)
    >>> trajectories = store.load([
    ...     "https://example.org/trace_ab1fbb.json",
    ...     "data/trace_abca00.parquet",
    ... ])
"""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np
import polars as pl
import requests
from beartype import beartype

from skytrail.data.trajectory import Trajectory
from skytrail.errors import LoadError, ValidationError

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ("name", "longitude", "latitude", "altitude", "timestamp")

# =============================================================================
# Document Parsing
# =============================================================================


@beartype
def parse_document(document: Any, source: str = "<document>") -> list[Trajectory]:
    """Build trajectories from a decoded JSON document.

    Args:
        document: An object or list of objects with name/path/timestamps
        source: Locator used in error messages

    Returns:
        Trajectories in document order

    Raises:
        LoadError: If the document does not have the expected structure
        ValidationError: If a trajectory violates the data invariants
    """
    records = document if isinstance(document, list) else [document]
    if not records:
        raise LoadError(source, "document contains no trajectories")

    trajectories = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise LoadError(source, f"entry {i} is {type(record).__name__}, expected object")
        missing = [k for k in ("path", "timestamps") if k not in record]
        if missing:
            raise LoadError(source, f"entry {i} is missing {', '.join(missing)}")
        if not isinstance(record["path"], list) or not isinstance(record["timestamps"], list):
            raise LoadError(source, f"entry {i}: path and timestamps must be lists")

        name = str(record.get("name", f"{Path(source).stem}_{i}"))
        trajectories.append(Trajectory.from_lists(name, record["path"], record["timestamps"]))
    return trajectories


@beartype
def parse_table(table: pl.DataFrame, source: str = "<table>") -> list[Trajectory]:
    """Build trajectories from a point table, one trajectory per ``name``.

    Rows keep their file order within each trajectory; trajectories are
    returned in order of first appearance.
    """
    missing = [c for c in TABLE_COLUMNS if c not in table.columns]
    if missing:
        raise LoadError(source, f"table is missing columns {missing}")
    if table.height == 0:
        raise LoadError(source, "table contains no rows")

    try:
        table = table.select(
            pl.col("name").cast(pl.Utf8),
            pl.col("longitude", "latitude", "altitude", "timestamp").cast(pl.Float64),
        )
    except pl.exceptions.PolarsError as err:
        raise LoadError(source, f"non-numeric table data ({err})") from err

    trajectories = []
    for name in table.get_column("name").unique(maintain_order=True).to_list():
        rows = table.filter(pl.col("name") == name)
        positions = rows.select("longitude", "latitude", "altitude").to_numpy().astype(np.float64)
        timestamps = rows.get_column("timestamp").to_numpy().astype(np.float64)
        trajectories.append(Trajectory(name=str(name), positions=positions, timestamps=timestamps))
    return trajectories


# =============================================================================
# Store
# =============================================================================


@beartype
class TrajectoryStore:
    """Fetches and validates trajectory documents.

    Holds no cache; each ``load`` call reads its sources again.
    """

    def __init__(self, timeout: float = 30.0, session: requests.Session | None = None) -> None:
        """Initialize the store.

        Args:
            timeout: HTTP timeout for remote sources [s]
            session: Optional requests session (connection reuse, test doubles)
        """
        self.timeout = timeout
        self._session = session or requests.Session()

    def load(self, sources: Sequence[str | Path]) -> list[Trajectory]:
        """Load every source, in order.

        Args:
            sources: URLs or local file paths

        Returns:
            All trajectories from all sources, in source order

        Raises:
            LoadError: A source is unreachable or malformed
            ValidationError: A trajectory violates the data invariants
        """
        trajectories: list[Trajectory] = []
        for source in sources:
            try:
                loaded = self.load_one(source)
            except (LoadError, ValidationError) as err:
                logger.error("Aborting load at %s: %s", source, err)
                raise
            logger.info("Loaded %d trajectories from %s", len(loaded), source)
            trajectories.extend(loaded)
        return trajectories

    def load_one(self, source: str | Path) -> list[Trajectory]:
        """Load a single source."""
        locator = str(source)
        if locator.startswith(("http://", "https://")):
            return parse_document(self._fetch_json(locator), locator)

        path = Path(source)
        if not path.exists():
            raise LoadError(locator, "file not found")

        suffix = path.suffix.lower()
        if suffix == ".parquet":
            return parse_table(self._read_table(path, pl.read_parquet), locator)
        if suffix == ".csv":
            return parse_table(self._read_table(path, pl.read_csv), locator)

        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as err:
            raise LoadError(locator, f"unreadable JSON ({err})") from err
        return parse_document(document, locator)

    def _fetch_json(self, url: str) -> Any:
        logger.debug("GET %s (timeout %.1fs)", url, self.timeout)
        try:
            resp = self._session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.JSONDecodeError as err:
            raise LoadError(url, f"response is not JSON ({err})") from err
        except requests.RequestException as err:
            raise LoadError(url, str(err)) from err

    @staticmethod
    def _read_table(path: Path, reader: Any) -> pl.DataFrame:
        try:
            return reader(path)
        except (OSError, pl.exceptions.PolarsError) as err:
            raise LoadError(str(path), f"unreadable table ({err})") from err
