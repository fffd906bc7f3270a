"""HTTP client for a distance matrix service that accepts address text."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Sequence

import httpx
import numpy as np

from ...config import settings
from ...models.domain import LegEstimate, LocationRef
from .provider import DistanceMatrix, DistanceProvider, default_leg

MILES_PER_METER = 0.000621371

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MatrixTile:
    """One request worth of the full matrix, addressed by its offsets."""

    row_start: int
    row_end: int
    col_start: int
    col_end: int

    @property
    def shape(self) -> tuple[int, int]:
        return (self.row_end - self.row_start, self.col_end - self.col_start)


def plan_tiles(
    origin_count: int,
    destination_count: int,
    *,
    max_origins: int,
    max_destinations: int,
    max_elements: int,
) -> list[MatrixTile]:
    """Cover an origin x destination matrix with tiles that respect the request limits."""
    rows_per_tile = max(1, min(max_origins, max_elements, origin_count or 1))
    cols_per_tile = max(1, min(max_destinations, max_elements // rows_per_tile))
    tiles: list[MatrixTile] = []
    for row_start in range(0, origin_count, rows_per_tile):
        row_end = min(row_start + rows_per_tile, origin_count)
        for col_start in range(0, destination_count, cols_per_tile):
            col_end = min(col_start + cols_per_tile, destination_count)
            tiles.append(MatrixTile(row_start, row_end, col_start, col_end))
    return tiles


class DistanceMatrixClient(DistanceProvider):
    name = "distance_matrix_api"
    exact = True

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_origins_per_request: int | None = None,
        max_destinations_per_request: int | None = None,
        max_elements_per_request: int | None = None,
        max_parallel_requests: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.maps_api_key
        if not self.api_key:
            raise ValueError("Distance matrix API key is not configured.")
        self.base_url = base_url or settings.maps_base_url
        self.timeout = timeout if timeout is not None else settings.maps_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.maps_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.maps_backoff_seconds
        self.max_origins_per_request = max_origins_per_request or settings.maps_max_origins_per_request
        self.max_destinations_per_request = (
            max_destinations_per_request or settings.maps_max_destinations_per_request
        )
        self.max_elements_per_request = max_elements_per_request or settings.maps_max_elements_per_request
        self.max_parallel_requests = max_parallel_requests or settings.maps_max_parallel_requests
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        """Each tile request gets its own client so worker threads never share one."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    def _request(self, origins: Sequence[LocationRef], destinations: Sequence[LocationRef]) -> dict:
        params = {
            "origins": "|".join(origins),
            "destinations": "|".join(destinations),
            "units": "imperial",
            "mode": "driving",
            "key": self.api_key,
        }
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(self.base_url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    status = data.get("status", "OK")
                    if status != "OK":
                        raise ValueError(f"Distance matrix request failed: {status} {data.get('error_message', '')}".strip())
                    if "rows" not in data:
                        raise ValueError("Distance matrix response missing rows.")
                    return data
                except httpx.HTTPStatusError as exc:
                    # 4xx other than rate limiting will not get better on retry
                    if exc.response.status_code < 500 and exc.response.status_code != 429:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Distance matrix request timed out after {self.max_retries} retries: {exc}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Distance matrix timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to distance matrix service at {self.base_url}: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Distance matrix network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                    time.sleep(wait_time)
        finally:
            client.close()

    def _process_tile(
        self,
        tile: MatrixTile,
        origins: Sequence[LocationRef],
        destinations: Sequence[LocationRef],
    ) -> tuple[MatrixTile, dict | None]:
        try:
            result = self._request(
                origins[tile.row_start : tile.row_end],
                destinations[tile.col_start : tile.col_end],
            )
            return tile, result
        except Exception as exc:
            logger.warning(
                f"Failed to get distance matrix for tile [{tile.row_start}:{tile.row_end}] x "
                f"[{tile.col_start}:{tile.col_end}]: {exc}"
            )
            return tile, None

    def _write_tile(self, matrix: DistanceMatrix, tile: MatrixTile, result: dict) -> int:
        """Copy a tile response into the full matrix; returns the number of cells left at default."""
        rows = result.get("rows") or []
        expected_rows, expected_cols = tile.shape
        if len(rows) != expected_rows or any(len(row.get("elements") or []) != expected_cols for row in rows):
            logger.warning(
                f"Malformed tile [{tile.row_start}:{tile.row_end}] x [{tile.col_start}:{tile.col_end}]: "
                f"expected {expected_rows}x{expected_cols} elements"
            )
            return expected_rows * expected_cols

        distances = np.full(tile.shape, np.nan)
        durations = np.full(tile.shape, np.nan)
        for local_row, row in enumerate(rows):
            for local_col, element in enumerate(row["elements"]):
                if element.get("status") != "OK":
                    continue
                try:
                    distances[local_row, local_col] = element["distance"]["value"] * MILES_PER_METER
                    durations[local_row, local_col] = element["duration"]["value"] / 60.0
                except (KeyError, TypeError):
                    distances[local_row, local_col] = np.nan

        valid = ~(np.isnan(distances) | np.isnan(durations))
        block = (slice(tile.row_start, tile.row_end), slice(tile.col_start, tile.col_end))
        matrix.distances[block] = np.where(valid, distances, matrix.distances[block])
        matrix.durations[block] = np.where(valid, durations, matrix.durations[block])
        matrix.degraded[block] = ~valid
        return int((~valid).sum())

    def estimate_matrix(
        self,
        origins: Sequence[LocationRef],
        destinations: Sequence[LocationRef],
    ) -> DistanceMatrix:
        """Distance/duration matrix with automatic tiling and parallel requests.

        Cells that could not be computed hold the default leg value and are
        marked in ``matrix.degraded``; this method never raises for
        service failures.
        """
        matrix = DistanceMatrix.filled(len(origins), len(destinations), default_leg())
        if not origins or not destinations:
            return matrix

        tiles = plan_tiles(
            len(origins),
            len(destinations),
            max_origins=self.max_origins_per_request,
            max_destinations=self.max_destinations_per_request,
            max_elements=self.max_elements_per_request,
        )
        start_time = time.time()
        if len(tiles) > 1:
            logger.info(
                f"Tiling distance matrix request: {len(origins)}x{len(destinations)} into {len(tiles)} requests "
                f"(parallel: {self.max_parallel_requests})"
            )

        failed_tiles = 0
        defaulted_cells = 0
        with ThreadPoolExecutor(max_workers=self.max_parallel_requests) as executor:
            futures = [executor.submit(self._process_tile, tile, origins, destinations) for tile in tiles]
            for future in as_completed(futures):
                tile, result = future.result()
                if result is None:
                    failed_tiles += 1
                    defaulted_cells += tile.shape[0] * tile.shape[1]
                    continue
                defaulted_cells += self._write_tile(matrix, tile, result)

        elapsed = time.time() - start_time
        if failed_tiles == len(tiles):
            logger.error(
                f"All {len(tiles)} distance matrix requests failed; every leg uses the default "
                f"({settings.default_leg_miles} mi / {settings.default_leg_minutes} min)"
            )
        elif defaulted_cells:
            logger.warning(
                f"Partial failure: {failed_tiles}/{len(tiles)} tiles failed, "
                f"{defaulted_cells} cells use the default leg. Elapsed time: {elapsed:.2f}s"
            )
        else:
            logger.info(f"Completed distance matrix: {len(tiles)} requests in {elapsed:.2f}s")
        return matrix

    def estimate(self, origin: LocationRef, destination: LocationRef) -> LegEstimate:
        return self.estimate_matrix([origin], [destination]).cell(0, 0)


def check_health(api_key: str | None = None, transport: httpx.BaseTransport | None = None) -> bool:
    """Check the distance matrix service with a single-element request."""
    key = api_key or settings.maps_api_key
    if not key:
        return False
    try:
        client = DistanceMatrixClient(api_key=key, max_retries=0, transport=transport)
        data = client._request(["Denver, CO"], ["Boulder, CO"])
        rows = data.get("rows") or []
        return bool(rows) and rows[0].get("elements", [{}])[0].get("status") == "OK"
    except (httpx.HTTPError, ConnectionError, ValueError):
        return False
