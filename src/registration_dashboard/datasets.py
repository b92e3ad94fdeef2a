from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict

from registration_dashboard.data_service import DataServiceClient, QueryResponse, unwrap_response
from registration_dashboard.loader import CancellationToken, FetchOperation

logger = logging.getLogger(__name__)

_MISSING_RELATION_MARKER = "does not exist"


class DatasetSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    table: str
    columns: str = "*"
    order: list[str] = []

    # Tables that may be unprovisioned or unreadable; any query error yields no rows
    optional: bool = False


DEFAULT_DATASETS: tuple[DatasetSettings, ...] = (
    DatasetSettings(
        name="inscriptions",
        table="inscriptions",
        columns="*,chef_quartier:chefs_quartier(id,nom_complet,zone),dortoir:dortoirs(id,nom)",
        order=["created_at.desc"],
    ),
    DatasetSettings(name="chefs_quartier", table="chefs_quartier", order=["nom_complet"]),
    DatasetSettings(name="dortoirs", table="dortoirs", order=["nom"]),
    DatasetSettings(
        name="paiements",
        table="paiements",
        columns="*,inscription:inscriptions(id,nom,prenom,type_inscription)",
        order=["date_paiement.desc"],
    ),
    DatasetSettings(
        name="notes_examens",
        table="notes_examens",
        columns=(
            "*,inscription:inscriptions(id,nom,prenom,photo_url,sexe,age,dortoir_id),"
            "classe:classes(id,nom,niveau,numero)"
        ),
        order=["created_at.desc"],
        optional=True,
    ),
    DatasetSettings(name="classes", table="classes", order=["niveau", "numero"], optional=True),
    DatasetSettings(
        name="config_capacite_classes",
        table="config_capacite_classes",
        order=["niveau"],
        optional=True,
    ),
)


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    tables: dict[str, list[Any]] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        return {name: len(rows) for name, rows in self.tables.items()}


def _rows_for(dataset: DatasetSettings, response: QueryResponse, signal: CancellationToken) -> list[Any]:
    error = response.error
    if dataset.optional and error is not None:
        signal.raise_if_cancelled()
        if _MISSING_RELATION_MARKER in error.message:
            logger.info("datasets.optional_table_missing dataset=%s table=%s", dataset.name, dataset.table)
        else:
            logger.warning(
                "datasets.optional_table_failed dataset=%s table=%s code=%s message=%s",
                dataset.name,
                dataset.table,
                error.code,
                error.message,
            )
        return []
    data = unwrap_response(response, signal)
    return list(data or [])


def build_snapshot_fetch(client: DataServiceClient, datasets: Sequence[DatasetSettings]) -> FetchOperation:
    """Build a fetch operation that reads every dataset concurrently into one snapshot."""
    if not datasets:
        raise ValueError("At least one dataset is required.")
    names = [dataset.name for dataset in datasets]
    if len(set(names)) != len(names):
        raise ValueError(f"Dataset names must be unique, got: {names}")

    async def fetch(signal: CancellationToken) -> DashboardSnapshot:
        started = time.monotonic()
        responses = await asyncio.gather(
            *[
                client.select(dataset.table, columns=dataset.columns, order=dataset.order, signal=signal)
                for dataset in datasets
            ]
        )
        tables = {
            dataset.name: _rows_for(dataset, response, signal)
            for dataset, response in zip(datasets, responses)
        }
        snapshot = DashboardSnapshot(tables=tables)
        logger.info(
            "datasets.snapshot_loaded elapsed_ms=%d counts=%s",
            int((time.monotonic() - started) * 1000),
            snapshot.counts(),
        )
        return snapshot

    return fetch
