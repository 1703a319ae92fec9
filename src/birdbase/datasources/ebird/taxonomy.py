"""eBird taxonomy, indexed by English common name."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from birdbase.datasources.ebird import client


@dataclass(frozen=True)
class TaxonRecord:
    """One taxon from the eBird taxonomy."""

    species_code: str
    common_name: str
    scientific_name: str
    family: str | None = None
    category: str | None = None


def _parse_taxon(entry: dict[str, Any]) -> TaxonRecord | None:
    code = entry.get("speciesCode")
    com_name = entry.get("comName")
    sci_name = entry.get("sciName")
    if not (code and com_name and sci_name):
        return None
    return TaxonRecord(
        species_code=code,
        common_name=com_name,
        scientific_name=sci_name,
        family=entry.get("familySciName"),
        category=entry.get("category"),
    )


def fetch_taxonomy(
    api_key: str | None = None,
    *,
    locale: str = "en",
    timeout: float | None = None,
) -> dict[str, TaxonRecord]:
    """
    Fetch the full eBird taxonomy.

    Returns:
        Mapping of common name → TaxonRecord. Entries missing a code or
        either name are skipped.
    """
    raw = client.get_json(
        "/ref/taxonomy/ebird",
        api_key,
        params={"fmt": "json", "locale": locale},
        timeout=timeout,
    )
    taxa: dict[str, TaxonRecord] = {}
    for entry in raw or []:
        parsed = _parse_taxon(entry)
        if parsed is not None:
            taxa[parsed.common_name] = parsed
    return taxa


def taxonomy_to_dict(taxa: dict[str, TaxonRecord]) -> dict[str, dict[str, Any]]:
    """Serialize a taxonomy index for the store."""
    return {name: asdict(record) for name, record in taxa.items()}


def taxonomy_from_dict(data: dict[str, dict[str, Any]]) -> dict[str, TaxonRecord]:
    """Rebuild a taxonomy index from its stored form."""
    return {name: TaxonRecord(**record) for name, record in data.items()}
