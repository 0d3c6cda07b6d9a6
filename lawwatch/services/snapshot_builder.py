"""
Snapshot Builder

Turns fetched instruments into snapshot records. Persisting them is the
caller's job; this module never touches the store.
"""

from datetime import datetime
from typing import Dict, List, Optional

from lawwatch.core.domain.entities import (
    Instrument, InstrumentSnapshot, RegistrySnapshot, RegistryFetch,
    RegistryMetadata, CategorySummary, create_snapshot_id,
    create_registry_snapshot_id, utc_now
)
from lawwatch.services.fingerprint import ContentFingerprintService

INITIAL_VERSION = "1.0.0"
REGISTRY_SOURCE = "e-Gov API"


def bump_patch_version(version: Optional[str]) -> str:
    """'1.0.3' -> '1.0.4'; anything unparseable restarts at the initial version."""
    if not version:
        return INITIAL_VERSION
    parts = version.split(".")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return INITIAL_VERSION
    major, minor, patch = (int(p) for p in parts)
    return f"{major}.{minor}.{patch + 1}"


class SnapshotBuilder:
    """Builds per-instrument and whole-registry snapshots."""

    def __init__(self, fingerprint_service: Optional[ContentFingerprintService] = None):
        self.fingerprints = fingerprint_service or ContentFingerprintService()

    def build_instrument_snapshot(
        self,
        instrument: Instrument,
        full_text: Optional[str] = None,
        previous: Optional[InstrumentSnapshot] = None,
        captured_at: Optional[datetime] = None
    ) -> InstrumentSnapshot:
        """
        Snapshot one instrument.

        When ``full_text`` is given the content hash is the full fingerprint
        including the body; otherwise any caller-supplied ``content_hash`` on
        the instrument is used, falling back to the body hash already stored
        on ``previous`` so a metadata-only fetch never erases it. The version
        bumps the patch number of ``previous`` or starts at 1.0.0.
        """
        captured_at = captured_at or utc_now()

        if full_text is not None:
            content_hash = self.fingerprints.fingerprint(instrument, full_text=full_text)
        elif instrument.content_hash is not None:
            content_hash = instrument.content_hash
        else:
            content_hash = previous.content_hash if previous else None

        return InstrumentSnapshot(
            id=create_snapshot_id(instrument.id, captured_at),
            law_id=instrument.id,
            law_name=instrument.name,
            law_number=instrument.number,
            promulgation_date=instrument.promulgation_date,
            last_revision_date=instrument.last_revision_date,
            category=instrument.category,
            status=instrument.status,
            metadata_hash=self.fingerprints.metadata_hash(instrument),
            content_hash=content_hash,
            version=bump_patch_version(previous.version) if previous else INITIAL_VERSION,
            captured_at=captured_at,
        )

    def build_registry_snapshot(
        self,
        fetch: RegistryFetch,
        created_at: Optional[datetime] = None
    ) -> RegistrySnapshot:
        """Checksum plus per-category summary of the whole fetched registry."""
        created_at = created_at or utc_now()

        return RegistrySnapshot(
            id=create_registry_snapshot_id(created_at),
            snapshot_date=created_at,
            total_instrument_count=fetch.total_count,
            checksum=self.fingerprints.registry_checksum(fetch.instruments),
            metadata=RegistryMetadata(
                version=fetch.version,
                last_update_date=fetch.last_updated,
                source=REGISTRY_SOURCE,
                categories=self.summarize_categories(fetch.instruments),
            ),
            created_at=created_at,
        )

    @staticmethod
    def summarize_categories(instruments: List[Instrument]) -> List[CategorySummary]:
        """Count and latest promulgation date per category, in first-seen order."""
        summary: Dict[str, Dict[str, object]] = {}

        for instrument in instruments:
            entry = summary.setdefault(
                instrument.category,
                {'count': 0, 'last_modified': instrument.promulgation_date or ""}
            )
            entry['count'] += 1
            # ISO dates compare correctly as strings
            if instrument.promulgation_date and instrument.promulgation_date > entry['last_modified']:
                entry['last_modified'] = instrument.promulgation_date

        return [
            CategorySummary(category=category, count=data['count'], last_modified=data['last_modified'])
            for category, data in summary.items()
        ]
