"""
Registry Differ

Compares stored snapshots against freshly fetched instruments and classifies
every changed instrument as NEW, REVISED, ABOLISHED, METADATA_CHANGED,
STATUS_CHANGED or CATEGORY_CHANGED.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

from lawwatch.core.domain.entities import (
    Instrument, InstrumentSnapshot, RegistrySnapshot, RegistryDiff,
    ChangeDetection, FieldChange, DiffEntry, create_change_detection,
    create_registry_diff, utc_now
)
from lawwatch.core.enums import ChangeType
from lawwatch.core.exceptions import ClassificationError
from lawwatch.core.logging_config import get_logger
from lawwatch.services.fingerprint import ContentFingerprintService
from lawwatch.services.snapshot_builder import SnapshotBuilder

# Changes touching these fields are revisions; anything else is metadata
REVISION_FIELDS = frozenset({'last_revision_date', 'content_hash'})

# Synthetic entries emitted by the aggregate whole-registry comparison
AGGREGATE_LAW_ID = "registry-aggregate"
AGGREGATE_CATEGORY = "*"

# ======================== DATA MODELS ========================

@dataclass
class InstrumentDiff:
    """Classified per-instrument changes plus the snapshots to persist for this scan."""
    new_laws: List[ChangeDetection] = field(default_factory=list)
    revised_laws: List[ChangeDetection] = field(default_factory=list)
    metadata_changes: List[ChangeDetection] = field(default_factory=list)
    abolished_laws: List[ChangeDetection] = field(default_factory=list)
    current_snapshots: List[InstrumentSnapshot] = field(default_factory=list)
    abolished_snapshots: List[InstrumentSnapshot] = field(default_factory=list)
    # Detection describing each snapshot, keyed by snapshot id
    detections_by_snapshot: Dict[str, ChangeDetection] = field(default_factory=dict)

    @property
    def total_changes(self) -> int:
        return (
            len(self.new_laws) + len(self.revised_laws)
            + len(self.metadata_changes) + len(self.abolished_laws)
        )

    def to_registry_diff(
        self,
        previous_snapshot_id: str,
        current_snapshot_id: str,
        detected_at: Optional[datetime] = None
    ) -> RegistryDiff:
        """Bucket the detections into a registry diff (revised and metadata go to modified)."""
        return create_registry_diff(
            previous_snapshot_id=previous_snapshot_id,
            current_snapshot_id=current_snapshot_id,
            new_laws=[DiffEntry.from_detection(d) for d in self.new_laws],
            modified_laws=[
                DiffEntry.from_detection(d) for d in (*self.revised_laws, *self.metadata_changes)
            ],
            removed_laws=[DiffEntry.from_detection(d) for d in self.abolished_laws],
            detected_at=detected_at,
        )

# ======================== REGISTRY DIFFER ========================

class RegistryDiffer:
    """
    Snapshot comparison and change classification.

    Features:
    - Per-instrument diff of the latest snapshots against a fresh fetch
    - Single-instrument comparison for hash-based tracking
    - Aggregate whole-registry comparison gated on checksums
    """

    def __init__(self, snapshot_builder: Optional[SnapshotBuilder] = None):
        self.snapshot_builder = snapshot_builder or SnapshotBuilder()
        self.logger = get_logger(__name__)

    # ======================== PER-INSTRUMENT DIFF ========================

    def diff_instruments(
        self,
        previous_snapshots: List[InstrumentSnapshot],
        current_instruments: List[Instrument],
        detected_at: Optional[datetime] = None
    ) -> InstrumentDiff:
        """
        Classify every current instrument against its previous snapshot.

        First pass walks the current list in fetch order and records visited
        ids; second pass turns ``previous ids - visited`` into ABOLISHED
        detections with the status forced to abolished, skipping laws whose
        latest snapshot already records their removal. Matching on id
        against the previous map is the only test for "existing". Field
        values are compared after canonicalization.

        Raises:
            ClassificationError: if the fetch lists the same id twice
        """
        detected_at = detected_at or utc_now()
        previous_by_id = {s.law_id: s for s in previous_snapshots}
        result = InstrumentDiff()
        visited = set()

        for instrument in current_instruments:
            if instrument.id in visited:
                raise ClassificationError(f"Duplicate law id in fetch: {instrument.id}")
            visited.add(instrument.id)
            previous = previous_by_id.get(instrument.id)
            snapshot = self.snapshot_builder.build_instrument_snapshot(
                instrument, previous=previous, captured_at=detected_at
            )
            result.current_snapshots.append(snapshot)

            if previous is None:
                detection = create_change_detection(snapshot, ChangeType.NEW, detected_at=detected_at)
                result.new_laws.append(detection)
                result.detections_by_snapshot[snapshot.id] = detection
                continue

            changes = self.compare_fields(previous, snapshot)
            if not changes:
                result.current_snapshots[-1] = replace(snapshot, version=previous.version)
                continue

            change_type = self.classify_field_changes(changes)
            detection = create_change_detection(
                snapshot, change_type, changes,
                previous_snapshot_id=previous.id, detected_at=detected_at
            )
            if change_type is ChangeType.REVISED:
                result.revised_laws.append(detection)
            else:
                result.metadata_changes.append(detection)
            result.detections_by_snapshot[snapshot.id] = detection

        abolished_ids = set(previous_by_id) - visited
        for previous in previous_snapshots:
            # Already recorded as abolished by an earlier scan
            if previous.law_id not in abolished_ids or previous.removed_from_registry:
                continue
            snapshot = previous.as_abolished(captured_at=detected_at)
            detection = create_change_detection(
                snapshot,
                ChangeType.ABOLISHED,
                [FieldChange('status', previous.status, snapshot.status)],
                previous_snapshot_id=previous.id,
                detected_at=detected_at,
            )
            result.abolished_snapshots.append(snapshot)
            result.abolished_laws.append(detection)
            result.detections_by_snapshot[snapshot.id] = detection

        self.logger.info(
            f"Instrument diff: {len(result.new_laws)} new, {len(result.revised_laws)} revised, "
            f"{len(result.metadata_changes)} metadata, {len(result.abolished_laws)} abolished",
            extra={
                "previous_count": len(previous_snapshots),
                "current_count": len(current_instruments),
                "total_changes": result.total_changes
            }
        )
        return result

    def compare_fields(
        self,
        previous: InstrumentSnapshot,
        current: InstrumentSnapshot
    ) -> List[FieldChange]:
        """Field changes between two snapshots of the same instrument."""
        changes = []
        old_fields = previous.comparable_fields()
        new_fields = current.comparable_fields()

        for name, old_value in old_fields.items():
            new_value = new_fields[name]
            if self._values_differ(old_value, new_value):
                changes.append(FieldChange(name, old_value, new_value))

        # Content identity only counts when both sides carry a hash
        if (
            previous.content_hash is not None
            and current.content_hash is not None
            and previous.content_hash != current.content_hash
        ):
            changes.append(FieldChange('content_hash', previous.content_hash, current.content_hash))

        return changes

    @staticmethod
    def classify_field_changes(changes: List[FieldChange]) -> ChangeType:
        if any(c.field in REVISION_FIELDS for c in changes):
            return ChangeType.REVISED
        return ChangeType.METADATA_CHANGED

    @staticmethod
    def _values_differ(old_value: Optional[str], new_value: Optional[str]) -> bool:
        if old_value is None and new_value is None:
            return False
        if old_value is None or new_value is None:
            return True
        canonicalize = ContentFingerprintService.canonicalize
        return canonicalize(old_value) != canonicalize(new_value)

    # ======================== SINGLE-INSTRUMENT DIFF ========================

    def diff_snapshot(
        self,
        previous: InstrumentSnapshot,
        current: InstrumentSnapshot
    ) -> Optional[ChangeDetection]:
        """
        Compare two snapshots of one instrument for hash-based tracking.

        Returns ``None`` when neither the content hash nor the metadata hash
        changed. Otherwise status changes win over category changes, which
        win over the revision/metadata split.
        """
        if (
            previous.content_hash == current.content_hash
            and previous.metadata_hash == current.metadata_hash
        ):
            return None

        changes = self.compare_fields(previous, current)
        if not changes:
            return None

        changed = {c.field for c in changes}
        if 'status' in changed:
            change_type = ChangeType.STATUS_CHANGED
        elif 'category' in changed:
            change_type = ChangeType.CATEGORY_CHANGED
        else:
            change_type = self.classify_field_changes(changes)

        return create_change_detection(
            current, change_type, changes,
            previous_snapshot_id=previous.id, detected_at=current.captured_at
        )

    # ======================== WHOLE-REGISTRY DIFF ========================

    def diff_registry(
        self,
        previous: RegistrySnapshot,
        current: RegistrySnapshot,
        detected_at: Optional[datetime] = None
    ) -> Optional[RegistryDiff]:
        """
        Aggregate reconciliation of two registry snapshots.

        Equal checksums produce no diff. Otherwise this only reports the
        signed change in instrument count and a change of the upstream
        last-update timestamp; it does not attribute the mismatch to
        individual instruments (``diff_instruments`` does that).
        """
        if previous.checksum == current.checksum:
            return None

        detected_at = detected_at or utc_now()
        new_laws: List[DiffEntry] = []
        modified_laws: List[DiffEntry] = []
        removed_laws: List[DiffEntry] = []
        delta = current.total_instrument_count - previous.total_instrument_count

        if delta > 0:
            new_laws.append(self._aggregate_entry(
                ChangeType.NEW, f"{delta} laws added",
                str(previous.total_instrument_count), str(current.total_instrument_count),
                detected_at
            ))
        elif delta < 0:
            removed_laws.append(self._aggregate_entry(
                ChangeType.ABOLISHED, f"{-delta} laws removed",
                str(previous.total_instrument_count), str(current.total_instrument_count),
                detected_at
            ))

        previous_update = previous.metadata.last_update_date
        current_update = current.metadata.last_update_date
        if previous_update != current_update:
            modified_laws.append(self._aggregate_entry(
                ChangeType.METADATA_CHANGED, "Registry contents updated",
                previous_update.isoformat(), current_update.isoformat(),
                detected_at
            ))

        self.logger.info(
            "Registry checksum changed",
            extra={
                "previous_snapshot_id": previous.id,
                "current_snapshot_id": current.id,
                "count_delta": delta
            }
        )

        return create_registry_diff(
            previous_snapshot_id=previous.id,
            current_snapshot_id=current.id,
            new_laws=new_laws,
            modified_laws=modified_laws,
            removed_laws=removed_laws,
            detected_at=detected_at,
        )

    @staticmethod
    def _aggregate_entry(
        change_type: ChangeType,
        name: str,
        previous_value: str,
        current_value: str,
        detected_at: datetime
    ) -> DiffEntry:
        return DiffEntry(
            law_id=AGGREGATE_LAW_ID,
            name=name,
            number="",
            category=AGGREGATE_CATEGORY,
            change_type=change_type,
            previous_value=previous_value,
            current_value=current_value,
            detected_at=detected_at,
        )
