"""
Registry differ tests: per-instrument classification, single-instrument
comparison and the aggregate whole-registry path.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from lawwatch.core.domain.entities import RegistryFetch
from lawwatch.core.enums import ChangeType
from lawwatch.core.exceptions import ClassificationError
from lawwatch.services.registry_differ import RegistryDiffer, AGGREGATE_CATEGORY
from lawwatch.services.snapshot_builder import SnapshotBuilder
from tests.fakes import make_instrument

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=1)

# ======================== FIXTURES ========================

@pytest.fixture
def builder():
    return SnapshotBuilder()


@pytest.fixture
def differ(builder):
    return RegistryDiffer(builder)


@pytest.fixture
def previous_snapshots(builder):
    return [
        builder.build_instrument_snapshot(make_instrument('A'), captured_at=T0),
        builder.build_instrument_snapshot(make_instrument('B'), captured_at=T0),
    ]

# ======================== PER-INSTRUMENT DIFF ========================

class TestDiffInstruments:

    def test_new_revised_abolished(self, differ, previous_snapshots):
        current = [
            make_instrument('A', last_revision_date='2024-01-01'),
            make_instrument('C'),
        ]

        diff = differ.diff_instruments(previous_snapshots, current, detected_at=T1)

        assert [d.law_id for d in diff.new_laws] == ['C']
        assert [d.law_id for d in diff.revised_laws] == ['A']
        assert [d.law_id for d in diff.abolished_laws] == ['B']
        assert diff.metadata_changes == []
        assert diff.total_changes == 3

    def test_revision_field_change_recorded(self, differ, previous_snapshots):
        current = [make_instrument('A', last_revision_date='2024-01-01'), make_instrument('B')]
        diff = differ.diff_instruments(previous_snapshots, current, detected_at=T1)

        detection = diff.revised_laws[0]
        assert detection.change_type is ChangeType.REVISED
        assert [c.to_dict() for c in detection.changes] == [
            {'field': 'last_revision_date', 'old_value': None, 'new_value': '2024-01-01'}
        ]
        assert detection.previous_snapshot_id == previous_snapshots[0].id

    def test_name_change_is_metadata(self, differ, previous_snapshots):
        current = [make_instrument('A', name='改正後の名称'), make_instrument('B')]
        diff = differ.diff_instruments(previous_snapshots, current, detected_at=T1)

        assert [d.law_id for d in diff.metadata_changes] == ['A']
        assert diff.metadata_changes[0].change_type is ChangeType.METADATA_CHANGED
        assert diff.revised_laws == []

    def test_abolished_snapshot_forced_to_abolished_status(self, differ, previous_snapshots):
        diff = differ.diff_instruments(previous_snapshots, [make_instrument('A')], detected_at=T1)

        snapshot = diff.abolished_snapshots[0]
        assert snapshot.law_id == 'B'
        assert snapshot.status == '廃止'
        assert diff.abolished_laws[0].changes[0].to_dict() == {
            'field': 'status', 'old_value': '施行中', 'new_value': '廃止'
        }
        assert diff.detections_by_snapshot[snapshot.id] is diff.abolished_laws[0]

    def test_already_abolished_not_reported_again(self, differ, previous_snapshots):
        first = differ.diff_instruments(previous_snapshots, [make_instrument('A')], detected_at=T1)
        latest = [previous_snapshots[0], first.abolished_snapshots[0]]

        second = differ.diff_instruments(latest, [make_instrument('A')], detected_at=T1 + timedelta(days=1))

        assert second.total_changes == 0
        assert first.abolished_snapshots[0].removed_from_registry

    def test_upstream_abolished_status_still_reported_when_removed(self, differ, builder):
        previous = [
            builder.build_instrument_snapshot(make_instrument('A', status='廃止'), captured_at=T0),
            builder.build_instrument_snapshot(make_instrument('B'), captured_at=T0),
        ]

        diff = differ.diff_instruments(previous, [make_instrument('B')], detected_at=T1)

        assert [d.law_id for d in diff.abolished_laws] == ['A']
        assert diff.abolished_snapshots[0].removed_from_registry

    def test_unchanged_keeps_version(self, differ, builder, previous_snapshots):
        bumped = replace(previous_snapshots[0], version='1.0.3')
        diff = differ.diff_instruments([bumped], [make_instrument('A')], detected_at=T1)

        assert diff.total_changes == 0
        assert diff.current_snapshots[0].version == '1.0.3'

    def test_changed_snapshot_version_bumped(self, differ, previous_snapshots):
        diff = differ.diff_instruments(
            previous_snapshots, [make_instrument('A', name='新名称'), make_instrument('B')], detected_at=T1
        )
        versions = {s.law_id: s.version for s in diff.current_snapshots}
        assert versions == {'A': '1.0.1', 'B': '1.0.0'}

    def test_whitespace_only_difference_ignored(self, differ, previous_snapshots):
        current = [make_instrument('A', name=' 法律A '), make_instrument('B')]
        assert differ.diff_instruments(previous_snapshots, current).total_changes == 0

    def test_internal_whitespace_runs_ignored(self, differ, builder):
        previous = [builder.build_instrument_snapshot(make_instrument('A', name='民法 第一'), captured_at=T0)]
        current = [make_instrument('A', name='民法  第一')]

        diff = differ.diff_instruments(previous, current, detected_at=T1)

        assert diff.metadata_changes == []
        assert diff.total_changes == 0

    def test_duplicate_ids_rejected(self, differ, previous_snapshots):
        with pytest.raises(ClassificationError):
            differ.diff_instruments(previous_snapshots, [make_instrument('A'), make_instrument('A')])

    def test_to_registry_diff_buckets(self, differ, previous_snapshots):
        current = [
            make_instrument('A', last_revision_date='2024-01-01'),
            make_instrument('C', category='政令'),
        ]
        registry_diff = differ.diff_instruments(previous_snapshots, current, detected_at=T1).to_registry_diff(
            'scan-prev', 'scan-cur', detected_at=T1
        )

        assert registry_diff.summary.total_new == 1
        assert registry_diff.summary.total_modified == 1
        assert registry_diff.summary.total_removed == 1
        assert registry_diff.summary.affected_categories == ['憲法・法律', '政令']
        assert registry_diff.has_significant_changes

# ======================== SINGLE-INSTRUMENT DIFF ========================

class TestDiffSnapshot:

    def test_identical_hashes_yield_none(self, differ, builder):
        previous = builder.build_instrument_snapshot(make_instrument('A'), full_text='本文', captured_at=T0)
        current = builder.build_instrument_snapshot(make_instrument('A'), full_text='本文', previous=previous, captured_at=T1)
        assert differ.diff_snapshot(previous, current) is None

    def test_body_change_is_revision(self, differ, builder):
        previous = builder.build_instrument_snapshot(make_instrument('A'), full_text='本文', captured_at=T0)
        current = builder.build_instrument_snapshot(make_instrument('A'), full_text='改正本文', previous=previous, captured_at=T1)

        detection = differ.diff_snapshot(previous, current)

        assert detection.change_type is ChangeType.REVISED
        assert 'content_hash' in detection.changed_fields

    def test_status_wins_over_category(self, differ, builder):
        previous = builder.build_instrument_snapshot(make_instrument('A'), captured_at=T0)
        current = builder.build_instrument_snapshot(
            make_instrument('A', status='廃止', category='政令'), previous=previous, captured_at=T1
        )
        assert differ.diff_snapshot(previous, current).change_type is ChangeType.STATUS_CHANGED

    def test_category_change(self, differ, builder):
        previous = builder.build_instrument_snapshot(make_instrument('A'), captured_at=T0)
        current = builder.build_instrument_snapshot(
            make_instrument('A', category='政令'), previous=previous, captured_at=T1
        )
        assert differ.diff_snapshot(previous, current).change_type is ChangeType.CATEGORY_CHANGED

# ======================== WHOLE-REGISTRY DIFF ========================

class TestDiffRegistry:

    def _snapshot(self, builder, instruments, last_updated=T0):
        fetch = RegistryFetch(instruments=instruments, total_count=len(instruments), last_updated=last_updated)
        return builder.build_registry_snapshot(fetch, created_at=last_updated)

    def test_equal_checksum_is_no_diff(self, differ, builder):
        previous = self._snapshot(builder, [make_instrument('A')])
        current = self._snapshot(builder, [make_instrument('A')], last_updated=T1)
        assert differ.diff_registry(previous, current) is None

    def test_count_increase_and_update_time(self, differ, builder):
        previous = self._snapshot(builder, [make_instrument('A')])
        current = self._snapshot(builder, [make_instrument('A'), make_instrument('B')], last_updated=T1)

        diff = differ.diff_registry(previous, current, detected_at=T1)

        assert diff.summary.total_new == 1
        assert diff.summary.total_modified == 1
        assert diff.summary.total_removed == 0
        assert diff.new_laws[0].previous_value == '1'
        assert diff.new_laws[0].current_value == '2'
        assert diff.new_laws[0].category == AGGREGATE_CATEGORY

    def test_count_decrease(self, differ, builder):
        previous = self._snapshot(builder, [make_instrument('A'), make_instrument('B')])
        current = self._snapshot(builder, [make_instrument('A')])

        diff = differ.diff_registry(previous, current)

        assert diff.summary.total_removed == 1
        assert diff.summary.total_new == 0
        assert diff.summary.total_modified == 0
