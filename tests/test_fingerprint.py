"""
Content fingerprint tests.
"""

import pytest

from lawwatch.services.fingerprint import ContentFingerprintService
from tests.fakes import make_instrument

# ======================== FIXTURES ========================

@pytest.fixture
def service():
    return ContentFingerprintService()


@pytest.fixture
def law():
    return {
        'id': '322AC0000000001',
        'name': '日本国憲法',
        'number': '昭和二十一年憲法',
        'category': '憲法・法律',
        'status': '施行中',
        'promulgation_date': '1946-11-03',
        'full_text': '第一条　天皇は、日本国の象徴であり',
    }

# ======================== TESTS ========================

class TestCanonicalize:

    def test_collapses_whitespace_and_line_endings(self):
        assert ContentFingerprintService.canonicalize("  a\r\n\r\nb\t c  ") == "a b c"

    def test_none_is_empty(self):
        assert ContentFingerprintService.canonicalize(None) == ""


class TestFingerprint:

    def test_is_deterministic(self, service, law):
        assert service.fingerprint(law) == service.fingerprint(dict(law))

    def test_is_hex_sha256(self, service, law):
        digest = service.fingerprint(law)
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_ignores_whitespace_variation(self, service, law):
        spaced = dict(law, full_text="第一条　天皇は、\r\n日本国の象徴であり  ", name=" 日本国憲法 ")
        plain = dict(law, full_text="第一条　天皇は、 日本国の象徴であり")
        assert service.fingerprint(spaced) == service.fingerprint(plain)

    def test_field_order_does_not_matter(self, service, law):
        reordered = dict(reversed(list(law.items())))
        assert service.fingerprint(reordered) == service.fingerprint(law)

    @pytest.mark.parametrize('field', ['name', 'number', 'category', 'status', 'promulgation_date', 'full_text'])
    def test_every_field_is_significant(self, service, law, field):
        changed = dict(law, **{field: law[field] + "改"})
        assert service.fingerprint(changed) != service.fingerprint(law)

    def test_full_text_argument_overrides_entity(self, service, law):
        instrument = make_instrument('322AC0000000001')
        assert service.fingerprint(instrument, full_text="本文") != service.fingerprint(instrument)
        assert service.fingerprint(instrument, full_text="本文") == service.fingerprint(instrument, full_text=" 本文 ")

    def test_instrument_and_mapping_agree(self, service):
        instrument = make_instrument('A')
        mapping = {
            'id': instrument.id,
            'name': instrument.name,
            'number': instrument.number,
            'category': instrument.category,
            'status': instrument.status,
            'promulgation_date': instrument.promulgation_date,
        }
        assert service.fingerprint(instrument) == service.fingerprint(mapping)


class TestDetectChangedFields:

    def test_reports_only_changed_fields(self, service, law):
        changed = dict(law, status='廃止', full_text=law['full_text'] + '。')
        assert service.detect_changed_fields(law, changed) == ['status', 'full_text']

    def test_whitespace_only_difference_is_not_a_change(self, service, law):
        assert service.detect_changed_fields(law, dict(law, name=' 日本国憲法\n')) == []

    def test_id_is_not_compared(self, service, law):
        assert service.detect_changed_fields(law, dict(law, id='other')) == []


class TestMetadataHashAndChecksum:

    def test_metadata_hash_ignores_body(self, service, law):
        assert service.metadata_hash(law) == service.metadata_hash(dict(law, full_text='別の本文'))

    def test_metadata_hash_tracks_status(self, service, law):
        assert service.metadata_hash(law) != service.metadata_hash(dict(law, status='廃止'))

    def test_registry_checksum_is_order_independent(self, service):
        a, b = make_instrument('A'), make_instrument('B')
        assert service.registry_checksum([a, b]) == service.registry_checksum([b, a])

    def test_registry_checksum_tracks_membership(self, service):
        a, b = make_instrument('A'), make_instrument('B')
        assert service.registry_checksum([a, b]) != service.registry_checksum([a])
