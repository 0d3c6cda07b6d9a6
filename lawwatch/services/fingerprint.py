"""
Content Fingerprint Service

Canonicalizes an instrument's observable fields and produces a stable
SHA-256 digest. Equal canonical content always yields an identical digest,
regardless of whitespace variation or field ordering.
"""

import hashlib
import json
import re
from typing import Any, Dict, List, Mapping, Optional, Union

from lawwatch.core.domain.entities import Instrument

_LINE_ENDINGS = re.compile(r"\r\n|\r")
_WHITESPACE_RUNS = re.compile(r"\s+")

# ======================== FINGERPRINT SERVICE ========================

class ContentFingerprintService:
    """
    Deterministic fingerprints for instruments and registry listings.

    Inputs can be ``Instrument`` objects or plain mappings exposing the same
    field names; missing optional fields are treated as empty strings.
    """

    # Fields hashed by ``fingerprint`` and compared by ``detect_changed_fields``
    FINGERPRINT_FIELDS = (
        'id', 'name', 'number', 'category', 'status', 'promulgation_date', 'full_text'
    )
    COMPARED_FIELDS = (
        'name', 'number', 'category', 'status', 'promulgation_date', 'full_text'
    )
    METADATA_FIELDS = ('name', 'number', 'promulgation_date', 'category', 'status')

    @staticmethod
    def canonicalize(text: Optional[str]) -> str:
        """Collapse line endings to \\n, then whitespace runs to one space, then trim."""
        if text is None:
            return ""
        normalized = _LINE_ENDINGS.sub("\n", str(text))
        normalized = _WHITESPACE_RUNS.sub(" ", normalized)
        return normalized.strip()

    def fingerprint(
        self,
        entity: Union[Instrument, Mapping[str, Any]],
        full_text: Optional[str] = None
    ) -> str:
        """
        Digest over the canonicalized fingerprint fields.

        Args:
            entity: Instrument or mapping with the fingerprint fields
            full_text: Optional body; overrides a ``full_text`` on the entity

        Returns:
            64-character lowercase hex SHA-256 digest
        """
        fields = self._canonical_fields(entity, self.FINGERPRINT_FIELDS)
        if full_text is not None:
            fields['full_text'] = self.canonicalize(full_text)
        return self._digest(fields)

    def metadata_hash(self, entity: Union[Instrument, Mapping[str, Any]]) -> str:
        """Digest over metadata only (no identifier, no body)."""
        return self._digest(self._canonical_fields(entity, self.METADATA_FIELDS))

    def detect_changed_fields(
        self,
        old: Union[Instrument, Mapping[str, Any]],
        new: Union[Instrument, Mapping[str, Any]]
    ) -> List[str]:
        """Names of compared fields whose canonical values differ."""
        old_fields = self._canonical_fields(old, self.COMPARED_FIELDS)
        new_fields = self._canonical_fields(new, self.COMPARED_FIELDS)
        return [name for name in self.COMPARED_FIELDS if old_fields[name] != new_fields[name]]

    def registry_checksum(self, instruments: List[Instrument]) -> str:
        """Checksum over the id-sorted ``{id, name, number, category, status}`` listing."""
        listing = sorted(
            (
                {
                    'id': instrument.id,
                    'name': instrument.name,
                    'number': instrument.number,
                    'category': instrument.category,
                    'status': instrument.status,
                }
                for instrument in instruments
            ),
            key=lambda item: item['id']
        )
        return self._digest(listing)

    # ======================== HELPERS ========================

    def _canonical_fields(
        self,
        entity: Union[Instrument, Mapping[str, Any]],
        names: tuple
    ) -> Dict[str, str]:
        return {name: self.canonicalize(self._read(entity, name)) for name in names}

    @staticmethod
    def _read(entity: Union[Instrument, Mapping[str, Any]], name: str) -> Optional[str]:
        if isinstance(entity, Mapping):
            return entity.get(name)
        return getattr(entity, name, None)

    @staticmethod
    def _digest(payload: Any) -> str:
        serialized = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(',', ':'))
        return hashlib.sha256(serialized.encode('utf-8')).hexdigest()
