"""
Photo scan: pre-fill a draft record from a photographed document.

A failed extraction leaves the draft exactly as it was; the error is
reported on the result instead of being raised.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from .errors import ExtractionError
from .extraction import PhotoExtractor, file_to_data_uri
from .logger import get_logger
from .merge import lookups_for, merge_extracted
from .models import Record
from .schema import coerce_extracted, describe_schema

logger = get_logger()


@dataclass
class ScanResult:
    fields: Dict[str, Any]
    extracted: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class PhotoScanner:
    """Runs photo scans for draft records; one scan at a time per scanner."""

    def __init__(self, extractor: PhotoExtractor):
        self.extractor = extractor
        self._in_flight = threading.Lock()

    @property
    def scanning(self) -> bool:
        return self._in_flight.locked()

    def scan(
        self,
        collection: str,
        draft: Mapping[str, Any],
        image_path: Path,
        records: Mapping[str, Sequence[Record]],
    ) -> ScanResult:
        """
        Extract fields from image_path and merge them into draft.

        Args:
            collection: Collection the draft belongs to
            draft: Current draft fields (not modified)
            image_path: Photo of the document
            records: Loaded records keyed by collection, used for lookups
        """
        if not self._in_flight.acquire(blocking=False):
            return ScanResult(fields=dict(draft), error="Scan already in progress")
        try:
            logger.record_scan_attempt()
            try:
                uri = file_to_data_uri(image_path)
                raw = self.extractor.extract_from_photo(uri, describe_schema(collection))
            except (ExtractionError, OSError) as e:
                logger.record_scan_failure(type(e).__name__)
                logger.error("Scan failed", collection=collection, image=str(image_path), error=str(e))
                return ScanResult(fields=dict(draft), error=str(e))

            extracted = coerce_extracted(collection, raw)
            ignored = sorted(set(raw) - set(extracted))
            if ignored:
                logger.debug("Ignored extracted fields", collection=collection, fields=ignored)

            merged = merge_extracted(draft, extracted, lookups_for(collection, records))
            logger.record_scan_success()
            logger.info(
                "Scan merged into draft",
                collection=collection,
                filled=sorted(k for k in merged if merged.get(k) != draft.get(k)),
            )
            return ScanResult(fields=merged, extracted=extracted)
        finally:
            self._in_flight.release()
