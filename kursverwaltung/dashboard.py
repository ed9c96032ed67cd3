"""
Dashboard data context.

Holds the five collections for the lifetime of a dashboard view. Loads
fan out concurrently and join before anything is replaced; every
successful mutation marks the data stale and triggers a full reload.
There is no partial update of the in-memory collections.

Lifecycle: idle -> loading -> ready | error
           ready -> stale (mutation) -> reloading -> ready | error
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional

from .enrich import EnrichedAnmeldung, EnrichedKurs, build_lookup_table, enrich_anmeldungen, enrich_kurse
from .errors import KursverwaltungError, StorageError
from .logger import get_logger
from .models import ANMELDUNGEN, COLLECTIONS, DOZENTEN, KURSE, RAEUME, TEILNEHMER, Record, RecordBackend

logger = get_logger()

IDLE = "idle"
LOADING = "loading"
READY = "ready"
ERROR = "error"
STALE = "stale"
RELOADING = "reloading"


class DashboardData:
    """In-memory collections plus lookup tables, reloaded wholesale."""

    def __init__(self, backend: RecordBackend):
        self.backend = backend
        self.state = IDLE
        self.error: Optional[KursverwaltungError] = None
        self._records: Dict[str, List[Record]] = {c: [] for c in COLLECTIONS}
        self._tables: Dict[str, Dict[str, Record]] = {c: {} for c in COLLECTIONS}

    @property
    def ready(self) -> bool:
        return self.state == READY

    def load(self) -> bool:
        """
        Load all collections concurrently.

        Returns True when every collection loaded. On any failure the state
        becomes ERROR, the error is kept for a retry prompt and the
        previously loaded collections stay in place.
        """
        self.state = RELOADING if self.state in (STALE, READY) else LOADING
        self.error = None

        with ThreadPoolExecutor(max_workers=len(COLLECTIONS)) as pool:
            futures = {c: pool.submit(self.backend.get_records, c) for c in COLLECTIONS}

        loaded: Dict[str, List[Record]] = {}
        for collection, future in futures.items():
            try:
                loaded[collection] = future.result()
            except KursverwaltungError as e:
                if self.error is None:
                    self.error = e
                logger.error("Failed to load collection", collection=collection, error=str(e))

        if self.error is not None:
            self.state = ERROR
            return False

        self._records = loaded
        self._tables = {c: build_lookup_table(rs) for c, rs in loaded.items()}
        self.state = READY
        logger.debug("Dashboard data loaded", counts={c: len(rs) for c, rs in loaded.items()})
        return True

    def records(self, collection: str) -> List[Record]:
        return list(self._records[collection])

    def table(self, collection: str) -> Mapping[str, Record]:
        return self._tables[collection]

    @property
    def records_by_collection(self) -> Dict[str, List[Record]]:
        return {c: list(rs) for c, rs in self._records.items()}

    @property
    def raeume(self) -> List[Record]:
        return self.records(RAEUME)

    @property
    def dozenten(self) -> List[Record]:
        return self.records(DOZENTEN)

    @property
    def kurse(self) -> List[Record]:
        return self.records(KURSE)

    @property
    def teilnehmer(self) -> List[Record]:
        return self.records(TEILNEHMER)

    @property
    def anmeldungen(self) -> List[Record]:
        return self.records(ANMELDUNGEN)

    def enriched_kurse(self) -> List[EnrichedKurs]:
        return enrich_kurse(self.kurse, self.table(DOZENTEN), self.table(RAEUME))

    def enriched_anmeldungen(self) -> List[EnrichedAnmeldung]:
        return enrich_anmeldungen(self.anmeldungen, self.table(TEILNEHMER), self.table(KURSE))

    # Mutations

    def _after_mutation(self) -> None:
        self.state = STALE
        self.load()

    def create(self, collection: str, fields: Mapping[str, Any]) -> Record:
        try:
            record = self.backend.create_record(collection, fields)
        except StorageError:
            logger.warning("Create failed, collections unchanged", collection=collection)
            raise
        self._after_mutation()
        return record

    def update(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        try:
            record = self.backend.update_record(collection, record_id, fields)
        except StorageError:
            logger.warning("Update failed, collections unchanged", collection=collection, record_id=record_id)
            raise
        self._after_mutation()
        return record

    def delete(self, collection: str, record_id: str) -> None:
        try:
            self.backend.delete_record(collection, record_id)
        except StorageError:
            logger.warning("Delete failed, collections unchanged", collection=collection, record_id=record_id)
            raise
        self._after_mutation()
