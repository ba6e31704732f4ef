"""
Daily progress report log. Entries are appended once and never edited or deleted.
"""
import uuid
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from ..schemas.dpr import DprEntry
from ..storage.provider import RecordStore
from .time_rules import local_day, utc_now


logger = structlog.get_logger(__name__)

DPR_NAMESPACE = "dpr"
DPR_LIST = "entries"


class DprLog:
    def __init__(
        self,
        store: RecordStore,
        timezone_str: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.timezone_str = timezone_str
        self._clock = clock

    def append(self, work_description: str, remarks: str = "", photo_ref: Optional[str] = None) -> DprEntry:
        work_description = (work_description or "").strip()
        if not work_description:
            raise ValueError("Work description is required")
        now = self._clock()
        entry = DprEntry(
            id=str(uuid.uuid4()),
            created_at=now,
            report_date=local_day(now, self.timezone_str),
            work_description=work_description,
            remarks=(remarks or "").strip(),
            photo_ref=photo_ref or None,
        )
        position = self.store.append_to_list(DPR_LIST, entry.model_dump(mode="python"))
        logger.info("dpr_appended", dpr_id=entry.id, position=position, has_photo=entry.photo_ref is not None)
        return entry

    def list_all(self) -> List[DprEntry]:
        return [DprEntry.model_validate(raw) for raw in self.store.read_list(DPR_LIST)]
