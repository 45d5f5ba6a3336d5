"""One fee ledger view model per mounted school, discarded on unmount."""

import logging
from typing import Dict, Optional

import httpx

from feeledger.api.v1.classrooms.service import ClassroomService
from feeledger.api.v1.student_payments.service import StudentFeesService
from feeledger.core.config import settings
from feeledger.core.exceptions import LedgerNotLoadedError
from feeledger.ledger.notifications import NotificationService
from feeledger.ledger.view_model import FeeLedgerViewModel

logger = logging.getLogger(__name__)


class LedgerRegistry:
    def __init__(
        self,
        client: httpx.AsyncClient,
        year_id: Optional[str] = None,
        confirm_with_server: Optional[bool] = None,
    ) -> None:
        self.client = client
        self.year_id = year_id if year_id is not None else settings.academic_year_id
        self.confirm_with_server = (
            settings.confirm_with_server if confirm_with_server is None else confirm_with_server
        )
        self._ledgers: Dict[str, FeeLedgerViewModel] = {}

    def mount(self, school_id: str) -> FeeLedgerViewModel:
        ledger = self._ledgers.get(school_id)
        if ledger is None:
            ledger = FeeLedgerViewModel(
                school_id,
                StudentFeesService(self.client),
                ClassroomService(self.client),
                NotificationService(settings.notification_duration_ms),
                year_id=self.year_id,
                confirm_with_server=self.confirm_with_server,
            )
            self._ledgers[school_id] = ledger
            logger.info("Mounted fee ledger for school %s", school_id)
        return ledger

    def get(self, school_id: str) -> FeeLedgerViewModel:
        ledger = self._ledgers.get(school_id)
        if ledger is None:
            raise LedgerNotLoadedError(school_id)
        return ledger

    def unmount(self, school_id: str) -> bool:
        ledger = self._ledgers.pop(school_id, None)
        if ledger is None:
            return False
        ledger.close_dialog()
        logger.info("Unmounted fee ledger for school %s", school_id)
        return True
