"""
visadesk.service
================

Boundary operations (load, submit stage update, cancel, hold, custody,
queues) wired to a :class:`~visadesk.gateway.CaseGateway` and a
:class:`~visadesk.lookups.LookupProvider`.

The service is the only place that persists: it loads the case, lets the
pure engine decide, and saves the result.  A charge-entity rejection is
retried once against a freshly loaded lookup snapshot before it is
reported, since the session snapshot may be stale.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .charges import list_entities
from .custody import advance_custody
from .errors import Result
from .gateway import CaseGateway
from .lifecycle import apply_update, cancel, next_stage, set_hold
from .lookups import LookupProvider
from .models import TOTAL_STAGES, Attachment, Case, ChargeEntity, ChargeOption, CustodyStatus
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class CaseService:
    """
    Facade over one gateway and one lookup provider.

    Parameters
    ----------
    gateway : CaseGateway
        Where cases and lookups live.
    lookups : LookupProvider | None
        Session lookup provider; defaults to one reading ``gateway.get_lookups``.
    config : Settings | None
        Workflow knobs (custody threshold, retry limit).
    clock : callable | None
        Returns "now"; injectable for tests.
    """

    def __init__(
        self,
        gateway: CaseGateway,
        lookups: Optional[LookupProvider] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.gateway = gateway
        self.lookups = lookups or LookupProvider(gateway.get_lookups)
        self.config = config or default_settings
        self._clock = clock or datetime.now

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_case(self, case_id: int) -> Case:
        return self.gateway.get_case(case_id)

    def next_stage(self, case_id: int) -> Optional[int]:
        return next_stage(self.gateway.get_case(case_id))

    def charge_entities(self, option: ChargeOption) -> List[ChargeEntity]:
        return list_entities(option, self.lookups.start())

    def list_tasks(self, stage_number: int) -> List[Case]:
        """Active cases whose next actionable stage is *stage_number*."""
        return [c for c in self.gateway.list_cases() if c.is_active and c.next_stage == stage_number]

    def stage_counts(self) -> Dict[str, int]:
        """Per-stage queue sizes plus ``completed`` and ``on_hold`` buckets."""
        counts = {str(n): 0 for n in range(1, TOTAL_STAGES + 1)}
        counts["completed"] = 0
        counts["on_hold"] = 0
        for case in self.gateway.list_cases():
            if case.cancelled:
                continue
            if case.on_hold:
                counts["on_hold"] += 1
            elif case.next_stage is None:
                counts["completed"] += 1
            else:
                counts[str(case.next_stage)] += 1
        return counts

    def custody_tasks(self, status: CustodyStatus) -> List[Case]:
        return self.gateway.find_by_custody(status, self.config.custody_min_progress)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def submit_stage_update(
        self,
        case_id: int,
        stage_number: int,
        fields: Mapping[str, Any],
        charge_option: Optional[ChargeOption] = None,
        charged_entity_id: Optional[int] = None,
        attachment: Optional[Attachment] = None,
        mark_complete: bool = False,
    ) -> Result[Case]:
        case = self.gateway.get_case(case_id)
        snapshot = self.lookups.start()

        def attempt():
            return apply_update(
                case, stage_number, fields, snapshot,
                charge_option=charge_option,
                charged_entity_id=charged_entity_id,
                attachment=attachment,
                mark_complete=mark_complete,
            )

        result = attempt()
        retries = 0
        while not result.ok and result.error.lookup_dependent and retries < self.config.lookup_retry_limit:
            retries += 1
            logger.info(f"Case {case_id} stage {stage_number}: {result.error.kind}, refreshing lookups")
            snapshot = self.lookups.refresh()
            result = attempt()

        if not result.ok:
            logger.info(f"Case {case_id} stage {stage_number} rejected: {result.error.kind} ({result.error.message})")
            return result

        if result.value == case and (
            attachment is None or attachment == self.gateway.get_attachment(case_id, attachment.field)
        ):
            logger.info(f"Case {case_id} stage {stage_number} unchanged, nothing saved")
            return Result.success(case)

        saved = self.gateway.save_case(result.value, [attachment] if attachment else [])
        logger.info(
            f"Case {case_id} stage {stage_number} saved "
            f"(completed={saved.stages[stage_number].completed}, progress={saved.progress})"
        )
        return Result.success(saved)

    def cancel_case(self, case_id: int, cancellation_charge: Any, remarks: str) -> Result[Case]:
        case = self.gateway.get_case(case_id)
        if case.cancelled:
            return Result.success(case)
        result = cancel(case, cancellation_charge, remarks, now=self._clock())
        if not result.ok:
            return result
        saved = self.gateway.save_case(result.value)
        logger.info(f"Case {case_id} cancelled (charge={saved.cancellation.charge})")
        return Result.success(saved)

    def set_hold(self, case_id: int, on_hold: bool) -> Result[Case]:
        case = self.gateway.get_case(case_id)
        result = set_hold(case, on_hold)
        if not result.ok:
            return result
        if case.on_hold == result.value.on_hold:
            return Result.success(case)
        saved = self.gateway.save_case(result.value)
        logger.info(f"Case {case_id} hold set to {saved.on_hold}")
        return Result.success(saved)

    def submit_custody_update(
        self,
        case_id: int,
        target: CustodyStatus,
        fields: Mapping[str, Any],
        attachments: Iterable[Attachment] = (),
    ) -> Result[Case]:
        case = self.gateway.get_case(case_id)
        files = list(attachments)
        result = advance_custody(
            case, target, dict(fields), files,
            min_progress=self.config.custody_min_progress,
            now=self._clock(),
        )
        if not result.ok:
            logger.info(f"Case {case_id} custody → {target.name} rejected: {result.error.kind} ({result.error.message})")
            return result
        saved = self.gateway.save_case(result.value, files)
        logger.info(f"Case {case_id} custody now {saved.custody.status.name}")
        return Result.success(saved)
