import logging
from datetime import datetime, timezone

from deposit_hold.storage.base import DvlaStatus, FormStatus, FormStatusStore, FormVariant

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def record_form_submission(store: FormStatusStore, booking_id: str, variant: FormVariant) -> FormStatus:
    status = store.get_or_default(booking_id)
    status.form_variant = FormVariant(variant).value
    status.form_submitted_at = _now_iso()
    store.save(status)
    logger.info("Form %s recorded for booking %s", status.form_variant, booking_id)
    return status


def record_dvla_check(store: FormStatusStore, booking_id: str, licence_number: str, check_code: str) -> FormStatus:
    """Customer supplied licence + DVLA share code; awaits manual verification."""
    status = store.get_or_default(booking_id)
    status.licence_number = licence_number.strip().upper()
    status.dvla_check_code = check_code.strip()
    status.dvla_status = DvlaStatus.checked.value
    status.dvla_updated_at = _now_iso()
    store.save(status)
    logger.info("DVLA details received for booking %s", booking_id)
    return status


def record_manual_verification(store: FormStatusStore, booking_id: str, result: DvlaStatus, note: str | None = None) -> FormStatus:
    result = DvlaStatus(result)
    if result not in (DvlaStatus.valid, DvlaStatus.invalid):
        raise ValueError("manual verification must be 'valid' or 'invalid'")
    status = store.get_or_default(booking_id)
    status.dvla_status = result.value
    status.dvla_note = note
    status.dvla_updated_at = _now_iso()
    store.save(status)
    logger.info("DVLA status for booking %s set to %s", booking_id, result.value)
    return status
