"""
Resolve a certificate identifier to its record for public verification.
"""
import logging
import uuid

from certstamp.errors import NotFoundError

logger = logging.getLogger(__name__)


def is_well_formed_id(cert_id):
    """True for canonical UUID strings, the only shape we ever issue."""
    if not isinstance(cert_id, str) or len(cert_id) != 36:
        return False
    try:
        return str(uuid.UUID(cert_id)) == cert_id.lower()
    except ValueError:
        return False


def lookup_certificate(store, cert_id):
    """
    Return the certificate record for *cert_id*, or None.

    Malformed identifiers are answered without a database round trip.
    """
    if not is_well_formed_id(cert_id):
        logger.info("[VERIFY] Rejected malformed id %r", (cert_id or "")[:64])
        return None
    return store.get_certificate(cert_id.lower())


def require_certificate(store, cert_id):
    record = lookup_certificate(store, cert_id)
    if record is None:
        raise NotFoundError()
    return record
