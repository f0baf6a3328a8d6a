from celery import shared_task
from .utils import process_domain_verification
import logging

logger = logging.getLogger(__name__)


@shared_task
def verify_domain_task(domain_id, run=None, attempt=None):
    """Check the verification TXT record and re-queue with backoff until found."""
    try:
        result = process_domain_verification(domain_id, run=run, attempt=attempt)
    except Exception as e:
        logger.error(f"Error verifying domain {domain_id}: {str(e)}")
        return f"Error verifying domain {domain_id}: {str(e)}"

    if result.get('verified'):
        return f"Domain {domain_id} verified"
    if result.get('should_retry'):
        return f"Domain {domain_id} not verified yet, next check in {result['next_retry_delay']}s"
    return f"Domain {domain_id}: {result.get('error', 'no action taken')}"
