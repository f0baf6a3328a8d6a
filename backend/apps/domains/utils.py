"""
Sending-domain ownership checks.

A host publishes ``<prefix>.<domain> TXT "booking-verification=<token>"``.
Verification runs as a delayed job that re-checks DNS on the
``DOMAIN_VERIFICATION_BACKOFF`` schedule until the record appears or the
table is exhausted.
"""
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from apps.common.clock import default_clock
from apps.common.exceptions import DependencyFailure, ValidationError
from apps.common.retry import BackoffPolicy, format_delay
from apps.notifications.queues import get_delayed_queue
from .models import SendingDomain
import dns.exception
import dns.resolver
import logging
import re

logger = logging.getLogger(__name__)

DOMAIN_PATTERN = re.compile(r'^(?=.{1,253}$)(?!-)([a-z0-9-]{1,63}(?<!-)\.)+[a-z]{2,63}$')

TIMEOUT_REASON = 'Verification timeout - DNS records not found after 24 hours'
RESCHEDULE_FAILURE_REASON = 'Verification stopped - the next DNS check could not be scheduled'


def normalize_domain(value):
    domain = (value or '').strip().lower().rstrip('.')
    if not DOMAIN_PATTERN.match(domain):
        raise ValidationError(f'Invalid domain name: {value}', field='domain')
    return domain


def get_txt_record_name(domain):
    return f"{settings.DOMAIN_VERIFICATION_RECORD_PREFIX}.{domain.domain}"


def get_dns_instructions(domain):
    return {
        'type': 'TXT',
        'name': get_txt_record_name(domain),
        'value': domain.txt_record_value,
    }


def check_domain_txt_record(domain, resolver=None):
    """True if the verification TXT record is published for ``domain``."""
    name = get_txt_record_name(domain)
    if resolver is None:
        resolver = dns.resolver.Resolver()
        resolver.lifetime = settings.DOMAIN_VERIFICATION_DNS_TIMEOUT

    try:
        answers = resolver.resolve(name, 'TXT')
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.NoNameservers, dns.exception.Timeout) as e:
        logger.debug(f"TXT lookup failed for {name}: {e}")
        return False

    for answer in answers:
        txt_value = "".join(
            part.decode() if isinstance(part, bytes) else str(part)
            for part in answer.strings
        )
        if txt_value == domain.txt_record_value:
            return True

    return False


def get_verification_policy():
    return BackoffPolicy.from_setting('DOMAIN_VERIFICATION_BACKOFF')


def get_progress_percentage(attempt, max_attempts):
    return min(90, int(10 + (attempt / max_attempts) * 80))


def _publish_verification(domain, delay, queue):
    from .tasks import verify_domain_task

    queue = queue if queue is not None else get_delayed_queue()
    payload = {
        'domain_id': str(domain.id),
        'run': domain.verification_run,
        'attempt': domain.verification_attempts,
    }
    return queue.publish(verify_domain_task, payload, delay=delay)


def _is_current_job(domain, run, attempt):
    """A job is current when it belongs to the active run and carries the stored attempt number."""
    if domain.verification_status != 'verifying':
        return False
    if run is not None and run != domain.verification_run:
        return False
    if attempt is not None and attempt != domain.verification_attempts:
        return False
    return True


def schedule_domain_verification(domain, delay=0, queue=None, clock=None):
    """
    Start (or restart) verification of ``domain``.

    Raises DependencyFailure when the job cannot be queued; the domain is put
    back to its previous state in that case.
    """
    now = (clock or default_clock).now()
    previous = {
        'verification_status': domain.verification_status,
        'setup_progress': domain.setup_progress,
    }

    domain.verification_status = 'verifying'
    domain.verification_attempts = 0
    domain.verification_run += 1
    domain.failure_reason = ''
    domain.last_verification_attempt = now
    domain.setup_progress = {'step': 'verifying', 'percentage': 10, 'message': 'Verification job scheduled'}
    domain.save()

    try:
        _publish_verification(domain, delay, queue)
    except Exception as e:
        logger.error(f"Failed to schedule verification for {domain.domain}: {str(e)}")
        for field, value in previous.items():
            setattr(domain, field, value)
        domain.save(update_fields=list(previous) + ['updated_at'])
        raise DependencyFailure('Failed to schedule domain verification', collaborator='delayed_queue')

    logger.info(f"Scheduled verification for {domain.domain} in {delay}s")
    return domain


def process_domain_verification(domain_id, run=None, attempt=None, lookup=None, queue=None, clock=None):
    """
    Run one verification attempt.

    The attempt number comes from the stored row, so a resumed job continues
    where the last one stopped. Queued jobs carry the run and attempt they
    were published for; a redelivered job, or one left over from a cancelled
    run, no longer matches the row and does nothing.
    """
    lookup = lookup or check_domain_txt_record
    now = (clock or default_clock).now()
    policy = get_verification_policy()

    try:
        domain = SendingDomain.objects.get(id=domain_id)
    except (SendingDomain.DoesNotExist, DjangoValidationError):
        return {'success': False, 'verified': False, 'should_retry': False, 'error': 'Domain not found'}

    if not _is_current_job(domain, run, attempt):
        logger.info(f"Skipping stale verification job for {domain.domain} (run {run}, attempt {attempt})")
        return {'success': True, 'verified': domain.is_verified, 'should_retry': False}

    verified = lookup(domain)
    next_delay = None

    with transaction.atomic():
        domain = SendingDomain.objects.select_for_update().get(id=domain_id)
        if not _is_current_job(domain, run, attempt):
            return {'success': True, 'verified': domain.is_verified, 'should_retry': False}

        domain.last_verification_attempt = now

        if verified:
            domain.verification_status = 'verified'
            domain.verified_at = now
            domain.setup_progress = {
                'step': 'completed',
                'percentage': 100,
                'message': 'Domain successfully verified and ready for sending'
            }
        else:
            current = domain.verification_attempts
            step = policy.next_step(current)

            if step.exhausted:
                domain.verification_status = 'failed'
                domain.failure_reason = TIMEOUT_REASON
                domain.setup_progress = {'step': 'failed', 'percentage': 0, 'message': TIMEOUT_REASON}
            else:
                next_delay = step.delay_seconds
                domain.verification_attempts = current + 1
                domain.setup_progress = {
                    'step': 'verifying',
                    'percentage': get_progress_percentage(current, policy.max_attempts),
                    'message': (
                        f"Verification attempt {current + 1}/{policy.max_attempts}. "
                        f"Next check in {format_delay(next_delay)}"
                    )
                }

        domain.save()

    if verified:
        logger.info(f"Domain {domain.domain} verified")
        return {'success': True, 'verified': True, 'should_retry': False}

    if next_delay is None:
        logger.warning(f"Domain {domain.domain} failed verification: {TIMEOUT_REASON}")
        return {'success': True, 'verified': False, 'should_retry': False, 'error': 'Verification timeout'}

    try:
        _publish_verification(domain, next_delay, queue)
    except Exception as e:
        logger.error(f"Failed to queue next verification check for {domain.domain}: {str(e)}")
        SendingDomain.objects.filter(
            id=domain.id, verification_run=domain.verification_run, verification_status='verifying'
        ).update(
            verification_status='failed',
            failure_reason=RESCHEDULE_FAILURE_REASON,
            setup_progress={'step': 'failed', 'percentage': 0, 'message': RESCHEDULE_FAILURE_REASON},
            updated_at=now,
        )
        return {'success': False, 'verified': False, 'should_retry': False, 'error': RESCHEDULE_FAILURE_REASON}

    return {'success': True, 'verified': False, 'should_retry': True, 'next_retry_delay': next_delay}


def cancel_domain_verification(domain):
    """Stop verification; any queued job becomes a no-op."""
    domain.verification_status = 'pending'
    domain.setup_progress = {'step': 'cancelled', 'percentage': 0, 'message': 'Verification cancelled'}
    domain.save(update_fields=['verification_status', 'setup_progress', 'updated_at'])
    logger.info(f"Cancelled verification for {domain.domain}")
    return domain
