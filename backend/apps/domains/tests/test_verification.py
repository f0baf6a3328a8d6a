"""
Tests for sending-domain DNS verification.
"""
from types import SimpleNamespace

import dns.exception
import dns.resolver
from django.test import TestCase
from rest_framework.test import APIClient

from apps.common.clock import FixedClock
from apps.common.exceptions import DependencyFailure, ValidationError
from apps.domains.models import SendingDomain
from apps.domains.tasks import verify_domain_task
from apps.domains.utils import (
    RESCHEDULE_FAILURE_REASON, TIMEOUT_REASON, cancel_domain_verification, check_domain_txt_record,
    get_progress_percentage, get_txt_record_name, normalize_domain, process_domain_verification,
    schedule_domain_verification
)
from apps.events.tests.factories import make_organizer, monday_at
from apps.notifications.tests.fakes import BrokenDelayedQueue, RecordingDelayedQueue

VERIFY_TASK = 'apps.domains.tasks.verify_domain_task'


class FakeResolver:
    """Answers TXT queries from a dict, raising NXDOMAIN for unknown names."""

    def __init__(self, records=None, error=None):
        self.records = records or {}
        self.error = error
        self.queries = []

    def resolve(self, name, rdtype):
        self.queries.append((name, rdtype))
        if self.error is not None:
            raise self.error
        if name not in self.records:
            raise dns.resolver.NXDOMAIN()
        return [SimpleNamespace(strings=[value.encode()]) for value in self.records[name]]


class TestDomainHelpers:

    def test_normalize_domain(self):
        assert normalize_domain(' Mail.Example.COM. ') == 'mail.example.com'

    def test_normalize_rejects_garbage(self):
        for value in ('', 'localhost', 'bad_domain.com', '-x.example.com'):
            try:
                normalize_domain(value)
            except ValidationError:
                continue
            raise AssertionError(f"{value!r} was accepted")

    def test_progress_percentage(self):
        assert get_progress_percentage(0, 10) == 10
        assert get_progress_percentage(5, 10) == 50
        assert get_progress_percentage(10, 10) == 90


class DomainTestCase(TestCase):

    def setUp(self):
        RecordingDelayedQueue.reset()
        self.organizer = make_organizer()
        self.domain = SendingDomain.objects.create(organizer=self.organizer, domain='example.com')
        self.clock = FixedClock(monday_at(8))

    def published_record(self):
        return {get_txt_record_name(self.domain): [self.domain.txt_record_value]}


class TestCheckDomainTxtRecord(DomainTestCase):

    def test_record_found(self):
        resolver = FakeResolver(self.published_record())

        self.assertTrue(check_domain_txt_record(self.domain, resolver=resolver))
        self.assertEqual(resolver.queries, [('_booking-verification.example.com', 'TXT')])

    def test_other_txt_values_ignored(self):
        resolver = FakeResolver({get_txt_record_name(self.domain): ['v=spf1 -all']})

        self.assertFalse(check_domain_txt_record(self.domain, resolver=resolver))

    def test_missing_record(self):
        self.assertFalse(check_domain_txt_record(self.domain, resolver=FakeResolver()))

    def test_timeout_counts_as_not_found(self):
        resolver = FakeResolver(error=dns.exception.Timeout())

        self.assertFalse(check_domain_txt_record(self.domain, resolver=resolver))


class TestScheduleVerification(DomainTestCase):

    def test_starts_verifying_and_queues_job(self):
        schedule_domain_verification(self.domain, queue=RecordingDelayedQueue(), clock=self.clock)

        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'verifying')
        self.assertEqual(self.domain.verification_attempts, 0)
        self.assertEqual(self.domain.setup_progress['percentage'], 10)
        self.assertEqual(
            RecordingDelayedQueue.payloads_for(VERIFY_TASK),
            [{'domain_id': str(self.domain.id), 'run': 1, 'attempt': 0}]
        )

    def test_queue_failure_restores_state(self):
        with self.assertRaises(DependencyFailure):
            schedule_domain_verification(self.domain, queue=BrokenDelayedQueue(), clock=self.clock)

        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'pending')


class TestProcessVerification(DomainTestCase):

    def setUp(self):
        super().setUp()
        schedule_domain_verification(self.domain, queue=RecordingDelayedQueue(), clock=self.clock)
        RecordingDelayedQueue.reset()

    def run_attempt(self, found=False):
        return process_domain_verification(
            self.domain.id, lookup=lambda domain: found, queue=RecordingDelayedQueue(), clock=self.clock
        )

    def test_verified_on_first_check(self):
        result = self.run_attempt(found=True)

        self.assertEqual(result, {'success': True, 'verified': True, 'should_retry': False})
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'verified')
        self.assertEqual(self.domain.verified_at, monday_at(8))
        self.assertEqual(self.domain.setup_progress['percentage'], 100)
        self.assertEqual(RecordingDelayedQueue.published, [])

    def test_not_found_requeues_with_backoff(self):
        first = self.run_attempt()
        second = self.run_attempt()

        self.assertTrue(first['should_retry'])
        self.assertEqual(first['next_retry_delay'], 60)
        self.assertEqual(second['next_retry_delay'], 300)
        self.assertEqual([entry['delay'] for entry in RecordingDelayedQueue.published], [60, 300])

        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_attempts, 2)
        self.assertEqual(self.domain.setup_progress['message'], 'Verification attempt 2/10. Next check in 5m')

    def test_exhausted_schedule_fails(self):
        SendingDomain.objects.filter(id=self.domain.id).update(verification_attempts=10)

        result = self.run_attempt()

        self.assertFalse(result['should_retry'])
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'failed')
        self.assertEqual(self.domain.failure_reason, TIMEOUT_REASON)

    def test_cancelled_domain_job_is_noop(self):
        cancel_domain_verification(self.domain)

        result = self.run_attempt(found=True)

        self.assertFalse(result['should_retry'])
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'pending')

    def deliver(self, run, attempt, found=False):
        return process_domain_verification(
            self.domain.id, run=run, attempt=attempt,
            lookup=lambda domain: found, queue=RecordingDelayedQueue(), clock=self.clock
        )

    def test_redelivered_job_is_ignored(self):
        first = self.deliver(run=1, attempt=0)
        second = self.deliver(run=1, attempt=0)

        self.assertTrue(first['should_retry'])
        self.assertFalse(second['should_retry'])
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_attempts, 1)
        self.assertEqual(
            RecordingDelayedQueue.payloads_for(VERIFY_TASK),
            [{'domain_id': str(self.domain.id), 'run': 1, 'attempt': 1}]
        )

    def test_chain_follows_published_attempts(self):
        self.deliver(run=1, attempt=0)
        job = RecordingDelayedQueue.payloads_for(VERIFY_TASK)[-1]

        result = self.deliver(run=job['run'], attempt=job['attempt'])

        self.assertEqual(result['next_retry_delay'], 300)
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_attempts, 2)

    def test_job_from_cancelled_run_is_ignored(self):
        cancel_domain_verification(self.domain)
        schedule_domain_verification(self.domain, queue=RecordingDelayedQueue(), clock=self.clock)

        result = self.deliver(run=1, attempt=0, found=True)

        self.assertFalse(result['verified'])
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'verifying')
        self.assertEqual(self.domain.verification_run, 2)
        self.assertEqual(self.domain.verification_attempts, 0)
        self.assertEqual(
            RecordingDelayedQueue.payloads_for(VERIFY_TASK),
            [{'domain_id': str(self.domain.id), 'run': 2, 'attempt': 0}]
        )

    def test_requeue_failure_marks_domain_failed(self):
        result = process_domain_verification(
            self.domain.id, lookup=lambda domain: False, queue=BrokenDelayedQueue(), clock=self.clock
        )

        self.assertFalse(result['success'])
        self.assertFalse(result['should_retry'])
        self.domain.refresh_from_db()
        self.assertEqual(self.domain.verification_status, 'failed')
        self.assertEqual(self.domain.failure_reason, RESCHEDULE_FAILURE_REASON)
        self.assertEqual(self.domain.verification_attempts, 1)

    def test_unknown_domain(self):
        result = process_domain_verification('7d4a1f40-0000-4000-8000-000000000000', lookup=lambda d: True)

        self.assertFalse(result['success'])

    def test_task_message(self):
        SendingDomain.objects.filter(id=self.domain.id).update(verification_status='verified')

        self.assertEqual(verify_domain_task(str(self.domain.id)), f"Domain {self.domain.id} verified")


class TestDomainEndpoints(TestCase):

    def setUp(self):
        RecordingDelayedQueue.reset()
        self.client = APIClient()
        self.organizer = make_organizer()
        self.client.force_authenticate(self.organizer)

    def test_add_domain(self):
        response = self.client.post('/api/v1/domains/', {'domain': 'Mail.Example.com'}, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['domain'], 'mail.example.com')
        self.assertEqual(response.data['verification_status'], 'pending')
        self.assertEqual(response.data['dns_record']['name'], '_booking-verification.mail.example.com')
        self.assertTrue(response.data['dns_record']['value'].startswith('booking-verification='))

    def test_duplicate_domain(self):
        self.client.post('/api/v1/domains/', {'domain': 'example.com'}, format='json')

        response = self.client.post('/api/v1/domains/', {'domain': 'EXAMPLE.com'}, format='json')

        self.assertEqual(response.status_code, 400)

    def test_verify_and_cancel(self):
        domain = SendingDomain.objects.create(organizer=self.organizer, domain='example.com')

        response = self.client.post(f'/api/v1/domains/{domain.id}/verify/')
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.data['verification_status'], 'verifying')
        self.assertEqual(len(RecordingDelayedQueue.payloads_for(VERIFY_TASK)), 1)

        response = self.client.post(f'/api/v1/domains/{domain.id}/cancel/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['verification_status'], 'pending')

    def test_verified_domain_not_reverified(self):
        domain = SendingDomain.objects.create(
            organizer=self.organizer, domain='example.com', verification_status='verified'
        )

        response = self.client.post(f'/api/v1/domains/{domain.id}/verify/')

        self.assertEqual(response.status_code, 400)

    def test_cancel_when_idle(self):
        domain = SendingDomain.objects.create(organizer=self.organizer, domain='example.com')

        response = self.client.post(f'/api/v1/domains/{domain.id}/cancel/')

        self.assertEqual(response.status_code, 400)

    def test_other_hosts_domain(self):
        other = make_organizer(email='other@example.com')
        domain = SendingDomain.objects.create(organizer=other, domain='example.com')

        response = self.client.post(f'/api/v1/domains/{domain.id}/verify/')

        self.assertEqual(response.status_code, 404)
