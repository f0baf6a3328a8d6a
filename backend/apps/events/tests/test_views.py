"""
Tests for the meeting type and booking API endpoints.
"""
from unittest.mock import patch

from django.core import mail
from django.test import TestCase
from rest_framework.test import APIClient

from apps.events.models import Booking, MeetingType
from apps.events.tests.factories import make_booking, make_meeting_type, make_organizer, monday_at
from apps.notifications.models import Reminder
from apps.notifications.tests.fakes import RecordingDelayedQueue

BOOKING_URL = '/api/v1/events/booking/'


@patch('apps.common.clock.SystemClock.now', return_value=monday_at(8))
class TestGuestBookingEndpoint(TestCase):
    """Token based guest flow: create, view, reschedule, cancel."""

    def setUp(self):
        RecordingDelayedQueue.reset()
        self.client = APIClient()
        self.organizer = make_organizer()
        self.meeting_type = make_meeting_type(self.organizer)

    def create(self, scheduled_at='2030-01-07T10:00:00Z', **overrides):
        payload = {
            'meeting_type_id': str(self.meeting_type.id),
            'scheduled_at': scheduled_at,
            'guest_name': 'Grace Guest',
            'guest_email': 'Grace@Example.com',
            'guest_timezone': 'Europe/Berlin',
        }
        payload.update(overrides)
        return self.client.post(BOOKING_URL, payload, format='json')

    def test_create_booking(self, mock_now):
        response = self.create()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], 'confirmed')
        self.assertEqual(response.data['guest_email'], 'grace@example.com')
        self.assertTrue(response.data['booking_token'])
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Meeting Confirmed - Intro Call')
        self.assertEqual(
            Reminder.objects.filter(booking_id=response.data['id'], status='pending').count(), 2
        )

    def test_create_unavailable_slot(self, mock_now):
        self.create()

        response = self.create(guest_email='second@example.com')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error'], 'Time slot is no longer available')
        self.assertEqual(Booking.objects.count(), 1)

    def test_create_with_invalid_payload(self, mock_now):
        response = self.create(guest_email='nope')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Booking.objects.exists())

    def test_create_for_inactive_type(self, mock_now):
        self.meeting_type.is_active = False
        self.meeting_type.save()

        response = self.create()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'inactive_resource')

    def test_create_for_unknown_type(self, mock_now):
        response = self.create(meeting_type_id='00000000-0000-0000-0000-000000000000')

        self.assertEqual(response.status_code, 404)

    def test_view_by_token(self, mock_now):
        token = self.create().data['booking_token']

        response = self.client.get(BOOKING_URL, {'token': token})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['guest_name'], 'Grace Guest')

    def test_view_unknown_token(self, mock_now):
        response = self.client.get(BOOKING_URL, {'token': 'missing'})

        self.assertEqual(response.status_code, 404)

    def test_view_without_token(self, mock_now):
        response = self.client.get(BOOKING_URL)

        self.assertEqual(response.status_code, 400)

    def test_reschedule(self, mock_now):
        token = self.create().data['booking_token']

        response = self.client.put(BOOKING_URL, {
            'token': token, 'scheduled_at': '2030-01-08T11:00:00Z', 'reason': 'Clash'
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['reschedule_count'], 1)
        self.assertEqual(response.data['remaining_reschedules'], 2)

    def test_reschedule_limit(self, mock_now):
        booking = make_booking(self.meeting_type, monday_at(10), reschedule_count=3)

        response = self.client.put(BOOKING_URL, {
            'token': booking.booking_token, 'scheduled_at': '2030-01-08T11:00:00Z'
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'Maximum reschedule limit reached')

    def test_reschedule_into_conflict(self, mock_now):
        make_booking(self.meeting_type, monday_at(14), guest_email='other@example.com')
        token = self.create().data['booking_token']

        response = self.client.put(BOOKING_URL, {
            'token': token, 'scheduled_at': '2030-01-07T14:15:00Z'
        }, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error'], 'New time slot is not available')

    def test_cancel_is_idempotent(self, mock_now):
        token = self.create().data['booking_token']

        first = self.client.delete(f"{BOOKING_URL}?token={token}&reason=Sick")
        second = self.client.delete(f"{BOOKING_URL}?token={token}")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.data['status'], 'cancelled')
        self.assertEqual(second.data['cancellation_reason'], 'Sick')
        subjects = [message.subject for message in mail.outbox]
        self.assertEqual(subjects.count('Meeting Cancelled - Intro Call'), 1)


class TestMeetingTypeEndpoints(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.organizer = make_organizer()
        self.client.force_authenticate(self.organizer)

    def test_create_meeting_type(self):
        response = self.client.post('/api/v1/events/meeting-types/', {
            'name': 'Strategy Session', 'duration_minutes': 60, 'location_type': 'video_call'
        }, format='json')

        self.assertEqual(response.status_code, 201)
        meeting_type = MeetingType.objects.get(id=response.data['id'])
        self.assertEqual(meeting_type.organizer, self.organizer)
        self.assertEqual(meeting_type.max_reschedules, 3)

    def test_paid_type_requires_price(self):
        response = self.client.post('/api/v1/events/meeting-types/', {
            'name': 'Consulting', 'duration_minutes': 60, 'requires_payment': True
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('price', response.data)

    def test_list_only_own_types(self):
        make_meeting_type(self.organizer)
        make_meeting_type(make_organizer(email='other@example.com'), name='Theirs')

        response = self.client.get('/api/v1/events/meeting-types/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Intro Call')

    def test_deactivate(self):
        meeting_type = make_meeting_type(self.organizer)

        response = self.client.patch(
            f'/api/v1/events/meeting-types/{meeting_type.id}/', {'is_active': False}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        meeting_type.refresh_from_db()
        self.assertFalse(meeting_type.is_active)


@patch('apps.common.clock.SystemClock.now', return_value=monday_at(8))
class TestHostBookingEndpoints(TestCase):

    def setUp(self):
        RecordingDelayedQueue.reset()
        self.client = APIClient()
        self.organizer = make_organizer()
        self.meeting_type = make_meeting_type(self.organizer)
        self.client.force_authenticate(self.organizer)

    def test_list_filters_by_status(self, mock_now):
        make_booking(self.meeting_type, monday_at(10))
        make_booking(self.meeting_type, monday_at(12), status='cancelled')

        response = self.client.get('/api/v1/events/bookings/', {'status': 'cancelled'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['status'], 'cancelled')

    def test_list_filters_by_date_range(self, mock_now):
        make_booking(self.meeting_type, monday_at(10))
        make_booking(self.meeting_type, monday_at(10).replace(day=9))

        response = self.client.get('/api/v1/events/bookings/', {
            'start_date': '2030-01-08', 'end_date': '2030-01-10'
        })

        self.assertEqual(response.data['count'], 1)

    def test_other_hosts_bookings_hidden(self, mock_now):
        other_type = make_meeting_type(make_organizer(email='other@example.com'))
        booking = make_booking(other_type, monday_at(10))

        response = self.client.get(f'/api/v1/events/bookings/{booking.id}/')

        self.assertEqual(response.status_code, 404)

    def test_status_update(self, mock_now):
        booking = make_booking(self.meeting_type, monday_at(10))

        response = self.client.put('/api/v1/events/booking-status/', {
            'booking_id': str(booking.id), 'status': 'completed'
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(mail.outbox[-1].subject, 'Meeting Completed - Intro Call')

    def test_invalid_status_transition(self, mock_now):
        booking = make_booking(self.meeting_type, monday_at(10), status='cancelled')

        response = self.client.put('/api/v1/events/booking-status/', {
            'booking_id': str(booking.id), 'status': 'completed'
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_delete_booking(self, mock_now):
        booking = make_booking(self.meeting_type, monday_at(10))

        response = self.client.delete(f'/api/v1/events/bookings/{booking.id}/')

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Booking.objects.filter(id=booking.id).exists())
        self.assertEqual(mail.outbox[-1].subject, 'Meeting Cancelled - Intro Call')

    def test_completed_booking_cannot_be_deleted(self, mock_now):
        booking = make_booking(self.meeting_type, monday_at(10), status='completed')

        response = self.client.delete(f'/api/v1/events/bookings/{booking.id}/')

        self.assertEqual(response.status_code, 400)
        self.assertTrue(Booking.objects.filter(id=booking.id).exists())

    def test_audit_log(self, mock_now):
        booking = make_booking(self.meeting_type, monday_at(10))
        self.client.put('/api/v1/events/booking-status/', {
            'booking_id': str(booking.id), 'status': 'no_show'
        }, format='json')

        response = self.client.get(f'/api/v1/events/bookings/{booking.id}/audit/')

        self.assertEqual(response.status_code, 200)
        self.assertIn('status_changed', [entry['action'] for entry in response.data])

    def test_requires_authentication(self, mock_now):
        response = APIClient().get('/api/v1/events/bookings/')

        self.assertEqual(response.status_code, 401)
