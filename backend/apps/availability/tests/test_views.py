"""
Tests for the availability API endpoints.
"""
from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient

from apps.availability.models import AvailabilityPolicy, AvailabilityRule, DateOverrideRule
from apps.events.tests.factories import MONDAY, make_booking, make_meeting_type, make_organizer, monday_at


@patch('apps.common.clock.SystemClock.now', return_value=monday_at(8))
class TestAvailableSlotsEndpoint(TestCase):
    """Public slot listing."""

    def setUp(self):
        self.client = APIClient()
        self.organizer = make_organizer()
        self.meeting_type = make_meeting_type(self.organizer)

    def get_slots(self, **params):
        query = {'meeting_type_id': str(self.meeting_type.id), 'date': MONDAY.isoformat()}
        query.update(params)
        return self.client.get('/api/v1/availability/slots/', query)

    def test_default_template_slots(self, mock_now):
        response = self.get_slots()

        self.assertEqual(response.status_code, 200)
        slots = response.data['available_slots']
        self.assertEqual(response.data['timezone'], 'UTC')
        self.assertEqual(slots[0]['start'], '2030-01-07T10:00:00+00:00')
        self.assertEqual(slots[-1]['end'], '2030-01-07T17:00:00+00:00')

    def test_slots_rendered_in_requested_timezone(self, mock_now):
        response = self.get_slots(timezone='Europe/Berlin')

        self.assertEqual(response.data['timezone'], 'Europe/Berlin')
        self.assertEqual(response.data['available_slots'][0]['start'], '2030-01-07T11:00:00+01:00')

    def test_existing_booking_removes_buffered_slots(self, mock_now):
        make_booking(self.meeting_type, monday_at(11))

        starts = [slot['start'] for slot in self.get_slots().data['available_slots']]

        self.assertNotIn('2030-01-07T10:45:00+00:00', starts)
        self.assertNotIn('2030-01-07T11:15:00+00:00', starts)
        self.assertIn('2030-01-07T10:15:00+00:00', starts)
        self.assertIn('2030-01-07T11:45:00+00:00', starts)

    def test_cancelled_booking_does_not_block(self, mock_now):
        make_booking(self.meeting_type, monday_at(11), status='cancelled')

        starts = [slot['start'] for slot in self.get_slots().data['available_slots']]

        self.assertIn('2030-01-07T11:00:00+00:00', starts)

    def test_date_beyond_booking_window_is_empty(self, mock_now):
        response = self.get_slots(date='2030-03-04')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['available_slots'], [])

    def test_unknown_meeting_type(self, mock_now):
        response = self.get_slots(meeting_type_id='00000000-0000-0000-0000-000000000000')

        self.assertEqual(response.status_code, 404)

    def test_inactive_meeting_type(self, mock_now):
        self.meeting_type.is_active = False
        self.meeting_type.save()

        response = self.get_slots()

        self.assertEqual(response.status_code, 400)

    def test_missing_parameters(self, mock_now):
        response = self.client.get('/api/v1/availability/slots/')

        self.assertEqual(response.status_code, 400)


class TestAvailabilitySettings(TestCase):
    """Host policy and weekly template management."""

    def setUp(self):
        self.client = APIClient()
        self.organizer = make_organizer()
        self.client.force_authenticate(self.organizer)

    def test_defaults_are_seeded(self):
        response = self.client.get('/api/v1/availability/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['buffer_minutes'], 15)
        self.assertEqual(response.data['max_advance_days'], 30)
        self.assertEqual(response.data['min_notice_hours'], 2)
        monday = response.data['weekly_template'][0]
        self.assertTrue(monday['enabled'])
        self.assertEqual(monday['intervals'], [{'start': '09:00', 'end': '17:00'}])
        self.assertFalse(response.data['weekly_template'][6]['enabled'])

    def test_replace_weekly_template(self):
        payload = {
            'timezone': 'Europe/Berlin',
            'buffer_minutes': 10,
            'weekly_template': [
                {'day_of_week': 0, 'enabled': True, 'intervals': [
                    {'start': '08:00', 'end': '12:00'}, {'start': '13:00', 'end': '16:00'}
                ]},
                {'day_of_week': 5, 'enabled': True, 'intervals': [{'start': '10:00', 'end': '12:00'}]},
            ]
        }

        response = self.client.put('/api/v1/availability/', payload, format='json')

        self.assertEqual(response.status_code, 200)
        policy = AvailabilityPolicy.objects.get(organizer=self.organizer)
        self.assertEqual(policy.timezone, 'Europe/Berlin')
        self.assertEqual(policy.buffer_minutes, 10)
        self.assertEqual(policy.enabled_weekdays, [0, 5])
        self.assertEqual(AvailabilityRule.objects.filter(organizer=self.organizer).count(), 3)

    def test_overlapping_intervals_rejected(self):
        payload = {
            'weekly_template': [
                {'day_of_week': 1, 'intervals': [
                    {'start': '09:00', 'end': '12:00'}, {'start': '11:00', 'end': '13:00'}
                ]},
            ]
        }

        response = self.client.put('/api/v1/availability/', payload, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(AvailabilityRule.objects.filter(organizer=self.organizer, day_of_week=1).count(), 1)

    def test_unknown_timezone_rejected(self):
        response = self.client.put('/api/v1/availability/', {'timezone': 'Nowhere/City'}, format='json')

        self.assertEqual(response.status_code, 400)

    def test_requires_authentication(self):
        response = APIClient().get('/api/v1/availability/')

        self.assertEqual(response.status_code, 401)


class TestDateOverrides(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.organizer = make_organizer()
        self.client.force_authenticate(self.organizer)

    def test_duplicate_date_replaces_previous_override(self):
        self.client.post('/api/v1/availability/overrides/', {
            'date': '2030-01-08', 'is_available': False, 'reason': 'Conference'
        }, format='json')
        response = self.client.post('/api/v1/availability/overrides/', {
            'date': '2030-01-08', 'is_available': True, 'slots': [{'start': '10:00', 'end': '11:00'}]
        }, format='json')

        self.assertEqual(response.status_code, 201)
        overrides = DateOverrideRule.objects.filter(organizer=self.organizer)
        self.assertEqual(overrides.count(), 1)
        self.assertTrue(overrides.get().is_available)
        self.assertEqual(overrides.get().slots, [{'start': '10:00', 'end': '11:00'}])

    def test_available_override_needs_slots(self):
        response = self.client.post('/api/v1/availability/overrides/', {
            'date': '2030-01-08', 'is_available': True
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_delete_override(self):
        self.client.post('/api/v1/availability/overrides/', {
            'date': '2030-01-08', 'is_available': False
        }, format='json')

        response = self.client.delete('/api/v1/availability/overrides/2030-01-08/')

        self.assertEqual(response.status_code, 204)
        self.assertFalse(DateOverrideRule.objects.filter(organizer=self.organizer).exists())

    def test_delete_missing_override(self):
        response = self.client.delete('/api/v1/availability/overrides/2030-01-09/')

        self.assertEqual(response.status_code, 404)
