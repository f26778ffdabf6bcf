from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase

from realtime.consumers import BaseConsumer, CustomerConsumer, ProviderConsumer
from realtime.consumers.base import CLOSE_NOT_ALLOWED
from realtime.notifications import (
	customer_group_name,
	notify_customer_event,
	notify_offer_round,
	notify_provider_event,
	provider_group_name,
)
from services.dispatch import dispatch_repair_request
from services.tests.factories import make_repair, make_service_center, make_technician, make_user


@patch('realtime.notifications.get_channel_layer', return_value=MagicMock())
@patch('realtime.notifications.async_to_sync')
class NotificationTests(TestCase):
	def setUp(self):
		self.customer = make_user('customer')
		self.technician = make_technician('tech_rome', 1.0)
		self.center = make_service_center('centre_rome', 2.0)
		self.repair = make_repair(self.customer)

	def test_group_names(self, mock_async_to_sync, mock_layer):
		self.assertEqual(provider_group_name('technician', 7), 'provider_technician_7')
		self.assertEqual(customer_group_name(3), 'user_3')

	def test_offer_round_reaches_every_provider(self, mock_async_to_sync, mock_layer):
		result = dispatch_repair_request(self.repair.id)
		send = mock_async_to_sync.return_value

		sent = notify_offer_round(result.repair_request, result.offers)

		self.assertEqual(sent, 2)
		groups = [c[0][0] for c in send.call_args_list]
		self.assertEqual(groups, [
			provider_group_name('technician', self.technician.id),
			provider_group_name('service_center', self.center.id),
		])
		payload = send.call_args_list[0][0][1]
		self.assertEqual(payload['type'], 'job_offer')
		self.assertEqual(payload['repair_request_id'], self.repair.id)
		self.assertEqual(payload['offer']['id'], result.offers[0].id)

	def test_customer_event_payload(self, mock_async_to_sync, mock_layer):
		sent = notify_customer_event('repair_assigned', self.repair, 'Assigned', extra={'eta': 30})

		self.assertTrue(sent)
		group, payload = mock_async_to_sync.return_value.call_args[0]
		self.assertEqual(group, customer_group_name(self.customer.id))
		self.assertEqual(payload['type'], 'repair_assigned')
		self.assertEqual(payload['message'], 'Assigned')
		self.assertEqual(payload['eta'], 30)

	def test_no_channel_layer(self, mock_async_to_sync, mock_layer):
		mock_layer.return_value = None

		self.assertFalse(notify_provider_event('job_offer', 'technician', self.technician.id, self.repair))
		mock_async_to_sync.assert_not_called()


def socket_user(user_id=5, role='customer'):
	return SimpleNamespace(id=user_id, role=role, is_anonymous=False)


async def open_socket(consumer_class, user):
	communicator = WebsocketCommunicator(consumer_class.as_asgi(), '/ws/test/')
	communicator.scope['user'] = user
	connected, code = await communicator.connect()
	return communicator, connected, code


class ConsumerTests(SimpleTestCase):
	async def test_anonymous_socket_is_refused(self):
		communicator, connected, _ = await open_socket(CustomerConsumer, AnonymousUser())

		self.assertFalse(connected)
		await communicator.disconnect()

	async def test_connect_joins_personal_group(self):
		communicator, connected, _ = await open_socket(BaseConsumer, socket_user(5))

		self.assertTrue(connected)
		hello = await communicator.receive_json_from()
		self.assertEqual(hello['type'], 'connection_established')
		self.assertEqual(hello['user_id'], 5)
		self.assertEqual(hello['groups'], [customer_group_name(5)])
		await communicator.disconnect()

	async def test_commands(self):
		communicator, _, _ = await open_socket(CustomerConsumer, socket_user())
		await communicator.receive_json_from()

		await communicator.send_json_to({'type': 'ping'})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})

		await communicator.send_json_to({'type': 'get_pending_offers'})
		reply = await communicator.receive_json_from()
		self.assertEqual(reply['type'], 'error')
		self.assertIn('get_pending_offers', reply['message'])

		await communicator.send_json_to({'repair_request_id': 1})
		reply = await communicator.receive_json_from()
		self.assertEqual(reply, {'type': 'error', 'message': 'Message type is required'})

		await communicator.send_json_to({'type': 'get_repair_status'})
		reply = await communicator.receive_json_from()
		self.assertEqual(reply['message'], 'get_repair_status requires repair_request_id')
		await communicator.disconnect()

	async def test_cancellation_reaches_customer(self):
		communicator, _, _ = await open_socket(CustomerConsumer, socket_user(8))
		await communicator.receive_json_from()

		await get_channel_layer().group_send(customer_group_name(8), {
			'type': 'repair_cancelled',
			'repair_request_id': 42,
			'status': 'cancelled',
			'message': 'Your repair request was cancelled.',
		})

		self.assertEqual(await communicator.receive_json_from(), {
			'type': 'repair_cancelled',
			'repair_request_id': 42,
			'message': 'Your repair request was cancelled.',
		})
		await communicator.disconnect()

	@patch.object(ProviderConsumer, '_get_provider_refs', new_callable=AsyncMock, return_value=[])
	async def test_provider_socket_needs_provider_account(self, mock_refs):
		communicator, connected, code = await open_socket(ProviderConsumer, socket_user(role='technician'))

		self.assertFalse(connected)
		self.assertEqual(code, CLOSE_NOT_ALLOWED)
		await communicator.disconnect()

	@patch.object(ProviderConsumer, '_get_provider_refs', new_callable=AsyncMock, return_value=[('technician', 3)])
	async def test_provider_receives_offers_on_its_group(self, mock_refs):
		communicator, connected, _ = await open_socket(ProviderConsumer, socket_user(role='technician'))

		self.assertTrue(connected)
		hello = await communicator.receive_json_from()
		self.assertEqual(hello['providers'], [{'provider_type': 'technician', 'provider_id': 3}])

		await get_channel_layer().group_send(provider_group_name('technician', 3), {
			'type': 'job_offer_withdrawn',
			'repair_request_id': 42,
			'message': 'This job was taken by another provider.',
		})

		reply = await communicator.receive_json_from()
		self.assertEqual(reply['type'], 'job_offer_withdrawn')
		self.assertEqual(reply['repair_request_id'], 42)
		await communicator.disconnect()
