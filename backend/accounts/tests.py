from django.test import TestCase
from rest_framework.test import APIRequestFactory

from providers.models import MobileTechnician
from .models import User
from .views import obtain_token, refresh_token


class TokenTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.user = User.objects.create_user(
			username='tech_rome',
			password='password123',
			role=User.ROLE_TECHNICIAN
		)
		self.technician = MobileTechnician.objects.create(
			user=self.user,
			full_name='Tech Rome',
			status=MobileTechnician.STATUS_APPROVED,
			latitude=41.9,
			longitude=12.5,
		)

	def login(self, password):
		request = self.factory.post('/api/auth/token/', {'username': 'tech_rome', 'password': password}, format='json')
		return obtain_token(request)

	def test_login_returns_token_pair(self):
		response = self.login('password123')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['user']['role'], User.ROLE_TECHNICIAN)
		self.assertIn('access', response.data['tokens'])
		self.assertIn('refresh', response.data['tokens'])

	def test_login_lists_operated_providers(self):
		response = self.login('password123')

		self.assertEqual(
			response.data['providers'],
			[{'provider_type': 'technician', 'provider_id': self.technician.id}]
		)

	def test_customer_login_has_no_providers(self):
		User.objects.create_user(username='cust', password='password123')
		request = self.factory.post('/api/auth/token/', {'username': 'cust', 'password': 'password123'}, format='json')

		response = obtain_token(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['providers'], [])

	def test_wrong_password(self):
		self.assertEqual(self.login('nope').status_code, 400)

	def test_refresh_rotates_token(self):
		refresh = self.login('password123').data['tokens']['refresh']
		request = self.factory.post('/api/auth/token/refresh/', {'refresh': refresh}, format='json')

		response = refresh_token(request)

		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data)
		self.assertIn('refresh', response.data)

	def test_missing_refresh(self):
		request = self.factory.post('/api/auth/token/refresh/', {}, format='json')

		self.assertEqual(refresh_token(request).status_code, 400)

	def test_invalid_refresh(self):
		request = self.factory.post('/api/auth/token/refresh/', {'refresh': 'garbage'}, format='json')

		response = refresh_token(request)

		self.assertEqual(response.status_code, 401)
		self.assertEqual(response.data['error'], 'invalid_token')
