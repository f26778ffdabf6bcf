from importlib.util import find_spec
from unittest import skipUnless
from unittest.mock import patch

from django.db.utils import ConnectionHandler
from django.test import SimpleTestCase

from services.offers.lifecycle import locked_repair_requests


def postgres_connection():
	"""A PostgreSQL wrapper that is only used to compile SQL, never opened."""
	handler = ConnectionHandler({
		'default': {
			'ENGINE': 'django.db.backends.postgresql',
			'NAME': 'repairhub',
		}
	})
	connection = handler['default']
	connection.pg_version = 160000
	return connection


@skipUnless(find_spec('psycopg') or find_spec('psycopg2'), 'PostgreSQL driver not installed')
class RepairRequestLockSQLTests(SimpleTestCase):
	"""The request lock has to be valid on PostgreSQL even though tests run on SQLite."""

	def compile(self, queryset):
		connection = postgres_connection()
		with patch.object(connection, 'get_autocommit', return_value=False):
			sql, _ = queryset.query.get_compiler(connection=connection).as_sql()
		return sql

	def test_lock_only_covers_repair_request_rows(self):
		sql = self.compile(locked_repair_requests().filter(id=1))

		self.assertIn('LEFT OUTER JOIN "intake_locations"', sql)
		self.assertTrue(sql.endswith('FOR UPDATE OF "repair_requests"'), sql)

	def test_unqualified_lock_would_cover_outer_join(self):
		queryset = locked_repair_requests().select_for_update().filter(id=1)

		sql = self.compile(queryset)

		self.assertNotIn('FOR UPDATE OF', sql)
		self.assertTrue(sql.endswith('FOR UPDATE'), sql)
