"""
Pytest configuration and fixtures for the GameCP billing bridge tests.
"""
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Keep tests on the development code paths and away from any real .env
os.environ['ENVIRONMENT'] = 'development'
os.environ.pop('DATABASE_URL', None)
os.environ.pop('BRIDGE_API_TOKEN', None)

from monitoring.module_log import ModuleCallLog
from services.credentials import Credentials
from services.gamecp_api import ApiFailure, ApiSuccess, GameCPGateway


class FakeBillingStore:
    """In-memory stand-in for the billing tables"""

    def __init__(self, servers=None, products=None, groups=None, fail=False):
        self.servers = servers or {}
        self.products = products or {}
        # group id -> list of server ids
        self.groups = groups or {}
        self.services = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RuntimeError('billing store unavailable')

    def get_server(self, server_id):
        self._check()
        return self.servers.get(server_id)

    def get_product(self, product_id):
        self._check()
        return self.products.get(product_id)

    def find_group_server(self, group_id, server_type):
        self._check()
        for server_id in self.groups.get(group_id, []):
            server = self.servers.get(server_id)
            if server and server.get('type', 'gamecp') == server_type:
                return server
        return None

    def update_service(self, service_id, fields):
        self._check()
        self.services.setdefault(service_id, {}).update(fields)
        return True


class FakePanel(GameCPGateway):
    """Stateful gateway behaving like a small GameCP panel"""

    def __init__(self, module_log=None):
        super().__init__(module_log)
        self.users = {}
        self.servers = {}
        self.calls = []
        self._next = 1

    def _execute(self, credentials, url, path, method, body):
        self.calls.append((method, path, body))
        if credentials.key != 'good-key':
            return ApiFailure(http_status=401, message='Unauthorized')

        if method == 'GET' and path.startswith('users?email='):
            email = path.split('=', 1)[1].replace('%40', '@')
            user = self.users.get(email)
            return ApiSuccess(payload={'users': [user] if user else []})

        if method == 'POST' and path == 'settings/users':
            user = {'_id': f"user-{self._next}", 'email': body['email']}
            self._next += 1
            self.users[body['email']] = user
            return ApiSuccess(payload={'user': user}, http_status=201)

        if method == 'POST' and path == 'game-servers':
            server_id = f"mc-{self._next}"
            self._next += 1
            self.servers[server_id] = {'serverId': server_id, 'name': body['name'], 'status': 'installing'}
            return ApiSuccess(payload={'gameServer': self.servers[server_id]}, http_status=201)

        return ApiFailure(http_status=404, message='Not found')

    def count(self, method, path):
        return sum(1 for m, p, _ in self.calls if m == method and p == path)


@pytest.fixture
def module_log():
    """Module call log that keeps every entry for assertions"""
    log = ModuleCallLog()
    log.entries = []
    log.add_handler(log.entries.append)
    return log


@pytest.fixture
def store():
    return FakeBillingStore()


@pytest.fixture
def make_store():
    """Factory for billing stores preloaded with records"""
    return FakeBillingStore


@pytest.fixture
def panel(module_log):
    return FakePanel(module_log)


@pytest.fixture
def credentials():
    return Credentials(endpoint='https://panel.example.com', key='good-key')


@pytest.fixture
def module_params():
    """Parameters as the billing system passes them to CreateAccount"""
    return {
        'serviceid': 42,
        'pid': 3,
        'serverid': 0,
        'serverhostname': 'panel.example.com',
        'serverip': '',
        'serveraccesshash': 'good-key',
        'domain': 'server-1700000000-42',
        'password': 'client-pass',
        'configoption1': 'minecraft-java',
        'configoption2': '',
        'configoption3': '',
        'configoption4': 'yes',
        'configoption5': '',
        'customfields': {},
        'configoptions': {},
        'clientsdetails': {
            'userid': 7,
            'email': 'player@example.com',
            'firstname': 'Alex',
            'lastname': 'Stone',
        },
        'model': {'assignedips': '', 'dedicatedip': ''},
    }
