"""
GameCP Provisioning Orchestrator - billing hook entry points

Create flow (strictly ordered, terminal on first unrecoverable failure):
  credentials → remote user binding → game type → payload → create → identifier → persist

Lifecycle hooks (suspend, unsuspend, terminate) are single control calls against
the stored server identifier. Every entry point returns a HookResult and never
lets an exception escape to the billing system.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from monitoring.module_log import ModuleCallLog, get_module_log
from services.config_overrides import overrides_from_params
from services.credentials import CredentialResolver, Credentials
from services.errors import (
    CredentialsMissing,
    GameCPError,
    GameTypeMissing,
    HookResult,
    IdentifierMissing,
    ProvisioningFailed,
    RemoteFailure,
    TransportError,
    UserBindingFailed,
)
from services.gamecp_api import ApiFailure, ApiResult, ApiSuccess, ApiTransportError, first_present
from services.naming import SERVER_ID_FIELD, SERVER_NAME_FIELD, resolve_server_id, server_name_for

logger = logging.getLogger(__name__)

AUTO_INSTALL_VALUES = ('yes', 'on', '1')
POWER_ACTIONS = ('start', 'stop', 'restart')


@dataclass
class ProvisioningRequest:
    display_name: str
    game_type_id: str
    owner_user_id: str
    auto_install: bool = False
    overrides: Dict[str, Any] = field(default_factory=dict)
    node_id: Optional[str] = None
    location: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            'name': self.display_name,
            'gameId': self.game_type_id,
            'ownerId': self.owner_user_id,
            'startAfterInstall': True,
            'autoInstall': self.auto_install,
            'configOverrides': self.overrides,
            'assignmentType': 'automatic',
        }
        if self.node_id:
            payload['nodeId'] = self.node_id
        if self.location:
            payload['location'] = self.location
        return payload


def _option(params: Dict[str, Any], name: str) -> str:
    value = params.get(name)
    return str(value).strip() if value is not None else ''


def raise_for_result(result: ApiResult) -> ApiSuccess:
    """Map a gateway failure onto the error taxonomy"""
    if isinstance(result, ApiTransportError):
        raise TransportError(result.message)
    if isinstance(result, ApiFailure):
        raise RemoteFailure(result.http_status, result.message)
    return result


class GameCPProvisioningOrchestrator:
    """
    Entry points for the billing system's module hooks.

    Collaborators are injected: the gateway (live or mock), the billing store
    used for credential fallback and record writes, the billing command API
    for custom fields, and the module call log.
    """

    def __init__(
        self,
        gateway,
        store=None,
        billing_api=None,
        module_log: Optional[ModuleCallLog] = None,
        server_type: str = 'gamecp'
    ):
        self.gateway = gateway
        self.store = store
        self.billing_api = billing_api
        self.module_log = module_log or get_module_log()
        self.credential_resolver = CredentialResolver(store, server_type)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def resolve_credentials(self, params: Dict[str, Any]) -> Credentials:
        return self.credential_resolver.resolve(params)

    def require_credentials(self, params: Dict[str, Any]) -> Credentials:
        creds = self.resolve_credentials(params)
        if not creds.endpoint:
            raise CredentialsMissing('GameCP API endpoint (hostname or IP) is not configured')
        if not creds.key:
            raise CredentialsMissing('GameCP API key (access hash) is not configured')
        return creds

    def require_server_id(self, params: Dict[str, Any]) -> str:
        server_id = resolve_server_id(params)
        if not server_id:
            raise IdentifierMissing()
        return server_id

    def send_power_action(self, creds: Credentials, server_id: str, action: str) -> None:
        """POST a start/stop/restart control call; raises on failure"""
        if action not in POWER_ACTIONS:
            raise ValueError(f"Unsupported power action: {action}")
        result = raise_for_result(
            self.gateway.call(creds, f"game-servers/{server_id}/control", 'POST', {'action': action})
        )
        _raise_for_soft_failure(result, f"Failed to {action} server")

    # ------------------------------------------------------------------
    # Remote user binding
    # ------------------------------------------------------------------

    def find_user_by_email(self, creds: Credentials, email: str) -> Optional[Dict[str, Any]]:
        """Look a user up by email; lookup failures count as 'not found'"""
        result = self.gateway.call(creds, f"users?{urlencode({'email': email})}", 'GET')
        if not isinstance(result, ApiSuccess):
            logger.warning(f"⚠️ GameCP user lookup failed for {email}: {result.message}")
            return None

        users = first_present(result.payload, ('data', 'users'), ('users',))
        if isinstance(users, list) and users and isinstance(users[0], dict):
            return users[0]
        return None

    def ensure_user_exists(self, creds: Credentials, user_data: Dict[str, Any]) -> str:
        """
        Find or create the GameCP user for an email address.

        Returns:
            The remote user id

        Raises:
            UserBindingFailed: neither lookup nor create produced an id
        """
        email = (user_data.get('email') or '').strip()
        if not email:
            raise UserBindingFailed('Client email address is missing')

        user = self.find_user_by_email(creds, email)
        if user and user.get('_id'):
            logger.info(f"👤 GameCP user already exists for {email}: {user['_id']}")
            return str(user['_id'])

        result = self.gateway.call(creds, 'settings/users', 'POST', {**user_data, 'email': email})
        if isinstance(result, ApiSuccess):
            # Created user comes back flat or wrapped in 'user'
            user_id = first_present(result.payload, ('_id',), ('user', '_id'))
            if user_id:
                logger.info(f"✅ Created GameCP user for {email}: {user_id}")
                return str(user_id)
            raise UserBindingFailed()

        # A rejected key is a credentials problem, not a binding one
        if isinstance(result, ApiFailure) and result.http_status == 401:
            raise RemoteFailure(result.http_status, result.message)
        raise UserBindingFailed(f"Could not find or create user in GameCP: {result.message}")

    # ------------------------------------------------------------------
    # Server creation
    # ------------------------------------------------------------------

    def resolve_game_type(self, params: Dict[str, Any]) -> str:
        game_type = _option(params, 'configoption1')
        if not game_type:
            game_type = str((params.get('customfields') or {}).get('Game Config ID') or '').strip()
        if not game_type:
            raise GameTypeMissing()
        return game_type

    def build_provisioning_request(self, params: Dict[str, Any], owner_user_id: str, game_type_id: str) -> ProvisioningRequest:
        return ProvisioningRequest(
            display_name=server_name_for(params, self.store),
            game_type_id=game_type_id,
            owner_user_id=owner_user_id,
            auto_install=_option(params, 'configoption4').lower() in AUTO_INSTALL_VALUES,
            overrides=overrides_from_params(params),
            node_id=_option(params, 'configoption2') or None,
            location=_option(params, 'configoption3') or None,
        )

    def create_game_server(self, creds: Credentials, request: ProvisioningRequest) -> str:
        """
        Submit the creation request and return the new server identifier.

        Raises:
            ProvisioningFailed: API error, unreachable panel, or no identifier in the response
        """
        result = self.gateway.call(creds, 'game-servers', 'POST', request.to_payload())

        if isinstance(result, ApiTransportError):
            raise ProvisioningFailed(result.message)
        if isinstance(result, ApiFailure):
            raise ProvisioningFailed(result.message, status=result.http_status)

        # Current panels nest the server; older ones answer flat
        server_id = first_present(result.payload, ('gameServer', 'serverId'), ('serverId',))
        if not server_id:
            raise ProvisioningFailed('no identifier returned', status=result.http_status)
        return str(server_id)

    def create_account(self, params: Dict[str, Any]) -> HookResult:
        """Provision a game server for a paid order"""
        try:
            creds = self.require_credentials(params)
            client = params.get('clientsdetails') or {}
            email = (client.get('email') or '').strip()

            self.module_log.record('CreateAccount', request={
                'email': email,
                'serviceid': params.get('serviceid'),
                'gameConfigId': _option(params, 'configoption1'),
            })

            owner_id = self.ensure_user_exists(creds, {
                'email': email,
                'firstName': client.get('firstname') or '',
                'lastName': client.get('lastname') or '',
                'role': 'user',
                'password': params.get('password') or '',
            })
            self.update_service_record(params, {'username': email}, 'SetUsername')

            game_type = self.resolve_game_type(params)
            request = self.build_provisioning_request(params, owner_id, game_type)
            logger.info(f"🚀 Creating GameCP server '{request.display_name}' (game {game_type}) for {email}")

            server_id = self.create_game_server(creds, request)
            logger.info(f"✅ GameCP server created: {server_id} for service {params.get('serviceid')}")

            self.update_service_record(params, {'assignedips': server_id, 'dedicatedip': '', 'domain': ''}, 'SaveServerId')
            self._save_custom_fields(params, {SERVER_ID_FIELD: server_id, SERVER_NAME_FIELD: request.display_name})
            return HookResult.ok()

        except GameCPError as e:
            return self._failed('CreateAccount', params, e)
        except Exception as e:
            logger.exception(f"❌ Unexpected error creating GameCP server for service {params.get('serviceid')}")
            self.module_log.record_exception('CreateAccount', e, request={'serviceid': params.get('serviceid')})
            return HookResult.from_error(ProvisioningFailed(str(e) or type(e).__name__))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _lifecycle(self, params: Dict[str, Any], hook: str, verb: str, perform) -> HookResult:
        try:
            creds = self.require_credentials(params)
            server_id = self.require_server_id(params)
            perform(creds, server_id)
            logger.info(f"✅ {hook}: GameCP server {server_id} {verb}")
            return HookResult.ok()
        except GameCPError as e:
            return self._failed(hook, params, e)
        except Exception as e:
            logger.exception(f"❌ Unexpected error in {hook} for service {params.get('serviceid')}")
            self.module_log.record_exception(hook, e, request={'serviceid': params.get('serviceid')})
            return HookResult.from_error(RemoteFailure(None, str(e) or type(e).__name__))

    def suspend_account(self, params: Dict[str, Any]) -> HookResult:
        """Suspend: stop the game server"""
        return self._lifecycle(params, 'SuspendAccount', 'stopped',
                               lambda creds, server_id: self.send_power_action(creds, server_id, 'stop'))

    def unsuspend_account(self, params: Dict[str, Any]) -> HookResult:
        """Unsuspend: start the game server"""
        return self._lifecycle(params, 'UnsuspendAccount', 'started',
                               lambda creds, server_id: self.send_power_action(creds, server_id, 'start'))

    def terminate_account(self, params: Dict[str, Any]) -> HookResult:
        """Terminate: delete the game server and forget its identifier"""
        def delete(creds: Credentials, server_id: str):
            result = raise_for_result(self.gateway.call(creds, f"game-servers/{server_id}", 'DELETE'))
            _raise_for_soft_failure(result, 'Failed to terminate server')
            self.update_service_record(params, {'assignedips': '', 'dedicatedip': ''}, 'ClearServerId')
            self._save_custom_fields(params, {SERVER_ID_FIELD: ''})

        return self._lifecycle(params, 'TerminateAccount', 'deleted', delete)

    # ------------------------------------------------------------------
    # Connection test
    # ------------------------------------------------------------------

    def test_connection(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Check endpoint and key against the panel; returns {'success', 'error'[, 'http_status']}"""
        try:
            creds = self.resolve_credentials(params)
            if not creds.endpoint:
                return {'success': False, 'error': 'Hostname or IP Address is required'}
            if not creds.key:
                return {'success': False, 'error': 'API Key (Access Hash) is required'}

            result = self.gateway.call(creds, 'users?limit=1', 'GET')

            if isinstance(result, ApiTransportError):
                return {'success': False, 'error': f"Connection error: {result.message}"}
            if isinstance(result, ApiFailure):
                return {'success': False, 'error': _connection_test_message(result, creds),
                        'http_status': result.http_status}

            payload = result.payload
            if not payload or not isinstance(payload, dict):
                return {'success': False, 'error': 'Received invalid JSON response.'}
            if 'users' not in payload and 'data' not in payload:
                return {'success': False, 'error': 'Unexpected response structure.'}

            return {'success': True, 'error': ''}

        except Exception as e:
            self.module_log.record_exception('TestConnection', e)
            return {'success': False, 'error': f"Connection test failed: {e}"}

    # ------------------------------------------------------------------
    # Best-effort side effects
    # ------------------------------------------------------------------

    def update_service_record(self, params: Dict[str, Any], fields: Dict[str, Any], action: str) -> bool:
        service_id = params.get('serviceid')
        if self.store is None or not service_id:
            return False
        try:
            return bool(self.store.update_service(int(service_id), fields))
        except Exception as e:
            logger.warning(f"⚠️ {action}: could not update service {service_id}: {e}")
            self.module_log.record(f"{action}_Error", request={'serviceid': service_id, 'fields': fields},
                                   response=str(e))
            return False

    def _save_custom_fields(self, params: Dict[str, Any], values: Dict[str, Any]) -> bool:
        service_id = params.get('serviceid')
        if self.billing_api is None or not service_id:
            return False
        try:
            return bool(self.billing_api.save_custom_fields(service_id, values))
        except Exception as e:
            logger.warning(f"⚠️ Could not save custom fields on service {service_id}: {e}")
            self.module_log.record('SaveCustomField_Error', request={'serviceid': service_id, 'fields': list(values)},
                                   response=str(e))
            return False

    def _failed(self, hook: str, params: Dict[str, Any], error: GameCPError) -> HookResult:
        logger.error(f"❌ {hook} failed for service {params.get('serviceid')}: [{error.kind}] {error.message}")
        self.module_log.record(hook, request={'serviceid': params.get('serviceid')},
                               response=error.message, processed={'kind': error.kind,
                                                                  'http_status': getattr(error, 'status', None)})
        return HookResult.from_error(error)


def _raise_for_soft_failure(result: ApiSuccess, message: str):
    # Some panel versions answer 200 with {"success": false, "error": "..."}
    payload = result.payload
    if isinstance(payload, dict) and payload.get('success') is False:
        error = payload.get('error') or payload.get('message')
        raise RemoteFailure(result.http_status, error if isinstance(error, str) and error else message)


def _connection_test_message(result: ApiFailure, creds: Credentials) -> str:
    if result.http_status == 401:
        return 'Authentication failed. Check your API Key.'
    if result.http_status == 404:
        return 'API endpoint not found. Verify your hostname.'
    if result.http_status == 0:
        return f"Could not connect to {creds.endpoint}"
    return f"API returned HTTP {result.http_status}"
