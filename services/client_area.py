"""
Client area view model: live status, power controls and connection info
"""

import logging
from typing import Any, Dict, Optional

from monitoring.module_log import ModuleCallLog, get_module_log
from services.errors import GameCPError
from services.naming import resolve_server_id
from services.provisioning_orchestrator import POWER_ACTIONS
from services.status_resolver import fetch_status, resolve_connection_address

logger = logging.getLogger(__name__)

TEMPLATE_FILE = 'clientarea'


def _view(**variables) -> Dict[str, Any]:
    return {'templatefile': TEMPLATE_FILE, 'vars': variables}


class ClientAreaController:
    def __init__(self, orchestrator, sso=None, module_log: Optional[ModuleCallLog] = None):
        self.orchestrator = orchestrator
        self.sso = sso
        self.module_log = module_log or get_module_log()

    def login_redirect(self, params: Dict[str, Any]) -> Optional[str]:
        """URL for the 'log in to control panel' link, if SSO is available"""
        if self.sso is None:
            return None
        result = self.sso.service_sso(params)
        return result.get('redirectTo') or None

    def _run_action(self, creds, server_id: str, action: str) -> str:
        try:
            self.orchestrator.send_power_action(creds, server_id, action)
            return f"{action.capitalize()} command sent successfully."
        except GameCPError as e:
            return f"Failed to {action} server: {e.message}"

    def render(self, params: Dict[str, Any], action: Optional[str] = None) -> Dict[str, Any]:
        service_id = params.get('serviceid')
        try:
            creds = self.orchestrator.require_credentials(params)
            server_id = resolve_server_id(params)
            message = None

            if action and server_id:
                if action in POWER_ACTIONS:
                    message = self._run_action(creds, server_id, action)
                else:
                    logger.warning(f"⚠️ Ignoring unsupported client area action {action!r}")

            if not server_id:
                return _view(error='Server not yet provisioned or ID missing.', serviceid=service_id)

            try:
                server = fetch_status(self.orchestrator.gateway, creds, server_id)
            except GameCPError as e:
                logger.warning(f"⚠️ Status fetch failed for {server_id}: {e.message}")
                return _view(error='Unable to retrieve server status from GameCP.',
                             serverId=server_id, serviceid=service_id)

            connection_address = resolve_connection_address(server)
            if connection_address:
                # Show the real address on the service record (dedicated IP column)
                self.orchestrator.update_service_record(params, {'dedicatedip': connection_address}, 'SyncConnectionAddress')

            return _view(
                serverName=server.name,
                serverId=server_id,
                status=server.status,
                metrics=server.metrics,
                gameStatus=server.game_status,
                connectionAddress=connection_address,
                serviceid=service_id,
                message=message,
            )

        except GameCPError as e:
            logger.warning(f"⚠️ Client area unavailable for service {service_id}: {e.message}")
            return _view(error=f"Error: {e.message}", serviceid=service_id)
        except Exception as e:
            logger.exception(f"❌ Client area failed for service {service_id}")
            self.module_log.record_exception('ClientArea', e, request={'serviceid': service_id})
            return _view(error=f"Error: {e}", serviceid=service_id)
