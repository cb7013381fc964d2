"""Single sign-on redirects into the GameCP web UI"""

import logging
from typing import Any, Dict, Optional

from monitoring.module_log import ModuleCallLog, get_module_log
from services.credentials import CredentialResolver, normalize_endpoint
from services.gamecp_api import ApiSuccess, first_present
from services.naming import resolve_server_id

logger = logging.getLogger(__name__)


def _direct_panel_url(params: Dict[str, Any]) -> str:
    return normalize_endpoint(params.get('serverhostname') or params.get('serverip') or '').rstrip('/')


class SingleSignOn:
    def __init__(self, gateway, store=None, module_log: Optional[ModuleCallLog] = None, server_type: str = 'gamecp'):
        self.gateway = gateway
        self.module_log = module_log or get_module_log()
        self.credential_resolver = CredentialResolver(store, server_type)

    def service_sso(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Exchange a short-lived SSO token for a login URL scoped to the
        service's game server, or to the panel root when none exists.
        """
        try:
            creds = self.credential_resolver.resolve(params)
            base_url = creds.endpoint.rstrip('/')
            if not creds.complete:
                logger.warning("⚠️ GameCP credentials incomplete - skipping SSO token request")
                return {'success': True, 'redirectTo': base_url}

            server_id = resolve_server_id(params)
            email = (params.get('clientsdetails') or {}).get('email') or ''

            result = self.gateway.call(creds, 'auth/sso-token', 'POST', {
                'email': email,
                'redirectTo': f"/game-servers/{server_id}" if server_id else '/',
                'baseUrl': base_url,
            })

            sso_url = first_present(result.payload, ('ssoUrl',), ('data', 'ssoUrl')) \
                if isinstance(result, ApiSuccess) else None
            if sso_url:
                return {'success': True, 'redirectTo': sso_url}

            logger.warning(f"⚠️ No SSO URL for {email or 'unknown client'}, redirecting to panel root")
            return {'success': True, 'redirectTo': base_url}

        except Exception as e:
            logger.error(f"❌ Service SSO failed: {e}")
            self.module_log.record_exception('ServiceSingleSignOn', e, request={'serviceid': params.get('serviceid')})
            return {'success': True, 'redirectTo': _direct_panel_url(params)}

    def admin_sso(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Send an administrator to the panel's settings page"""
        try:
            return {'success': True, 'redirectTo': f"{_direct_panel_url(params)}/settings"}
        except Exception as e:
            self.module_log.record_exception('AdminSingleSignOn', e)
            return {'success': True, 'redirectTo': ''}
