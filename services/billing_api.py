"""
Billing system command API client
Persists custom field values onto a service via UpdateClientProduct
"""

import base64
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from monitoring.module_log import ModuleCallLog, get_module_log

logger = logging.getLogger(__name__)


def php_serialize_strings(values: Mapping[str, Any]) -> str:
    """Serialize a flat string map the way PHP's serialize() does"""
    parts = []
    for key, value in values.items():
        for item in (str(key), '' if value is None else str(value)):
            encoded = item.encode('utf-8')
            parts.append(f's:{len(encoded)}:"{item}";')
    return f"a:{len(values)}:{{{''.join(parts)}}}"


def encode_custom_fields(values: Mapping[str, Any]) -> str:
    return base64.b64encode(php_serialize_strings(values).encode('utf-8')).decode('ascii')


class BillingApiClient:
    """Best-effort writer; every public method returns a discardable bool"""

    def __init__(
        self,
        url: Optional[str],
        identifier: Optional[str],
        secret: Optional[str],
        timeout: float = 15.0,
        module_log: Optional[ModuleCallLog] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.identifier = identifier
        self.secret = secret
        self.timeout = timeout
        self.module_log = module_log or get_module_log()
        self.transport = transport
        self.api_url = None
        if url:
            url = url.rstrip('/')
            self.api_url = url if url.endswith('.php') else f"{url}/includes/api.php"

    @classmethod
    def from_config(cls, config, module_log: Optional[ModuleCallLog] = None) -> 'BillingApiClient':
        return cls(config.url, config.identifier, config.secret, config.timeout, module_log)

    @property
    def enabled(self) -> bool:
        return bool(self.api_url and self.identifier and self.secret)

    def _command(self, action: str, data: Dict[str, Any]) -> Any:
        form = {
            'action': action,
            'identifier': self.identifier,
            'secret': self.secret,
            'responsetype': 'json',
            **data,
        }
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.api_url, data=form)
        try:
            return response.json()
        except ValueError:
            return {'result': 'error', 'message': f"HTTP {response.status_code}: non-JSON response"}

    def save_custom_fields(self, service_id: Any, values: Mapping[str, Any]) -> bool:
        """Save custom field values on a service. Never raises."""
        if not self.enabled:
            logger.debug(f"Billing API not configured - skipping custom field save for service {service_id}")
            return False

        request_meta = {'serviceid': service_id, 'fields': list(values)}
        try:
            results = self._command('UpdateClientProduct', {
                'serviceid': service_id,
                'customfields': encode_custom_fields(values),
            })
        except Exception as e:
            logger.warning(f"⚠️ Billing API call failed for service {service_id}: {e}")
            self.module_log.record('SaveCustomField', request=request_meta, response=str(e))
            return False

        if not isinstance(results, dict):
            results = {'result': 'error', 'message': f"unexpected response: {results!r}"}

        if results.get('result') == 'success':
            logger.info(f"✅ Saved custom fields {list(values)} on service {service_id}")
            return True

        logger.warning(f"⚠️ Billing API rejected custom field save for service {service_id}: {results.get('message')}")
        self.module_log.record('SaveCustomField', request=request_meta, response='LocalAPI failed', processed=results)
        return False

    def save_custom_field(self, service_id: Any, field_name: str, field_value: Any) -> bool:
        return self.save_custom_fields(service_id, {field_name: field_value})
