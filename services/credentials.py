"""
GameCP credential resolution

Billing hooks do not always receive the server credentials directly (server
group assignments drop them), so the API endpoint and key are resolved from an
ordered chain of sources: direct params, the assigned server record, then the
product's server group. The first source that yields a key wins.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')


@dataclass(frozen=True)
class Credentials:
    endpoint: str
    key: str

    @property
    def complete(self) -> bool:
        return bool(self.endpoint) and bool(self.key)

    def __repr__(self) -> str:
        # Never expose the key itself
        return f"Credentials(endpoint={self.endpoint!r}, key=<{len(self.key)} chars>)"


def normalize_endpoint(endpoint: Optional[str]) -> str:
    """Ensure the endpoint carries a URL scheme, defaulting to https"""
    endpoint = (endpoint or '').strip()
    if endpoint and not _SCHEME_RE.match(endpoint):
        endpoint = f"https://{endpoint}"
    return endpoint


def _record_credentials(record: Optional[Dict[str, Any]]) -> Optional[Credentials]:
    if not record or not record.get('accesshash'):
        return None
    return Credentials(
        endpoint=record.get('hostname') or record.get('ipaddress') or '',
        key=record['accesshash'],
    )


def _direct_credentials(params: Dict[str, Any]) -> Credentials:
    return Credentials(
        endpoint=params.get('serverhostname') or params.get('serverip') or '',
        key=params.get('serveraccesshash') or '',
    )


def _as_positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class CredentialResolver:
    """Resolve (endpoint, key) for a hook invocation; never raises"""

    def __init__(self, store=None, server_type: str = 'gamecp'):
        self.store = store
        self.server_type = server_type
        self.resolvers: List[Callable[[Dict[str, Any]], Optional[Credentials]]] = [
            self.from_params,
            self.from_server_record,
            self.from_product_group,
        ]

    def from_params(self, params: Dict[str, Any]) -> Optional[Credentials]:
        creds = _direct_credentials(params)
        return creds if creds.key else None

    def from_server_record(self, params: Dict[str, Any]) -> Optional[Credentials]:
        server_id = _as_positive_int(params.get('serverid'))
        if self.store is None or server_id is None:
            return None
        return _record_credentials(self.store.get_server(server_id))

    def from_product_group(self, params: Dict[str, Any]) -> Optional[Credentials]:
        product_id = _as_positive_int(params.get('pid'))
        if self.store is None or product_id is None:
            return None
        product = self.store.get_product(product_id)
        if not product or not product.get('servergroup'):
            return None
        record = self.store.find_group_server(product['servergroup'], self.server_type)
        return _record_credentials(record)

    def resolve(self, params: Dict[str, Any]) -> Credentials:
        for resolver in self.resolvers:
            try:
                creds = resolver(params)
            except Exception as e:
                logger.warning(f"⚠️ Credential lookup {resolver.__name__} failed, trying next source: {e}")
                continue
            if creds is not None and creds.key:
                logger.debug(f"🔑 GameCP credentials resolved via {resolver.__name__}")
                return Credentials(normalize_endpoint(creds.endpoint), creds.key)

        creds = _direct_credentials(params)
        return Credentials(normalize_endpoint(creds.endpoint), creds.key)
