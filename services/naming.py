"""Server identifier lookup and display-name generation"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict

logger = logging.getLogger(__name__)

SERVER_ID_FIELD = 'GameCP Server ID'
SERVER_NAME_FIELD = 'GameCP Server Name'
DEFAULT_NAME_FORMAT = '{product}'
DEFAULT_PRODUCT_NAME = 'Game Server'

# Hostnames the billing system invents when the customer gives none
_PLACEHOLDER_DOMAIN_RE = re.compile(r'^server-\d+-\d+$')


def _field(source: Any, name: str) -> Any:
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


def _clean(value: Any) -> str:
    return str(value).strip() if value not in (None, '') else ''


def resolve_server_id(params: Dict[str, Any]) -> str:
    """
    Get the GameCP server ID stored on the service.

    Checks: assigned IPs (current) -> dedicated IP (legacy) -> custom field.
    """
    model = params.get('model') or {}
    custom_fields = params.get('customfields') or {}
    return (
        _clean(_field(model, 'assignedips'))
        or _clean(_field(model, 'dedicatedip'))
        or _clean(custom_fields.get(SERVER_ID_FIELD))
    )


@dataclass(frozen=True)
class NameContext:
    product: str = DEFAULT_PRODUCT_NAME
    service_id: str = ''
    domain: str = ''
    client_name: str = ''
    client_id: str = ''


def is_placeholder_domain(domain: str) -> bool:
    return bool(_PLACEHOLDER_DOMAIN_RE.match(domain or ''))


def generate_server_name(template: str, context: NameContext) -> str:
    """Substitute {product}, {serviceid}, {domain}, {clientname} into the template"""
    template = (template or '').strip() or DEFAULT_NAME_FORMAT
    domain = '' if is_placeholder_domain(context.domain) else context.domain

    name = template
    for placeholder, value in (
        ('{product}', context.product),
        ('{serviceid}', context.service_id),
        ('{domain}', domain),
        ('{clientname}', context.client_name),
    ):
        name = name.replace(placeholder, value or '')

    name = name.strip()
    if name:
        return name
    return f"Game Server #{context.service_id or context.client_id}"


def get_product_name(params: Dict[str, Any], store=None) -> str:
    """Resolve the product name, defaulting to 'Game Server'"""
    product_id = params.get('pid')
    if store is not None and product_id:
        try:
            product = store.get_product(int(product_id))
            if product and product.get('name'):
                return product['name']
        except Exception as e:
            logger.warning(f"⚠️ Product lookup failed for pid={product_id}: {e}")
    return DEFAULT_PRODUCT_NAME


def build_name_context(params: Dict[str, Any], store=None) -> NameContext:
    client = params.get('clientsdetails') or {}
    client_name = f"{client.get('firstname') or ''} {client.get('lastname') or ''}".strip()
    return NameContext(
        product=get_product_name(params, store),
        service_id=_clean(params.get('serviceid')),
        domain=_clean(params.get('domain')),
        client_name=client_name,
        client_id=_clean(client.get('userid')),
    )


def server_name_for(params: Dict[str, Any], store=None) -> str:
    """Display name for a new server from the product's name format (config option 5)"""
    return generate_server_name(params.get('configoption5') or '', build_name_context(params, store))
