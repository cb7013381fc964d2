"""
Live GameCP server status and player-facing connection address
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from services.credentials import Credentials
from services.errors import RemoteFailure, TransportError
from services.gamecp_api import ApiFailure, ApiTransportError, first_present

logger = logging.getLogger(__name__)


@dataclass
class RemoteServer:
    server_id: str
    name: str = 'Game Server'
    status: str = 'unknown'
    node: Any = None
    assigned_ip_id: str = ''
    config_overrides: Dict[str, Any] = field(default_factory=dict)
    ports: List[Any] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    game_status: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], server_id: str = '') -> 'RemoteServer':
        """Build from a GET game-servers/{id} body, wrapped in 'gameServer' or flat"""
        data = payload.get('gameServer') if isinstance(payload.get('gameServer'), dict) else payload
        overrides = data.get('configOverrides') if isinstance(data.get('configOverrides'), dict) else {}
        return cls(
            server_id=str(data.get('serverId') or server_id),
            name=data.get('name') or 'Game Server',
            status=data.get('status') or 'unknown',
            node=data.get('nodeId'),
            assigned_ip_id=data.get('assignedIpId') or '',
            config_overrides=overrides,
            ports=_ports_of(data),
            metrics=data.get('metrics') or {},
            game_status=data.get('gameStatus'),
            raw=data,
        )


def _ports_of(server: Dict[str, Any]) -> List[Any]:
    # Overridden ports first, then the game config's native ones
    ports = first_present(
        server,
        ('configOverrides', 'gameConfig', 'ports'),
        ('gameConfig', 'ports'),
    )
    return ports if isinstance(ports, list) else []


def fetch_status(gateway, credentials: Credentials, server_id: str) -> RemoteServer:
    """
    Fetch live server state.

    Raises:
        TransportError: panel unreachable
        RemoteFailure: non-2xx response, empty body, or an 'error' flag in the body
    """
    result = gateway.call(credentials, f"game-servers/{server_id}", 'GET')

    if isinstance(result, ApiTransportError):
        raise TransportError(result.message)
    if isinstance(result, ApiFailure):
        raise RemoteFailure(result.http_status, result.message)

    payload = result.payload
    if not isinstance(payload, dict) or not payload:
        raise RemoteFailure(result.http_status, 'Empty server status response')
    if payload.get('error'):
        error = payload['error']
        raise RemoteFailure(result.http_status, error if isinstance(error, str) else 'Server status request failed')

    return RemoteServer.from_payload(payload, server_id)


def _primary_port(ports: List[Any]) -> str:
    if not ports:
        return ''
    first = ports[0]
    if isinstance(first, dict):
        port = first.get('host')
        if port in (None, ''):
            port = first.get('container')
    else:
        port = first
    return str(port) if port not in (None, '') else ''


def _node_ip(node: Any, assigned_ip_id: str) -> str:
    if not isinstance(node, dict):
        return ''

    if assigned_ip_id:
        for ip in node.get('ipAddresses') or []:
            if isinstance(ip, dict) and ip.get('_id') == assigned_ip_id:
                address = ip.get('external') or ip.get('internal') or ''
                if address:
                    return address
                break

    return node.get('primaryIp') or node.get('ip') or ''


def resolve_connection_address(server: Union[RemoteServer, Dict[str, Any]]) -> str:
    """
    Resolve 'ip:port' for players, e.g. '178.156.179.34:25565'.

    Returns '' when either the IP or the port cannot be determined.
    """
    if isinstance(server, dict):
        server = RemoteServer.from_payload(server)

    port = _primary_port(server.ports)
    ip = _node_ip(server.node, server.assigned_ip_id)

    if ip and port:
        return f"{ip}:{port}"
    logger.debug(f"No connection address for {server.server_id} (ip={ip!r}, port={port!r})")
    return ''
