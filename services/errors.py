"""
GameCP error taxonomy and the outcome returned to billing hooks
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


class GameCPError(Exception):
    """Base class for every failure a hook can report"""
    kind = 'gamecp_error'
    default_message = 'GameCP request failed'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class CredentialsMissing(GameCPError):
    kind = 'credentials_missing'
    default_message = 'GameCP API endpoint or API key is not configured'


class UserBindingFailed(GameCPError):
    kind = 'user_binding_failed'
    default_message = 'Could not find or create user in GameCP'


class GameTypeMissing(GameCPError):
    kind = 'game_type_missing'
    default_message = 'Game Config ID is required but not set'


class IdentifierMissing(GameCPError):
    kind = 'identifier_missing'
    default_message = 'GameCP Server ID not found'


class TransportError(GameCPError):
    """The remote API could not be reached (DNS, connect, timeout)"""
    kind = 'transport_error'
    default_message = 'Could not connect to GameCP'


class RemoteFailure(GameCPError):
    """The remote API answered with an error"""
    kind = 'remote_failure'

    def __init__(self, status: Optional[int], message: Optional[str] = None):
        self.status = status
        if message is None and status:
            message = f"API request failed (HTTP {status})"
        super().__init__(message)


class ProvisioningFailed(RemoteFailure):
    """Game server creation did not produce a usable server"""
    kind = 'provisioning_failed'
    default_message = 'Failed to create game server'

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        super().__init__(status, message or self.default_message)


@dataclass(frozen=True)
class HookResult:
    """Well-formed outcome of one billing hook invocation"""
    success: bool
    message: str = ''
    kind: Optional[str] = None
    http_status: Optional[int] = None

    @classmethod
    def ok(cls) -> 'HookResult':
        return cls(success=True)

    @classmethod
    def from_error(cls, error: GameCPError) -> 'HookResult':
        return cls(
            success=False,
            message=error.message,
            kind=error.kind,
            http_status=getattr(error, 'status', None),
        )

    def to_module_response(self) -> str:
        """Render as the billing system expects: 'success' or 'error: ...'"""
        return 'success' if self.success else f"error: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'result': self.to_module_response(),
            'kind': self.kind,
            'message': self.message,
            'http_status': self.http_status,
        }
