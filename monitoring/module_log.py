"""
Module Call Log - structured record of every GameCP call and hook failure
Mirrors the billing system's module log: request, raw response, processed data
"""

import json
import logging
import traceback
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

# Register custom AUDIT log level (between INFO and WARNING)
AUDIT_LEVEL = 25
logging.addLevelName(AUDIT_LEVEL, 'AUDIT')
logging.AUDIT = AUDIT_LEVEL  # type: ignore

logger = logging.getLogger(__name__)

# Field names whose values never reach a log sink in clear text
SECRET_FIELDS = frozenset({
    'serveraccesshash', 'accesshash', 'serverpassword', 'password',
    'key', 'apikey', 'api_key', 'secret', 'authorization', 'token', 'ssourl',
})


def redact(value: Any) -> Any:
    """Return a copy of value with secret fields replaced by their length"""
    if isinstance(value, dict):
        cleaned = {}
        for k, v in value.items():
            if isinstance(k, str) and k.lower() in SECRET_FIELDS and v not in (None, ''):
                cleaned[k] = f"<redacted:{len(str(v))} chars>"
            else:
                cleaned[k] = redact(v)
        return cleaned
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


@dataclass
class ModuleCallEntry:
    """Structured module log entry"""
    timestamp: str
    module: str
    action: str
    request: Any
    response: Any
    processed: Any = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


class ModuleCallLog:
    """Fire-and-forget sink for external calls and orchestration failures"""

    def __init__(self, module: str = 'gamecp'):
        self.module = module
        self.handlers: List[Callable[[ModuleCallEntry], None]] = []

    def add_handler(self, handler: Callable[[ModuleCallEntry], None]):
        """Add custom entry handler (database writer, test recorder, ...)"""
        self.handlers.append(handler)

    def record(
        self,
        action: str,
        request: Any = None,
        response: Any = None,
        processed: Any = None,
        **context
    ) -> bool:
        """
        Record one call. Never raises.

        Returns:
            True if the entry reached every handler, False otherwise
        """
        try:
            entry = ModuleCallEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                module=self.module,
                action=action,
                request=redact(request),
                response=redact(response),
                processed=redact(processed),
                context=redact(context),
            )
        except Exception as e:
            logger.error(f"❌ Could not build module log entry for {action}: {e}")
            return False

        delivered = True
        try:
            logger.log(AUDIT_LEVEL, f"📝 {self.module}.{action}: {json.dumps(entry.to_dict(), default=str)}")
        except Exception as e:
            logger.error(f"❌ Module log serialization error for {action}: {e}")
            delivered = False

        for handler in self.handlers:
            try:
                handler(entry)
            except Exception as e:
                logger.error(f"❌ Module log handler error: {e}")
                delivered = False

        return delivered

    def record_exception(self, action: str, error: BaseException, request: Any = None) -> bool:
        """Record an unexpected failure with its traceback"""
        trace = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        return self.record(
            action,
            request=request,
            response=str(error),
            processed={'error_type': type(error).__name__, 'traceback': trace},
        )


# Global module log instance
_module_log: Optional[ModuleCallLog] = None


def get_module_log() -> ModuleCallLog:
    """Get global module log instance"""
    global _module_log
    if _module_log is None:
        _module_log = ModuleCallLog()
    return _module_log
