"""
GameCP API Gateway
Authenticated JSON calls against the GameCP management API

Every call yields exactly one ApiResult:
  - ApiSuccess        HTTP 2xx, parsed JSON payload (None for empty/non-JSON bodies)
  - ApiFailure        any other HTTP status, with the API's error message/code
  - ApiTransportError the request never produced a response (DNS, connect, timeout)
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import requests

from monitoring.module_log import ModuleCallLog, get_module_log
from services.credentials import Credentials

logger = logging.getLogger(__name__)

API_PREFIX = '/api/'


@dataclass(frozen=True)
class ApiSuccess:
    payload: Any
    http_status: int = 200
    raw_body: Optional[str] = None
    ok = True


@dataclass(frozen=True)
class ApiFailure:
    http_status: int
    message: str
    code: str = 'UNKNOWN'
    details: Any = None
    raw_body: Any = None
    ok = False


@dataclass(frozen=True)
class ApiTransportError:
    message: str
    ok = False


ApiResult = Union[ApiSuccess, ApiFailure, ApiTransportError]


def build_api_url(endpoint: str, path: str) -> str:
    """Join the endpoint base, the fixed API prefix and a relative path"""
    return endpoint.rstrip('/') + API_PREFIX + path.lstrip('/')


def first_present(payload: Any, *paths: Tuple[str, ...]) -> Any:
    """
    Return the first non-empty value found along the given key paths.

    Example:
        first_present(body, ('gameServer', 'serverId'), ('serverId',))
    """
    for path in paths:
        value = payload
        for key in path:
            if not isinstance(value, dict) or key not in value:
                value = None
                break
            value = value[key]
        if value not in (None, '', [], {}):
            return value
    return None


def _parse_json(text: Optional[str]) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def classify_response(status: int, text: Optional[str]) -> ApiResult:
    """Turn an HTTP status and body into an ApiResult"""
    decoded = _parse_json(text)

    if 200 <= status < 300:
        return ApiSuccess(payload=decoded, http_status=status, raw_body=text)

    message = None
    code = 'UNKNOWN'
    details = None
    if isinstance(decoded, dict):
        error = decoded.get('error')
        if isinstance(error, dict):
            message = error.get('message')
            code = error.get('code') or code
        elif isinstance(error, str) and error:
            message = error
        if not message and isinstance(decoded.get('message'), str):
            message = decoded['message']
        code = decoded.get('code') or code
        details = decoded.get('details')

    return ApiFailure(
        http_status=status,
        message=message or f"API request failed (HTTP {status})",
        code=str(code),
        details=details,
        raw_body=decoded if decoded is not None else text,
    )


class GameCPGateway:
    """Base gateway: URL building and call logging; subclasses perform the request"""

    def __init__(self, module_log: Optional[ModuleCallLog] = None):
        self.module_log = module_log or get_module_log()

    def call(
        self,
        credentials: Credentials,
        path: str,
        method: str = 'GET',
        body: Optional[Dict[str, Any]] = None
    ) -> ApiResult:
        url = build_api_url(credentials.endpoint, path)
        method = method.upper()
        started = time.monotonic()

        result = self._execute(credentials, url, path, method, body)

        duration_ms = round((time.monotonic() - started) * 1000, 1)
        self._log_call(credentials, url, method, body, result, duration_ms)
        return result

    def _execute(
        self,
        credentials: Credentials,
        url: str,
        path: str,
        method: str,
        body: Optional[Dict[str, Any]]
    ) -> ApiResult:
        raise NotImplementedError

    def _log_call(self, credentials, url, method, body, result: ApiResult, duration_ms: float):
        request_meta = {
            'url': url,
            'method': method,
            'has_api_key': bool(credentials.key),
            'api_key_length': len(credentials.key),
            'body': body,
        }
        if isinstance(result, ApiSuccess):
            response = result.payload if result.payload is not None else result.raw_body
            processed = {'http_code': result.http_status, 'outcome': 'success'}
            logger.info(f"✅ GameCP {method} {url} -> HTTP {result.http_status} ({duration_ms}ms)")
        elif isinstance(result, ApiFailure):
            response = result.raw_body
            processed = {'http_code': result.http_status, 'outcome': 'failure',
                         'message': result.message, 'code': result.code}
            logger.warning(f"⚠️ GameCP {method} {url} -> HTTP {result.http_status}: {result.message}")
        else:
            response, processed = result.message, {'http_code': 0, 'outcome': 'transport_error'}
            logger.error(f"❌ GameCP {method} {url} unreachable: {result.message}")

        processed['duration_ms'] = duration_ms
        self.module_log.record('ApiCall', request=request_meta, response=response, processed=processed)


class HttpGateway(GameCPGateway):
    """Gateway that talks to a live GameCP panel over HTTPS"""

    def __init__(
        self,
        connect_timeout: float = 10.0,
        request_timeout: float = 30.0,
        module_log: Optional[ModuleCallLog] = None
    ):
        super().__init__(module_log)
        self.timeout = (connect_timeout, request_timeout)

    def _execute(self, credentials, url, path, method, body) -> ApiResult:
        headers = {
            'Authorization': f'Bearer {credentials.key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            return ApiTransportError(f"Request timed out: {e}")
        except requests.exceptions.RequestException as e:
            return ApiTransportError(str(e) or type(e).__name__)

        return classify_response(response.status_code, response.text)


class MockGateway(GameCPGateway):
    """
    Gateway answering from a table of canned responses.

    Lookup order: exact URL, then relative path, then the first key that is a
    substring of the URL. Values may be JSON strings, decoded objects, ApiResult
    instances, or False to simulate an unreachable panel.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None, module_log: Optional[ModuleCallLog] = None):
        super().__init__(module_log)
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls = []

    @classmethod
    def from_file(cls, path: str, module_log: Optional[ModuleCallLog] = None) -> 'MockGateway':
        with open(path, encoding='utf-8') as f:
            responses = json.load(f)
        if not isinstance(responses, dict):
            raise ValueError(f"Mock response file {path} must contain a JSON object")
        return cls(responses, module_log)

    def calls_to(self, method: str, path_fragment: str) -> int:
        """Count recorded calls whose method matches and path contains the fragment"""
        return sum(1 for m, p, _ in self.calls if m == method.upper() and path_fragment in p)

    def _lookup(self, url: str, path: str) -> Tuple[bool, Any]:
        if url in self.responses:
            return True, self.responses[url]
        if path in self.responses:
            return True, self.responses[path]
        for pattern, value in self.responses.items():
            if pattern and pattern in url:
                return True, value
        return False, None

    def _execute(self, credentials, url, path, method, body) -> ApiResult:
        self.calls.append((method, path, body))
        found, value = self._lookup(url, path)
        if not found:
            return ApiTransportError(f"no mock response for {url}")
        return _to_result(value, url)


def _to_result(value: Any, url: str) -> ApiResult:
    if isinstance(value, (ApiSuccess, ApiFailure, ApiTransportError)):
        return value
    if value is False:
        return ApiTransportError(f"mock failure for {url}")
    if isinstance(value, str):
        return ApiSuccess(payload=_parse_json(value), raw_body=value)
    return ApiSuccess(payload=value, raw_body=json.dumps(value, default=str))


def build_gateway(config, module_log: Optional[ModuleCallLog] = None) -> GameCPGateway:
    """Pick the gateway implementation once, at construction time"""
    if config.mock_responses_file:
        logger.warning(f"⚠️ Using GameCP mock gateway ({config.mock_responses_file})")
        return MockGateway.from_file(config.mock_responses_file, module_log)
    return HttpGateway(
        connect_timeout=config.connect_timeout,
        request_timeout=config.request_timeout,
        module_log=module_log,
    )
