"""Client for the trusted backend that talks to LG TVs on the adapter's behalf.

Newer WebOS firmware only accepts the secure socket with a self-signed
certificate that many clients refuse. In proxy mode the backend owns the TV
connection and the adapter drives it with `{action, ...}` POSTs and polls its
state with GET, all against `{base}/api/tv-proxy`.
"""

from __future__ import annotations

from typing import Any

from tv_remote.const import HTTP_TIMEOUT, LG_PROXY_PATH
from tv_remote.logging_abstraction import get_logger
from tv_remote.transport.exceptions import ProxyBackendError, TransportError
from tv_remote.transport.rest_client import RestClient, is_success

logger = get_logger(__name__)


class ProxyBackendClient:
    def __init__(self, base_url: str, *, timeout: float = HTTP_TIMEOUT) -> None:
        self.rest: RestClient = RestClient(base_url, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return self.rest.url(LG_PROXY_PATH)

    async def post(self, action: str, **params: Any) -> dict[str, Any]:
        """
        Run one backend action.

        None-valued params are left out of the body.

        Raises:
            ProxyBackendError: Network failure, non-2xx status, or an `error` field
        """
        body: dict[str, Any] = {"action": action}
        body.update({k: v for k, v in params.items() if v is not None})
        try:
            status, data = await self.rest.post_json(LG_PROXY_PATH, body)
        except TransportError as e:
            raise ProxyBackendError(e.reason, action=action, url=self.endpoint) from e

        reply: dict[str, Any] = data if isinstance(data, dict) else {}
        if not is_success(status) or reply.get("error"):
            reason = str(reply.get("error") or f"Request failed (HTTP {status})")
            logger.debug(
                "Proxy action %s failed: %s",
                action,
                reason,
                extra={"action": action, "status": status},
            )
            raise ProxyBackendError(reason, action=action, url=self.endpoint, status=status)
        return reply

    async def get_status(self) -> dict[str, Any]:
        """Backend snapshot: connected, registered, state, socket health flags."""
        try:
            status, data = await self.rest.get_json(LG_PROXY_PATH)
        except TransportError as e:
            raise ProxyBackendError(e.reason, action="status", url=self.endpoint) from e
        if not is_success(status) or not isinstance(data, dict):
            raise ProxyBackendError(f"Status request failed (HTTP {status})", action="status", url=self.endpoint, status=status)
        return data

    async def close(self) -> None:
        await self.rest.close()
