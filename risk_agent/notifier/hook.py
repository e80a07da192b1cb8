"""
Signed risk hook — optional outbound notification of scoring results.

POSTs the canonical RiskScore JSON to {api_url}/internal/risk-hook with an
HMAC signature header. Delivery is best effort: failures are logged and
never raised to the scoring path. No retries.
"""

from __future__ import annotations

import httpx

from risk_agent.agent_logging import get_logger
from risk_agent.analysis_engine.models import RiskScore
from risk_agent.notifier.signing import SIGNATURE_HEADER, sign_payload

logger = get_logger(__name__)

HOOK_PATH = "/internal/risk-hook"


class RiskHookNotifier:
    def __init__(
        self,
        api_url: str,
        secret: str,
        client: httpx.AsyncClient,
        *,
        timeout: float = 5.0,
    ) -> None:
        self.url = api_url.rstrip("/") + HOOK_PATH
        self.secret = secret
        self.client = client
        self.timeout = timeout

    def build_request(self, result: RiskScore) -> tuple[str, dict[str, str]]:
        """Body and headers for one notification."""
        body = result.canonical_json()
        headers = {
            "content-type": "application/json",
            SIGNATURE_HEADER: sign_payload(self.secret, body),
        }
        return body, headers

    async def notify(self, result: RiskScore) -> bool:
        """Send one result; True when the hook answered 2xx."""
        body, headers = self.build_request(result)
        try:
            resp = await self.client.post(self.url, content=body, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("risk_hook_failed", url=self.url, error=str(e), score=result.score)
            return False
        logger.debug("risk_hook_sent", url=self.url, score=result.score)
        return True
