import httpx
from typing import (
    Optional,
)

from ..constants import RESEND_BASE_URL
from ..exceptions import MailDeliveryError


class ResendClient:
    """
    Async client for the Resend transactional mail API.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = RESEND_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Resend API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(
        self,
    ):
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return self

    async def __aexit__(
        self,
        exc_type,
        exc,
        tb,
    ):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        *,
        sender: str,
        to: str,
        subject: str,
        html: str,
    ) -> str | None:
        """
        Sends one HTML message. Returns the provider's message id.
        """
        if self._client is None:
            raise RuntimeError("ResendClient must be used as an async context manager")
        payload = {
            "from": sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        try:
            resp = await self._client.post(f"{self.base_url}/emails", json=payload)
        except httpx.HTTPError as e:
            raise MailDeliveryError(f"Mail transport unreachable: {e}") from e
        body = _json_object(resp)
        if resp.is_error:
            detail = body.get("message") or resp.text
            raise MailDeliveryError(
                f"Mail transport rejected message ({resp.status_code}): {detail}"
            )
        # Accepted even when the body carries no message id
        return body.get("id")


def _json_object(resp: httpx.Response) -> dict:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
