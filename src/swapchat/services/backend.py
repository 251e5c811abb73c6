"""Swap backend integration.

The backend quotes swaps, takes signed orders and reports order status.
Endpoints (JSON over HTTPS):

    POST /quote              {fromToken, toToken, amount}
    POST /prepare-order      order params -> {status: "prepared", messageHash, orderParams}
    POST /submit-order       {orderParams, fromAddress, publicKey, signature} -> {orderId, status}
    POST /order-status       {orderId} -> {status}
    GET  /assets/{BASE}      -> {assets: [{symbol, decimals}]}
    GET  /swapStatus/{hash}  -> raw swap status
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from swapchat.errors import BackendError
from swapchat.services.base import Token

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "https://api.safunet.com/v1/Prophet"


class OrderParams(BaseModel):
    """Parameters sent to /prepare-order once the funding transfer is broadcast."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    transaction_hash: str = Field(alias="transactionHash")
    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    amount: str
    from_address: str = Field(alias="fromAddress")
    public_key: str = Field(alias="publicKey")


MessageSigner = Callable[[str], Awaitable[str]]


class OrderBackend(ABC):
    """Interface shared by the live backend client and the dry-run backend."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def get_quote(self, from_token: str, to_token: str, amount: str) -> dict:
        """Raw quote response, `{"quote": {...}}`."""
        pass

    @abstractmethod
    async def prepare_order(self, params: OrderParams) -> dict:
        pass

    @abstractmethod
    async def submit_order(
        self, order_params: Any, from_address: str, public_key: str, signature: str
    ) -> dict:
        pass

    @abstractmethod
    async def get_order_status(self, order_id: str) -> dict:
        pass

    @abstractmethod
    async def get_available_tokens(self) -> list[Token]:
        pass

    async def place_order(self, params: OrderParams, sign: MessageSigner) -> dict:
        """Prepare, sign and submit an order.

        Args:
            params: Order parameters for the broadcast funding transfer
            sign: Wallet callback that signs the prepared message hash

        Returns:
            Submission response with `orderId` and `status`

        Raises:
            BackendError: If preparation, signing or submission fails
        """
        prepared = await self.prepare_order(params)
        if prepared.get("status") != "prepared":
            raise BackendError(prepared.get("error") or "Order preparation failed")

        message_hash = prepared.get("messageHash")
        if not message_hash:
            raise BackendError("Order preparation returned no message hash")

        try:
            signature = await sign(message_hash)
        except Exception as e:
            raise BackendError(f"Failed to sign order: {e}") from e

        result = await self.submit_order(
            prepared.get("orderParams"), params.from_address, params.public_key, signature
        )
        logger.info(f"[{self.name}] Order submitted: {result.get('orderId')} ({result.get('status')})")
        return result


class ProphetBackendClient(OrderBackend):
    """HTTP client for the swap backend."""

    def __init__(
        self,
        base_url: str = DEFAULT_BACKEND_URL,
        base_currency: str = "KAS",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend root URL, without trailing slash
            base_currency: Currency whose tradable assets are listed
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.base_currency = base_currency.upper()
        self.timeout = timeout
        self.transport = transport

    @property
    def name(self) -> str:
        return "prophet"

    def _get_headers(self) -> dict:
        return {"Accept": "application/json", "Content-Type": "application/json"}

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=self._get_headers(),
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Backend request {method} {path} failed: {e}")
            raise BackendError(f"Request to {path} failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Backend error: {response.status_code} - {response.text}")
            raise BackendError(
                f"{path} returned HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{path} returned invalid JSON") from e

    async def get_quote(self, from_token: str, to_token: str, amount: str) -> dict:
        return await self._request(
            "POST", "/quote", {"fromToken": from_token, "toToken": to_token, "amount": amount}
        )

    async def prepare_order(self, params: OrderParams) -> dict:
        return await self._request("POST", "/prepare-order", params.model_dump(by_alias=True))

    async def submit_order(
        self, order_params: Any, from_address: str, public_key: str, signature: str
    ) -> dict:
        return await self._request(
            "POST",
            "/submit-order",
            {
                "orderParams": order_params,
                "fromAddress": from_address,
                "publicKey": public_key,
                "signature": signature,
            },
        )

    async def get_order_status(self, order_id: str) -> dict:
        return await self._request("POST", "/order-status", {"orderId": order_id})

    async def get_swap_status(self, tx_hash: str) -> dict:
        """Raw swap status by funding transaction hash."""
        return await self._request("GET", f"/swapStatus/{tx_hash}")

    async def get_available_tokens(self) -> list[Token]:
        data = await self._request("GET", f"/assets/{self.base_currency}")
        tokens = []
        for asset in data.get("assets", []):
            symbol = str(asset.get("symbol", "")).upper()
            if not symbol:
                continue
            tokens.append(Token(symbol=symbol, decimals=int(asset.get("decimals", 8))))
        return tokens
