"""OANDA v20 REST API async client.

Implements ``ExecutionGateway``: bar fetching, current ask pricing,
market orders tagged with the strategy label, and closing labelled trades.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from retest.broker.models import Candle, OrderRequest, OrderResponse, Trade
from retest.config import Config
from retest.strategy.models import Bar

logger = logging.getLogger("retest")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


def parse_oanda_time(value: str) -> datetime:
    """Parse an RFC 3339 OANDA timestamp (nanosecond precision) as UTC."""
    text = value.rstrip("Z")
    base, _, fraction = text.partition(".")
    parsed = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S")
    micros = int(fraction[:6].ljust(6, "0")) if fraction else 0
    return parsed.replace(microsecond=micros, tzinfo=timezone.utc)


def candle_to_bar(candle: Candle) -> Bar:
    return Bar(
        open_time=parse_oanda_time(candle.time),
        open=candle.open,
        high=candle.high,
        low=candle.low,
        close=candle.close,
    )


class OandaClient:
    """Async client wrapping OANDA v20 REST API."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.oanda_base_url
        self._account_id = config.oanda_account_id
        self._headers = {
            "Authorization": f"Bearer {config.oanda_api_token}",
            "Content-Type": "application/json",
        }

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(
                        url,
                        headers=self._headers,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "OANDA %s %s returned %d — retry %d/%d in %.1fs",
                        method.upper(), url, resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    await asyncio.sleep(delay)
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "OANDA %s %s transport error (%s) — retry %d/%d in %.1fs",
                    method.upper(), url, exc,
                    attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        # All retries exhausted — raise the last error
        raise last_exc  # type: ignore[misc]

    # ── Market data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        instrument: str,
        granularity: str,
        count: int = 50,
    ) -> list[Candle]:
        """Fetch candlestick data from OANDA.

        Args:
            instrument: e.g. ``"SPX500_USD"``
            granularity: e.g. ``"M15"``, ``"H1"``
            count: number of candles to request (max 5000)

        Returns:
            List of ``Candle`` objects ordered oldest-first.  The last one
            is usually still forming (``complete=False``).
        """
        url = f"{self._base_url}/v3/instruments/{instrument}/candles"
        params = {
            "granularity": granularity,
            "count": count,
            "price": "M",  # mid prices
        }

        resp = await self._request_with_retry("get", url, params=params)

        candles: list[Candle] = []
        for c in resp.json().get("candles", []):
            mid = c["mid"]
            candles.append(
                Candle(
                    time=c["time"],
                    open=float(mid["o"]),
                    high=float(mid["h"]),
                    low=float(mid["l"]),
                    close=float(mid["c"]),
                    volume=int(c["volume"]),
                    complete=bool(c["complete"]),
                )
            )
        return candles

    async def fetch_bars(
        self,
        symbol: str,
        granularity: str,
        count: int = 50,
    ) -> list[Bar]:
        """Fetch candles and convert them to strategy ``Bar`` objects."""
        candles = await self.fetch_candles(symbol, granularity, count=count)
        return [candle_to_bar(c) for c in candles]

    async def get_current_ask(self, symbol: str) -> float:
        """Return the best ask price for *symbol*."""
        url = f"{self._base_url}/v3/accounts/{self._account_id}/pricing"

        resp = await self._request_with_retry(
            "get", url, params={"instruments": symbol},
        )

        prices = resp.json().get("prices", [])
        if not prices or not prices[0].get("asks"):
            raise ValueError(f"No ask price returned for {symbol}")
        return float(prices[0]["asks"][0]["price"])

    # ── Orders ───────────────────────────────────────────────────────────

    async def place_order(self, order: OrderRequest) -> OrderResponse:
        """Place a labelled market order with stop-loss and take-profit.

        The SL/TP currency distances are turned into prices around the
        order's reference ask and rounded to ``order.price_precision``
        decimals.

        Returns:
            ``OrderResponse`` with the fill details.
        """
        url = f"{self._base_url}/v3/accounts/{self._account_id}/orders"
        body = {
            "order": {
                "type": "MARKET",
                "instrument": order.symbol,
                "units": str(int(order.units)),
                "stopLossOnFill": {
                    "price": f"{order.stop_loss_price:.{order.price_precision}f}",
                },
                "takeProfitOnFill": {
                    "price": f"{order.take_profit_price:.{order.price_precision}f}",
                },
                "tradeClientExtensions": {
                    "tag": order.label,
                },
            }
        }

        resp = await self._request_with_retry("post", url, json=body)

        fill = resp.json()["orderFillTransaction"]
        opened = fill.get("tradeOpened", {})
        return OrderResponse(
            order_id=fill["id"],
            trade_id=opened.get("tradeID", ""),
            instrument=fill["instrument"],
            units=float(fill["units"]),
            price=float(fill["price"]),
            time=fill["time"],
        )

    # ── Trades ───────────────────────────────────────────────────────────

    async def list_open_trades(self) -> list[Trade]:
        """Return all open trades with SL/TP details and client tag."""
        url = f"{self._base_url}/v3/accounts/{self._account_id}/openTrades"

        resp = await self._request_with_retry("get", url)

        trades: list[Trade] = []
        for t in resp.json().get("trades", []):
            sl_price = None
            tp_price = None
            if "stopLossOrder" in t:
                sl_price = float(t["stopLossOrder"].get("price", 0))
            if "takeProfitOrder" in t:
                tp_price = float(t["takeProfitOrder"].get("price", 0))
            trades.append(
                Trade(
                    trade_id=t["id"],
                    instrument=t["instrument"],
                    units=float(t["currentUnits"]),
                    price=float(t["price"]),
                    unrealized_pnl=float(t.get("unrealizedPL", "0")),
                    stop_loss_price=sl_price,
                    take_profit_price=tp_price,
                    open_time=t.get("openTime", ""),
                    tag=t.get("clientExtensions", {}).get("tag", ""),
                )
            )
        return trades

    async def close_trade(self, trade_id: str) -> dict:
        """Close all units of one trade.  Returns the raw OANDA response."""
        url = (
            f"{self._base_url}/v3/accounts/{self._account_id}"
            f"/trades/{trade_id}/close"
        )
        resp = await self._request_with_retry("put", url, json={"units": "ALL"})
        return resp.json()

    async def close_trades_by_label(self, symbol: str, label: str) -> int:
        """Close every open trade on *symbol* whose client tag equals *label*.

        Returns:
            Number of trades closed.
        """
        closed = 0
        for trade in await self.list_open_trades():
            if trade.instrument != symbol or trade.tag != label:
                continue
            await self.close_trade(trade.trade_id)
            closed += 1
        return closed
