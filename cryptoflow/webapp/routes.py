"""
FastAPI routes for the exchange web application.

Handles:
- Currency catalog and rate lookups
- Order quotes and order creation
- Order reads and admin status updates
- Rate cache administration
- WebSocket stream of rate and order events
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect

from cryptoflow.services.container import ServiceContainer
from cryptoflow.services.event_hub import RATES_UPDATE
from cryptoflow.webapp.schemas import CreateOrderBody, QuoteRequest, StatusUpdateBody

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> ServiceContainer:
    """Service container attached to the running app."""
    return request.app.state.services


# ============================================================================
# Currencies and rates
# ============================================================================


@router.get("/api/currencies")
async def list_currencies(services: ServiceContainer = Depends(get_services)) -> List[Dict[str, Any]]:
    """Active currencies."""
    return [c.to_dict() for c in services.catalog.list_currencies(active_only=True)]


@router.get("/api/rates")
async def list_rates(services: ServiceContainer = Depends(get_services)) -> List[Dict[str, Any]]:
    """Rates for every configured display pair."""
    rates = await services.resolver.resolve_many(
        (pair[0], pair[1]) for pair in services.config.broadcast.pairs
    )
    return [rate.to_payload() for rate in rates]


@router.get("/api/rates/history")
async def rate_history(
    from_currency: Optional[str] = Query(None, alias="from"),
    to_currency: Optional[str] = Query(None, alias="to"),
    limit: int = Query(100, ge=1, le=1000),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Recorded rate history, newest first."""
    if services.history is None:
        return {"records": [], "stats": {"total_records": 0, "pairs": {}}}
    return {
        "records": services.history.get_history(from_currency, to_currency, limit=limit),
        "stats": services.history.get_stats(),
    }


@router.get("/api/rates/{from_currency}/{to_currency}")
async def get_rate(
    from_currency: str,
    to_currency: str,
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Rate for one ordered pair. Unknown currency ids are a 404."""
    rate = await services.resolver.resolve(from_currency.lower(), to_currency.lower())
    return rate.to_payload()


# ============================================================================
# Quotes and orders
# ============================================================================


@router.post("/api/quote")
async def quote(body: QuoteRequest, services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    """Price an order without creating it."""
    pricing = await services.pricer.price_order(
        body.from_currency,
        body.to_currency,
        body.from_amount,
        body.rate_type,
    )
    return pricing.to_dict()


@router.post("/api/orders", status_code=201)
async def create_order(
    body: CreateOrderBody,
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Create an order in awaiting_deposit status."""
    order = await services.order_service.create_order(body.to_request())
    return order.to_dict()


@router.get("/api/orders")
async def list_orders(
    user_id: Optional[str] = Query(None, alias="userId"),
    services: ServiceContainer = Depends(get_services),
) -> List[Dict[str, Any]]:
    """All orders, newest first (admin view)."""
    return [o.to_dict() for o in services.order_store.list_orders(user_id=user_id)]


@router.get("/api/orders/{order_id}")
async def get_order(order_id: str, services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    return services.order_store.get(order_id).to_dict()


@router.patch("/api/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: StatusUpdateBody,
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Admin status transition. Disallowed transitions are a 409."""
    order = await services.order_service.update_status(
        order_id,
        body.status,
        tx_hash=body.tx_hash,
        payout_tx_hash=body.payout_tx_hash,
    )
    return order.to_dict()


# ============================================================================
# Cache administration
# ============================================================================


@router.get("/api/cache/stats")
async def cache_stats(services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    return services.cache.get_stats()


@router.post("/api/cache/clear")
async def clear_cache(services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    cleared = services.cache.clear()
    return {"success": True, "cleared": cleared}


# ============================================================================
# WebSocket
# ============================================================================


@router.websocket("/ws")
async def events_socket(websocket: WebSocket) -> None:
    """
    Push rate and order events to a connected client.

    Sends the latest rates on connect, then every hub event until the
    client disconnects.
    """
    services: ServiceContainer = websocket.app.state.services
    await websocket.accept()

    refresher = services.refresher
    if refresher is not None and refresher.latest:
        initial = refresher.latest_payload()
    else:
        rates = await services.resolver.resolve_many(
            (pair[0], pair[1]) for pair in services.config.broadcast.pairs
        )
        initial = [rate.to_payload() for rate in rates]
    await websocket.send_json(services.hub.make_event(RATES_UPDATE, initial))

    async def forward(event: Dict[str, Any]) -> None:
        await websocket.send_json(event)

    unsubscribe = services.hub.subscribe(forward)
    try:
        while True:
            # Client messages are ignored; receiving detects disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("WebSocket client disconnected")
    finally:
        unsubscribe()
