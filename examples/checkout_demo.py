#!/usr/bin/env python3
"""
Checkout Demo: e-commerce tracking across a redirect
====================================================

Exercises:
  1. Product page: page naming via rules, whitelisted query params
  2. Checkout POST: event, transaction and items queued in the session
  3. Thank-you page: transaction validated and drained for rendering

Run:
    python examples/checkout_demo.py

Requires:
    pip install -e ".[fastapi,test]"
"""

from __future__ import annotations

import json
import logging

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from starlette.middleware.sessions import SessionMiddleware

from ga_analytics import (
    AnalyticsContext,
    AnalyticsMiddleware,
    AnalyticsSettings,
    CustomVariable,
    CustomVariableScope,
    Event,
    Item,
    Option,
    Transaction,
)
from ga_analytics.middleware import get_analytics

SETTINGS = AnalyticsSettings.from_dict(
    {
        "trackers": {"default": {"name": "shop", "accountId": "UA-12345-1"}},
        "whitelist": ["ref"],
        "page_rules": {
            "prefix": "/en",
            "add_params": True,
            "rules": [{"path": "^/product/.*", "name": "/product_detail"}],
        },
    }
)

PRODUCTS = {
    "roses": {"title": "Red Roses", "price": 29.99},
    "tulips": {"title": "Tulip Bouquet", "price": 19.99},
}

app = FastAPI(title="GA Analytics Checkout Demo")
app.add_middleware(AnalyticsMiddleware, settings=SETTINGS)
app.add_middleware(SessionMiddleware, secret_key="demo-secret")


def snippet(analytics: AnalyticsContext) -> dict:
    """What a template would feed into the tracking code."""
    valid = analytics.is_transaction_valid()
    transaction = analytics.get_transaction()
    items = analytics.get_items()
    if not valid:
        transaction, items = None, []
    return {
        "trackers": {k: t.to_dict() for k, t in analytics.get_trackers().items()},
        "page": analytics.get_custom_page_view() or analytics.get_request_uri(),
        "options": [o.to_dict() for o in analytics.get_options()],
        "custom_variables": [cv.to_dict() for cv in analytics.get_custom_variables()],
        "events": [e.to_dict() for e in analytics.get_event_queue()],
        "page_views": analytics.get_page_view_queue(),
        "transaction": transaction.to_dict() if transaction else None,
        "items": [i.to_dict() for i in items],
    }


@app.get("/product/{product_id}")
async def product_page(product_id: str, analytics: AnalyticsContext = Depends(get_analytics)):
    analytics.add_custom_variable(
        CustomVariable(1, "product", product_id, CustomVariableScope.PAGE)
    )
    return snippet(analytics)


@app.post("/checkout/{product_id}")
async def checkout(product_id: str, analytics: AnalyticsContext = Depends(get_analytics)):
    product = PRODUCTS[product_id]
    analytics.enqueue_event(Event("checkout", "complete", label=product_id))
    analytics.set_transaction(
        Transaction(order_number="1001", affiliation="demo", total=product["price"])
    )
    analytics.add_item(
        Item(
            order_number="1001",
            sku=product_id,
            name=product["title"],
            price=product["price"],
            quantity=1,
        )
    )
    analytics.set_custom_page_view("/checkout/complete")
    return {"ok": True}


@app.get("/thanks")
async def thanks(analytics: AnalyticsContext = Depends(get_analytics)):
    analytics.add_option(Option("SampleRate", 100))
    return snippet(analytics)


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    client = TestClient(app)

    print("\n1. Product page")
    print(json.dumps(client.get("/product/roses?ref=mail&utm=x").json(), indent=2))

    print("\n2. Checkout")
    client.post("/checkout/roses")

    print("\n3. Thank-you page (facts drained)")
    print(json.dumps(client.get("/thanks").json(), indent=2))

    print("\n4. Reload (nothing left to render)")
    print(json.dumps(client.get("/thanks").json(), indent=2))


if __name__ == "__main__":
    main()
