"""
Unit Tests - API Endpoints
"""
from ops_dashboard.export import BOM


class TestHealth:
    def test_health(self, api_client):
        response = api_client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["redis"] == {"status": "disabled"}
        assert body["checks"]["ga4"] == {"configured": False}
        assert body["checks"]["meta"] == {"configured": True}

    def test_ready_and_request_id(self, api_client):
        response = api_client.get("/api/v1/health/ready", headers={"X-Request-ID": "req-123"})

        assert response.json() == {"status": "ready"}
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Response-Time"].endswith("ms")

    def test_info(self, api_client):
        body = api_client.get("/api/v1/info").json()

        assert body["proxied_services"] == ["picking", "resellers", "campaigns", "email"]


class TestDashboardEndpoint:
    """Tests for the overview endpoint"""

    def test_overview(self, api_client):
        response = api_client.get("/api/v1/dashboard/overview", params={"days": 30})

        assert response.status_code == 200
        body = response.json()
        assert body["range"]["label"] == "30 días"
        assert body["metrics"]["totalRevenue"] == 1600
        assert {"revenueByDay", "churnDistribution", "segmentHealth", "alerts"} <= set(body)

    def test_overview_with_source_down_still_answers(self, api_client, backend):
        backend.fail("events.test")

        response = api_client.get("/api/v1/dashboard/overview")

        assert response.status_code == 200
        body = response.json()
        assert body["sources"]["event_stats"] == {"ok": False, "error": "events.test is down"}
        assert body["metrics"]["paidOrders"] == 2

    def test_invalid_range(self, api_client):
        response = api_client.get("/api/v1/dashboard/overview", params={"start_date": "2024-03-01"})

        assert response.status_code == 422
        assert response.json() == {"error": "start_date and end_date must be given together"}

    def test_reversed_range(self, api_client):
        response = api_client.get(
            "/api/v1/dashboard/overview",
            params={"start_date": "2024-03-10", "end_date": "2024-03-01"},
        )

        assert response.status_code == 422


class TestOrdersEndpoints:
    """Tests for order aggregates"""

    def test_metrics(self, api_client):
        body = api_client.get("/api/v1/orders/metrics").json()

        assert body["totalRevenue"] == 1600
        assert body["totalOrders"] == 3
        assert body["revenueChange"] == 0

    def test_revenue_by_day_ascending(self, api_client):
        rows = api_client.get("/api/v1/orders/revenue-by-day").json()

        dates = [row["date"] for row in rows]
        assert dates == sorted(dates)
        assert sum(row["revenue"] for row in rows) == 1600

    def test_top_products_limit(self, api_client):
        rows = api_client.get("/api/v1/orders/top-products", params={"limit": 1}).json()

        assert rows == [{"product_id": "prod_1", "name": "Remera", "revenue": 1000, "quantity": 2}]

    def test_commerce_failure_status_passed_through(self, api_client, backend):
        backend.fail("commerce.test")

        response = api_client.get("/api/v1/orders/by-status")

        assert response.status_code == 500
        assert response.json() == {"error": "commerce.test is down", "source": "commerce"}

    def test_listing_filters_and_pages(self, api_client):
        body = api_client.get(
            "/api/v1/orders",
            params={"payment_status": "captured", "limit": 1, "offset": 1},
        ).json()

        assert [o["id"] for o in body["orders"]] == ["order_2"]
        assert body["orders"][0]["payment_status"] == "Pagado"
        assert body["orders"][0]["fulfillment_status"] == "Enviado"
        assert body["total"] == 2
        assert body["total_orders"] == 3
        assert body["refunds"] == {"count": 1, "amount": 400, "rate": 33.3}

    def test_listing_rejects_unknown_status(self, api_client):
        response = api_client.get("/api/v1/orders", params={"payment_status": "lost"})

        assert response.status_code == 422

    def test_refunds(self, api_client):
        body = api_client.get("/api/v1/orders/refunds").json()

        assert body == {"count": 1, "amount": 400, "rate": 33.3}

    def test_export(self, api_client):
        response = api_client.get("/api/v1/orders/export.csv", params={"fulfillment_status": "canceled"})

        assert response.status_code == 200
        assert 'filename="ordenes_' in response.headers["content-disposition"]
        lines = response.content.decode("utf-8")[len(BOM):].splitlines()
        assert lines[0] == "Orden;Fecha;Email;Estado Pago;Estado Envio;Items;Total"
        assert len(lines) == 2
        assert lines[1].endswith(";ana@example.com;Reembolsado;Cancelado;1;400")


class TestProductsEndpoints:
    """Tests for the stock and units pages"""

    def test_stock_summary(self, api_client):
        body = api_client.get("/api/v1/products/stock/summary").json()

        assert body["out_of_stock_products"] == 1
        assert body["out_of_stock_variants"] == 2

    def test_out_of_stock_products(self, api_client):
        rows = api_client.get("/api/v1/products/out-of-stock").json()

        assert [p["id"] for p in rows] == ["prod_2"]
        assert rows[0]["allOutOfStock"] is True
        assert rows[0]["totalStock"] == 0

    def test_out_of_stock_variants_search(self, api_client):
        rows = api_client.get("/api/v1/products/variants-out-of-stock", params={"search": "rem"}).json()

        assert [v["sku"] for v in rows] == ["REM-M"]
        assert rows[0]["productTitle"] == "Remera"

    def test_out_of_stock_variants_export(self, api_client):
        response = api_client.get("/api/v1/products/variants-out-of-stock/export.csv")

        assert 'filename="variantes_sin_stock_' in response.headers["content-disposition"]
        lines = response.content.decode("utf-8")[len(BOM):].splitlines()
        assert lines == [
            "Producto;Variante;SKU;Barcode;Stock",
            "Remera;M;REM-M;779000;0",
            "Buzo;Unico;BUZ-U;;0",
        ]

    def test_units(self, api_client):
        body = api_client.get("/api/v1/products/units").json()

        assert body["total_units"] == 3
        assert [(p["product_id"], p["quantity"]) for p in body["products"]] == [("prod_1", 2), ("prod_2", 1)]


class TestCustomersEndpoints:
    """Tests for the customers page endpoints"""

    def test_list_with_filters(self, api_client):
        body = api_client.get("/api/v1/customers", params={"order_count": "0"}).json()

        assert [c["id"] for c in body["customers"]] == ["cus_3"]
        assert body["summary"]["total"] == 3

    def test_invalid_sort(self, api_client):
        response = api_client.get("/api/v1/customers", params={"sort_by": "password"})

        assert response.status_code == 422
        assert "password" in response.json()["error"]

    def test_export(self, api_client):
        response = api_client.get("/api/v1/customers/export.csv", params={"group": "Minorista"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="clientes_' in response.headers["content-disposition"]
        assert response.content.startswith(BOM.encode("utf-8"))
        assert "Luis Perez;luis@example.com" in response.content.decode("utf-8")

    def test_detail_and_missing(self, api_client):
        assert api_client.get("/api/v1/customers/cus_1").json()["customer"]["id"] == "cus_1"

        response = api_client.get("/api/v1/customers/cus_404")
        assert response.status_code == 404
        assert response.json() == {"error": "Customer not found", "source": "commerce"}

    def test_churn(self, api_client):
        rows = api_client.get("/api/v1/customers/churn").json()

        assert sum(row["count"] for row in rows) == 3


class TestAnalyticsEndpoints:
    def test_summary(self, api_client):
        body = api_client.get("/api/v1/analytics/summary", params={"abandoned_limit": 5}).json()

        assert body["abandonment"]["rate"] == 40.0
        assert body["abandonment"]["limit"] == 5

    def test_summary_with_sparse_event_records(self, api_client, backend):
        backend.event_stats = {"total_events": None, "by_type": {"checkout.started": None}, "by_day": None}
        backend.event_products = [{"product_id": None, "views": None}]

        response = api_client.get("/api/v1/analytics/summary")

        assert response.status_code == 200

    def test_page_report(self, api_client, backend):
        response = api_client.get("/api/v1/analytics/pages/scroll-depth", params={"page_url": "/home"})

        assert response.status_code == 200
        assert backend.calls("events.test", "/api/stats/scroll-depth")

    def test_unknown_page_report(self, api_client):
        response = api_client.get("/api/v1/analytics/pages/clicks", params={"page_url": "/home"})

        assert response.status_code == 422

    def test_events_listing(self, api_client, backend):
        body = api_client.get("/api/v1/analytics/events", params={"event": "checkout.abandoned", "limit": 2}).json()

        assert body["total"] == 2
        assert backend.calls("events.test", "/api/events")[0].url.params["event"] == "checkout.abandoned"


class TestMarketingEndpoints:
    def test_ga4_not_configured(self, api_client):
        response = api_client.get("/api/v1/marketing/ga4/overview")

        assert response.status_code == 503
        assert response.json() == {"error": "ga4 is not configured", "source": "ga4"}

    def test_meta_overview(self, api_client):
        body = api_client.get("/api/v1/marketing/meta/overview").json()

        assert body["spend"] == 2000
        assert body["purchases"] == 3


class TestProxyEndpoints:
    """Tests for the back-office pass-through"""

    def test_mutation_forwarded(self, api_client, backend):
        response = api_client.post("/api/v1/proxy/picking/orders/42/ship", json={"carrier": "andreani"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        request = backend.calls("picking.test")[0]
        assert request.url.path == "/api/orders/42/ship"
        assert backend.request_body(request) == {"carrier": "andreani"}

    def test_upstream_error_passed_through(self, api_client, backend):
        backend.proxy_status = 409
        backend.proxy_body = {"error": "Order already shipped"}

        response = api_client.post("/api/v1/proxy/picking/orders/42/ship", json={})

        assert response.status_code == 409
        assert response.json() == {"error": "Order already shipped"}

    def test_empty_response(self, api_client, backend):
        backend.proxy_status = 204
        backend.proxy_body = None

        response = api_client.delete("/api/v1/proxy/picking/orders/42")

        assert response.status_code == 204
        assert response.content == b""

    def test_unknown_service(self, api_client):
        response = api_client.get("/api/v1/proxy/billing/invoices")

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown proxy target: billing"}

    def test_invalid_json_body(self, api_client):
        response = api_client.post(
            "/api/v1/proxy/picking/orders",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422
