"""Tests for the HTTP endpoints."""
from datetime import datetime

import httpx
import pytest

from sales_api.app import app
from sales_api.database.database import get_db

CSV_HEADER = (
    "product_id,product_name,category,discounted_price,actual_price,"
    "discount_percentage,rating,rating_count,region,sale_date\n"
)


def _csv(*lines: str) -> bytes:
    return (CSV_HEADER + "".join(line + "\n" for line in lines)).encode()


@pytest.mark.asyncio
class TestHealth:
    """Tests for the health endpoint."""

    async def test_health(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert datetime.fromisoformat(body["timestamp"])


@pytest.mark.asyncio
class TestUpload:
    """Tests for POST /api/upload."""

    async def test_upload_csv(self, client):
        content = _csv(
            'B01,USB Cable,Computers&Accessories|Cables,"₹399","₹1,099",64%,4.2,"24,269",South,2024-05-01',
            "B02,Charger,Electronics|Power,₹799,₹999,20%,3.9,150,North,2024-05-02",
        )

        response = await client.post(
            "/api/upload", files={"file": ("sales.csv", content, "text/csv")}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["inserted"] == 2
        assert body["total"] == 2
        assert body["message"] == "Import complete: 2 rows inserted"
        assert "errors" not in body

        summary = (await client.get("/api/analytics/summary")).json()
        assert summary["total_sales"] == 2
        assert summary["total_quantity"] == 242 + 1

    async def test_upload_reports_row_errors(self, client):
        content = _csv(
            "B01,Cable,Electronics,100,200,50%,4,100,North,2024-05-01",
            "B02,Plug,Electronics,100,200,50%,4,100,North,not-a-date",
        )

        response = await client.post(
            "/api/upload", files={"file": ("sales.csv", content, "text/csv")}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["inserted"] == 1
        assert body["total"] == 2
        assert body["errors"] == [{"row": 3, "error": "Invalid sale_date: 'not-a-date'"}]

    async def test_negative_price_is_stored_as_zero(self, client):
        content = _csv("B01,Refund,Electronics,-100,-₹200,10%,4,100,North,2024-05-01")

        response = await client.post(
            "/api/upload", files={"file": ("sales.csv", content, "text/csv")}
        )
        assert response.status_code == 200
        assert response.json()["inserted"] == 1

        table = await client.get("/api/analytics/table")

        assert table.status_code == 200
        row = table.json()["data"][0]
        assert row["discounted_price"] == 0.0
        assert row["actual_price"] == 0.0
        assert (await client.get("/api/analytics/summary")).json()["total_revenue"] == 0

    async def test_rejects_unsupported_extension(self, client):
        response = await client.post(
            "/api/upload", files={"file": ("sales.txt", b"a,b\n1,2\n", "text/plain")}
        )
        assert response.status_code == 415
        assert "Only .xlsx, .xls, and .csv" in response.json()["detail"]

    async def test_rejects_empty_file(self, client):
        response = await client.post(
            "/api/upload", files={"file": ("sales.csv", b"", "text/csv")}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Uploaded file is empty"

    async def test_rejects_file_without_rows(self, client):
        response = await client.post(
            "/api/upload", files={"file": ("sales.csv", CSV_HEADER.encode(), "text/csv")}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "File contains no data rows"

    async def test_rejects_unreadable_workbook(self, client):
        response = await client.post(
            "/api/upload", files={"file": ("sales.xlsx", b"garbage", "application/octet-stream")}
        )
        assert response.status_code == 400

    async def test_rejects_oversized_file(self, client, monkeypatch):
        from sales_api.settings import settings

        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
        response = await client.post(
            "/api/upload", files={"file": ("sales.csv", _csv("A,B,C,1,1,1,1,1,N,2024-01-01"), "text/csv")}
        )
        assert response.status_code == 413

    async def test_missing_file_field(self, client):
        response = await client.post("/api/upload")
        assert response.status_code == 422


@pytest.mark.asyncio
class TestAnalyticsEndpoints:
    """Tests for the /api/analytics endpoints."""

    async def test_summary(self, client, sample_sales):
        response = await client.get("/api/analytics/summary")

        assert response.status_code == 200
        body = response.json()
        assert body["total_sales"] == 5
        assert body["total_revenue"] == pytest.approx(5600.0)

    async def test_summary_category_filter(self, client, sample_sales):
        response = await client.get("/api/analytics/summary", params={"category": "Electronics"})
        assert response.json()["total_sales"] == 3

    async def test_blank_filters_ignored(self, client, sample_sales):
        response = await client.get(
            "/api/analytics/summary",
            params={"category": "", "region": "", "minRating": "", "startDate": ""},
        )
        assert response.status_code == 200
        assert response.json()["total_sales"] == 5

    async def test_invalid_filter_is_bad_request(self, client, sample_sales):
        response = await client.get("/api/analytics/summary", params={"startDate": "soon"})

        assert response.status_code == 400
        assert "start_date" in response.json()["detail"]

    async def test_trends_granularity(self, client, sample_sales):
        response = await client.get("/api/analytics/trends", params={"granularity": "weekly"})

        body = response.json()
        assert len(body) == 5
        assert body[0] == {"date": "2024-01-08", "revenue": 1000.0, "sales_count": 2}

    async def test_products_limit(self, client, sample_sales):
        response = await client.get("/api/analytics/products", params={"limit": 1})
        assert [p["product_name"] for p in response.json()] == ["USB Cable"]

    async def test_top_reviewed(self, client, sample_sales):
        response = await client.get("/api/analytics/top-reviewed", params={"limit": 2})
        assert [p["rating_count"] for p in response.json()] == [1200, 260]

    async def test_regions(self, client, sample_sales):
        response = await client.get("/api/analytics/regions", params={"minRating": "4"})
        assert [r["region"] for r in response.json()] == ["North", "East"]

    async def test_categories(self, client, sample_sales):
        body = (await client.get("/api/analytics/categories")).json()
        assert set(body[0]) == {
            "category", "total_revenue", "total_quantity", "product_count", "avg_rating",
        }

    async def test_discount_distribution(self, client, sample_sales):
        body = (await client.get("/api/analytics/discount-distribution")).json()
        assert len(body) == 10
        assert body[1] == {"bucket": "10-20%", "min": 10, "max": 20, "count": 1}

    async def test_table_pagination(self, client, many_sales):
        response = await client.get("/api/analytics/table", params={"page": 1, "limit": 25})

        body = response.json()
        assert len(body["data"]) == 25
        assert body["total"] == 60
        assert body["totalPages"] == 3
        assert body["data"][0]["sale_date"] == "2024-02-29"

    async def test_table_invalid_sort_falls_back(self, client, many_sales):
        response = await client.get(
            "/api/analytics/table",
            params={"sortBy": "1; DROP TABLE sales", "sortOrder": "asc", "limit": 1},
        )

        assert response.status_code == 200
        assert response.json()["data"][0]["sale_date"] == "2024-01-01"

    async def test_table_sort_by_name(self, client, many_sales):
        response = await client.get(
            "/api/analytics/table",
            params={"sortBy": "product_name", "sortOrder": "desc", "limit": 1},
        )
        assert response.json()["data"][0]["product_name"] == "Product 59"

    async def test_filter_options(self, client, sample_sales):
        body = (await client.get("/api/analytics/filters")).json()

        assert body["categories"] == ["Electronics", "Home&Kitchen"]
        assert body["regions"] == ["East", "North", "South", "West"]
        assert body["dateRange"] == {"min_date": "2024-01-10", "max_date": "2024-03-01"}


class _BrokenSession:
    """Stands in for a session whose database has gone away."""

    async def execute(self, *args, **kwargs):
        raise RuntimeError("database unavailable")


@pytest.mark.asyncio
class TestErrorHandling:
    """Unexpected failures come back as JSON."""

    async def test_unhandled_error_is_json(self):
        async def broken_db():
            yield _BrokenSession()

        app.dependency_overrides[get_db] = broken_db
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.get("/api/analytics/summary")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"detail": "database unavailable"}
