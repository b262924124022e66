from datetime import datetime, timedelta

from conftest import auth_headers

FILE_URL = "https://spreadmarket-files.s3.us-east-1.amazonaws.com/uploads/u1/1700000000000-budget.xlsx"


def listing_body(**overrides):
    body = {
        "title": "Family Budget",
        "description": "Monthly household planner",
        "price": 25,
        "fileUrl": FILE_URL,
        "fileType": "xlsx",
        "fileSize": 2048,
        "tags": ["budget", "excel", "budget"],
    }
    body.update(overrides)
    return body


# ---------- Busqueda ----------


def test_search_returns_camel_case_page(client, make_user, make_listing):
    creator = make_user(is_creator=True, first_name="Ada")
    make_listing(creator, title="Budget", tags=["excel"])

    response = client.get("/api/listings")

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 12, "total": 1, "pages": 1}
    listing = data["listings"][0]
    assert listing["title"] == "Budget"
    assert listing["price"] == 19.99
    assert listing["tags"] == ["excel"]
    assert listing["creator"]["firstName"] == "Ada"
    assert "averageRating" in listing


def test_search_query_params(client, make_user, make_listing):
    creator = make_user(is_creator=True)
    start = datetime(2024, 1, 1)
    make_listing(creator, title="Cheap", price="5.00", tags=["finance"], created_at=start)
    make_listing(creator, title="Mid", price="20.00", tags=["sales"], created_at=start + timedelta(days=1))
    make_listing(creator, title="Pricey", price="90.00", tags=["finance"], created_at=start + timedelta(days=2))

    response = client.get(
        "/api/listings",
        params={"minPrice": "5", "maxPrice": "20", "tags": "finance,sales", "sortBy": "price_desc"},
    )

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["listings"]] == ["Mid", "Cheap"]


def test_search_clamps_limit(client):
    response = client.get("/api/listings", params={"limit": 500, "page": 0})
    assert response.status_code == 200
    assert response.json()["pagination"] == {"page": 1, "limit": 50, "total": 0, "pages": 0}


def test_search_rejects_unknown_sort(client):
    response = client.get("/api/listings", params={"sortBy": "cheapest"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


# ---------- Creacion ----------


def test_create_listing_as_creator(client, make_user, make_category):
    creator = make_user(is_creator=True)
    category = make_category()

    response = client.post(
        "/api/listings", json=listing_body(categoryId=category.id), headers=auth_headers(creator)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["price"] == 25.0
    assert data["tags"] == ["budget", "excel"]
    assert data["category"] == {"name": "Financial Models", "slug": "financial-models"}
    assert data["isActive"] is True
    assert data["totalSales"] == 0


def test_create_listing_requires_session(client):
    response = client.post("/api/listings", json=listing_body())
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_create_listing_rejects_invalid_token(client):
    response = client.post(
        "/api/listings", json=listing_body(), headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


def test_create_listing_forbidden_for_buyers(client, make_user):
    buyer = make_user()
    response = client.post("/api/listings", json=listing_body(), headers=auth_headers(buyer))
    assert response.status_code == 403


def test_create_listing_validates_body(client, make_user):
    creator = make_user(is_creator=True)
    headers = auth_headers(creator)

    assert client.post("/api/listings", json=listing_body(price=0), headers=headers).status_code == 400
    assert client.post("/api/listings", json=listing_body(title=""), headers=headers).status_code == 400
    assert client.post("/api/listings", json=listing_body(fileUrl="not a url"), headers=headers).status_code == 400
    too_many_tags = [f"tag{i}" for i in range(11)]
    assert client.post("/api/listings", json=listing_body(tags=too_many_tags), headers=headers).status_code == 400


def test_create_listing_unknown_category(client, make_user):
    creator = make_user(is_creator=True)
    response = client.post(
        "/api/listings", json=listing_body(categoryId="missing"), headers=auth_headers(creator)
    )
    assert response.status_code == 400


# ---------- Detalle, estado, preview ----------


def test_detail_and_deactivation(client, make_user, make_listing):
    creator = make_user(is_creator=True)
    listing = make_listing(creator)

    assert client.get(f"/api/listings/{listing.id}").status_code == 200

    response = client.patch(
        f"/api/listings/{listing.id}/status", json={"isActive": False}, headers=auth_headers(creator)
    )
    assert response.status_code == 200
    assert response.json()["isActive"] is False

    assert client.get(f"/api/listings/{listing.id}").status_code == 404
    assert client.get("/api/listings").json()["pagination"]["total"] == 0


def test_only_owner_changes_status(client, make_user, make_listing):
    listing = make_listing(make_user(is_creator=True))
    other = make_user(is_creator=True)

    response = client.patch(
        f"/api/listings/{listing.id}/status", json={"isActive": False}, headers=auth_headers(other)
    )
    assert response.status_code == 403


def test_preview_for_excel_has_sheets(client, make_user, make_listing):
    listing = make_listing(make_user(is_creator=True), title="Budget", file_type="xlsx")

    response = client.get(f"/api/listings/{listing.id}/preview")

    assert response.status_code == 200
    data = response.json()
    assert data["fileName"] == "Budget.xlsx"
    assert data["preview"]["headers"] == ["Name", "Category", "Value", "Date"]
    assert data["preview"]["totalRows"] == 150
    assert data["preview"]["sheets"] == ["Sheet1", "Summary", "Data"]


def test_preview_for_csv_has_no_sheets(client, make_user, make_listing):
    listing = make_listing(make_user(is_creator=True), file_type="csv")
    response = client.get(f"/api/listings/{listing.id}/preview")
    assert response.json()["preview"]["sheets"] is None


def test_preview_missing_listing(client):
    response = client.get("/api/listings/nope/preview")
    assert response.status_code == 404
    assert response.json() == {"detail": "Listing not found", "code": "NOT_FOUND"}
