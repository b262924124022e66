from decimal import Decimal

from conftest import auth_headers
from spreadmarket.models.entities import TRANSACTION_COMPLETED, Transaction


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_categories_with_active_counts(client, make_user, make_category, make_listing):
    creator = make_user(is_creator=True)
    finance = make_category()
    make_category(name="Data Analysis", slug="data-analysis")
    make_listing(creator, category_id=finance.id)
    make_listing(creator, category_id=finance.id)
    make_listing(creator, category_id=finance.id, is_active=False)

    response = client.get("/api/categories")

    assert response.status_code == 200
    assert [(c["slug"], c["listingCount"]) for c in response.json()] == [
        ("data-analysis", 0),
        ("financial-models", 2),
    ]


def test_dashboard_requires_session(client):
    assert client.get("/api/dashboard").status_code == 401


def test_dashboard(client, db, make_user, make_listing):
    creator = make_user(is_creator=True)
    listing = make_listing(creator, total_sales=1, average_rating=4.0, total_reviews=1)
    db.add(
        Transaction(
            buyer_id=make_user().id,
            listing_id=listing.id,
            stripe_payment_intent_id="pi_dash",
            amount=Decimal("19.99"),
            commission=Decimal("2.00"),
            creator_earnings=Decimal("17.99"),
            status=TRANSACTION_COMPLETED,
        )
    )
    db.commit()

    response = client.get("/api/dashboard", headers=auth_headers(creator))

    assert response.status_code == 200
    data = response.json()
    assert data["stats"] == {"totalListings": 1, "totalEarnings": 17.99, "totalSales": 1, "averageRating": 4.0}
    assert data["listings"][0]["id"] == listing.id


def test_review_flow(client, db, make_user, make_listing):
    buyer = make_user(first_name="Grace")
    listing = make_listing(make_user(is_creator=True))
    transaction = Transaction(
        buyer_id=buyer.id,
        listing_id=listing.id,
        stripe_payment_intent_id="pi_review",
        amount=Decimal("19.99"),
        commission=Decimal("2.00"),
        creator_earnings=Decimal("17.99"),
        status=TRANSACTION_COMPLETED,
    )
    db.add(transaction)
    db.commit()
    body = {"transactionId": transaction.id, "rating": 5, "comment": "Great"}

    created = client.post("/api/reviews", json=body, headers=auth_headers(buyer))
    assert created.status_code == 201
    assert created.json()["rating"] == 5
    assert created.json()["buyer"]["firstName"] == "Grace"

    duplicate = client.post("/api/reviews", json=body, headers=auth_headers(buyer))
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "You have already reviewed this purchase"

    listed = client.get(f"/api/listings/{listing.id}/reviews").json()
    assert listed["pagination"]["total"] == 1
    assert listed["reviews"][0]["comment"] == "Great"

    detail = client.get(f"/api/listings/{listing.id}").json()
    assert (detail["averageRating"], detail["totalReviews"]) == (5.0, 1)


def test_review_rating_out_of_range(client, make_user):
    response = client.post(
        "/api/reviews", json={"transactionId": "t1", "rating": 6}, headers=auth_headers(make_user())
    )
    assert response.status_code == 400
    assert response.json()["details"]["errors"][0]["field"] == "body.rating"


def test_review_for_unknown_transaction(client, make_user):
    response = client.post(
        "/api/reviews", json={"transactionId": "missing", "rating": 4}, headers=auth_headers(make_user())
    )
    assert response.status_code == 404


def test_review_rating_must_be_an_integer(client, make_user):
    headers = auth_headers(make_user())
    for rating in [True, "5", 4.0]:
        response = client.post("/api/reviews", json={"transactionId": "t1", "rating": rating}, headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert response.json()["details"]["errors"][0]["field"] == "body.rating"
