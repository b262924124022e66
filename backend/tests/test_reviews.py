from decimal import Decimal

import pytest

from spreadmarket.exceptions import DuplicateReviewError, NotFoundError, ValidationError
from spreadmarket.models.entities import TRANSACTION_COMPLETED, TRANSACTION_PENDING, Transaction
from spreadmarket.services.reviews import list_reviews, submit_review


@pytest.fixture
def make_purchase(db):
    counter = {"n": 0}

    def _make(listing, buyer, status=TRANSACTION_COMPLETED):
        counter["n"] += 1
        transaction = Transaction(
            buyer_id=buyer.id,
            listing_id=listing.id,
            stripe_payment_intent_id=f"pi_review_{counter['n']}",
            amount=Decimal("19.99"),
            commission=Decimal("2.00"),
            creator_earnings=Decimal("17.99"),
            status=status,
        )
        db.add(transaction)
        db.commit()
        return transaction

    return _make


def test_average_rating_over_all_reviews(db, make_user, make_listing, make_purchase):
    creator = make_user(is_creator=True)
    listing = make_listing(creator)

    for rating in [4, 5, 3]:
        buyer = make_user()
        submit_review(db, buyer.id, make_purchase(listing, buyer).id, rating)

    assert listing.average_rating == pytest.approx(4.0)
    assert listing.total_reviews == 3


def test_review_fields(db, make_user, make_listing, make_purchase):
    creator = make_user(is_creator=True)
    buyer = make_user()
    listing = make_listing(creator)
    transaction = make_purchase(listing, buyer)

    review = submit_review(db, buyer.id, transaction.id, 5, "Saved me hours")

    assert review.listing_id == listing.id
    assert review.buyer_id == buyer.id
    assert review.comment == "Saved me hours"
    assert listing.average_rating == 5.0


def test_second_review_for_same_purchase_is_rejected(db, make_user, make_listing, make_purchase):
    creator = make_user(is_creator=True)
    buyer = make_user()
    listing = make_listing(creator)
    transaction = make_purchase(listing, buyer)
    submit_review(db, buyer.id, transaction.id, 4)

    with pytest.raises(DuplicateReviewError):
        submit_review(db, buyer.id, transaction.id, 1)

    assert listing.total_reviews == 1
    assert listing.average_rating == 4.0


def test_only_the_buyer_of_a_completed_purchase_can_review(db, make_user, make_listing, make_purchase):
    creator = make_user(is_creator=True)
    buyer = make_user()
    stranger = make_user()
    listing = make_listing(creator)
    completed = make_purchase(listing, buyer)
    pending = make_purchase(listing, buyer, status=TRANSACTION_PENDING)

    with pytest.raises(NotFoundError):
        submit_review(db, stranger.id, completed.id, 5)
    with pytest.raises(NotFoundError):
        submit_review(db, buyer.id, pending.id, 5)
    with pytest.raises(NotFoundError):
        submit_review(db, buyer.id, "missing", 5)


@pytest.mark.parametrize("rating", [0, 6, True, 4.5])
def test_rating_out_of_range(db, make_user, make_listing, make_purchase, rating):
    creator = make_user(is_creator=True)
    buyer = make_user()
    transaction = make_purchase(make_listing(creator), buyer)

    with pytest.raises(ValidationError):
        submit_review(db, buyer.id, transaction.id, rating)


def test_list_reviews_paginates(db, make_user, make_listing, make_purchase):
    creator = make_user(is_creator=True)
    listing = make_listing(creator)
    for rating in [1, 2, 3]:
        buyer = make_user()
        submit_review(db, buyer.id, make_purchase(listing, buyer).id, rating)

    page = list_reviews(db, listing.id, page=2, limit=2)

    assert (page.total, page.pages, len(page.items)) == (3, 2, 1)
    assert list_reviews(db, "other-listing", 1, 10).total == 0


def test_duplicate_review_detected_with_loaded_relationship(db, make_user, make_listing, make_purchase):
    creator = make_user(is_creator=True)
    buyer = make_user()
    listing = make_listing(creator)
    transaction = make_purchase(listing, buyer)
    # Carga transaction.review (None) antes de resenar
    assert transaction.review is None
    submit_review(db, buyer.id, transaction.id, 5)

    with pytest.raises(DuplicateReviewError):
        submit_review(db, buyer.id, transaction.id, 2)

    assert listing.total_reviews == 1
