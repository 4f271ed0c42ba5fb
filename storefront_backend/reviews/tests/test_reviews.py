from django.test import TestCase
from rest_framework.test import APIClient

from common.errors import NotFoundError, ValidationError
from common.tests.factories import make_business, make_item, make_user
from reviews.models import Review
from reviews.services.review_service import (
    create_review,
    get_reviews,
    has_user_reviewed,
    rating_summary,
    set_review_status,
)


class ReviewServiceTests(TestCase):
    """
    GUARANTEES:
    - One review per reviewer per item / business (user id or email)
    - Guests must give a name and a valid email; emails are lower-cased
    - Comment is required and rating stays within 1..5
    - Summaries only count approved reviews
    """

    def setUp(self):
        self.business = make_business()
        self.item = make_item(self.business)

    def _guest(self, **kwargs):
        kwargs.setdefault("item_id", self.item.id)
        kwargs.setdefault("rating", 4)
        kwargs.setdefault("comment", "Great")
        kwargs.setdefault("user_name", "Guest")
        kwargs.setdefault("user_email", "Guest@Example.com")
        return create_review(**kwargs)

    def test_guest_review(self):
        review = self._guest()
        self.assertEqual(review.user_email, "guest@example.com")
        self.assertEqual(review.business_id, self.business.id)
        self.assertEqual(review.status, Review.STATUS_APPROVED)

    def test_guest_validation(self):
        with self.assertRaisesMessage(ValidationError, "Name is required"):
            self._guest(user_name=" ")
        with self.assertRaisesMessage(ValidationError, "user_email is invalid"):
            self._guest(user_email="nope")
        with self.assertRaisesMessage(ValidationError, "review comment"):
            self._guest(comment="   ")
        with self.assertRaisesMessage(ValidationError, "between 1 and 5"):
            self._guest(rating=6)
        for rating in (4.7, "4.5", "abc", True):
            with self.assertRaisesMessage(ValidationError, "whole number between 1 and 5"):
                self._guest(rating=rating)
        with self.assertRaises(NotFoundError):
            self._guest(item_id="00000000-0000-0000-0000-000000000000")

    def test_duplicates_rejected(self):
        self._guest()
        with self.assertRaisesMessage(ValidationError, "already submitted"):
            self._guest(user_email="GUEST@example.com")

        user = make_user(first_name="Sam")
        create_review(item_id=self.item.id, rating=5, comment="Nice", user=user)
        self.assertTrue(has_user_reviewed(user_id=user.id, item_id=self.item.id))
        with self.assertRaises(ValidationError):
            create_review(item_id=self.item.id, rating=3, comment="Again", user=user)

        other = make_item(self.business)
        self.assertFalse(has_user_reviewed(user_id=user.id, item_id=other.id))

    def test_business_review(self):
        review = create_review(
            review_type=Review.TYPE_BUSINESS,
            rating=5,
            comment="Friendly staff",
            user_name="Guest",
            user_email="guest@example.com",
        )
        self.assertIsNone(review.item_id)
        self.assertEqual(review.business_id, self.business.id)
        self.assertTrue(
            has_user_reviewed(
                user_email="guest@example.com",
                business_id=self.business.id,
                review_type=Review.TYPE_BUSINESS,
            )
        )
        self.assertFalse(has_user_reviewed(user_email="guest@example.com", item_id=self.item.id))

    def test_summary_and_listing(self):
        self._guest(rating=5, user_email="a@example.com")
        self._guest(rating=4, user_email="b@example.com")
        hidden = self._guest(rating=1, user_email="c@example.com")
        set_review_status(hidden.id, Review.STATUS_REJECTED)

        summary = rating_summary(self.item)
        self.assertEqual(summary["count"], 2)
        self.assertEqual(summary["average"], "4.5")
        self.assertEqual(summary["distribution"]["1"], 0)
        self.assertEqual(summary["distribution"]["5"], 1)

        page = get_reviews(item_id=self.item.id, limit=1)
        self.assertEqual(len(page["reviews"]), 1)
        self.assertTrue(page["has_more"])
        self.assertEqual(len(get_reviews(item_id=self.item.id)["reviews"]), 2)

    def test_empty_summary(self):
        self.assertEqual(rating_summary(self.item), {
            "average": "0.0",
            "count": 0,
            "distribution": {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0},
        })


class ReviewApiTests(TestCase):
    def setUp(self):
        self.business = make_business()
        self.item = make_item(self.business)

    def test_guest_and_customer_reviews(self):
        guest = APIClient()
        res = guest.post(
            "/api/reviews/",
            {
                "item_id": str(self.item.id),
                "rating": 5,
                "comment": "Loved it",
                "user_name": "Guest",
                "user_email": "guest@example.com",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        self.assertNotIn("user_email", res.data)

        customer = APIClient()
        customer.force_authenticate(make_user())
        res = customer.post(
            "/api/reviews/", {"item_id": str(self.item.id), "rating": 3, "comment": "Okay"}, format="json"
        )
        self.assertEqual(res.status_code, 201)
        self.assertTrue(customer.get("/api/reviews/reviewed/", {"item": str(self.item.id)}).data["reviewed"])

        listing = guest.get("/api/reviews/", {"item": str(self.item.id)})
        self.assertEqual(len(listing.data["reviews"]), 2)
        summary = guest.get("/api/reviews/summary/", {"item": str(self.item.id)})
        self.assertEqual(summary.data["count"], 2)

    def test_moderation_requires_capability(self):
        review = create_review(
            item_id=self.item.id, rating=1, comment="Spam", user_name="X", user_email="x@example.com"
        )
        customer = APIClient()
        customer.force_authenticate(make_user())
        res = customer.post(f"/api/reviews/{review.id}/status/", {"status": "rejected"}, format="json")
        self.assertEqual(res.status_code, 403)

        manager = APIClient()
        manager.force_authenticate(make_user(role="manager"))
        res = manager.post(f"/api/reviews/{review.id}/status/", {"status": "rejected"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(APIClient().get("/api/reviews/", {"item": str(self.item.id)}).data["reviews"], [])

        self.assertEqual(manager.delete(f"/api/reviews/{review.id}/").status_code, 204)
        self.assertFalse(Review.objects.exists())
