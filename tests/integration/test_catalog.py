"""
Catalog integration tests.

Verifies:
- Published-only listing of courses, products and events
- Course detail with lessons and review statistics
- Spanish rendering via path prefix and ?lang
- Private product fields never leave the server
"""
from fastapi.testclient import TestClient


class TestCourses:

    def test_list_published_courses(self, client: TestClient, course, advanced_course, draft_course):
        response = client.get("/api/courses")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["has_more"] is False
        assert {item["id"] for item in data["items"]} == {course["id"], advanced_course["id"]}
        assert all("curriculum" not in item for item in data["items"])

    def test_filter_by_level(self, client: TestClient, course, advanced_course):
        data = client.get("/api/courses", params={"level": "advanced"}).json()

        assert [item["id"] for item in data["items"]] == [advanced_course["id"]]

    def test_filter_by_price(self, client: TestClient, course, advanced_course):
        data = client.get("/api/courses", params={"max_price": 50}).json()

        assert [item["id"] for item in data["items"]] == [course["id"]]

    def test_pagination(self, client: TestClient, course, advanced_course):
        data = client.get("/api/courses", params={"limit": 1}).json()

        assert len(data["items"]) == 1
        assert data["has_more"] is True

    def test_invalid_limit(self, client: TestClient):
        response = client.get("/api/courses", params={"limit": 500})

        assert response.status_code == 400

    def test_course_detail(self, client: TestClient, course):
        response = client.get(f"/api/courses/{course['id']}")

        assert response.status_code == 200
        detail = response.json()["course"]
        assert detail["title"] == "Mindful Yoga for Beginners"
        assert detail["price_formatted"] == "$49.99"
        assert [lesson["id"] for lesson in detail["lessons"]] == [
            "lesson-1", "lesson-2", "lesson-3", "lesson-4"
        ]
        assert detail["lessons"][2]["section"] == "Practice"
        assert detail["review_stats"]["total_reviews"] == 0

    def test_course_by_slug(self, client: TestClient, course):
        response = client.get("/api/courses/slug/mindful-yoga-beginners")

        assert response.status_code == 200
        assert response.json()["course"]["id"] == course["id"]

    def test_draft_course_is_hidden(self, client: TestClient, draft_course):
        by_id = client.get(f"/api/courses/{draft_course['id']}")
        by_slug = client.get("/api/courses/slug/unreleased-yoga")

        assert by_id.status_code == 404
        assert by_id.json()["error"]["message"] == "Course not found"
        assert by_slug.status_code == 404

    def test_spanish_path_prefix(self, client: TestClient, course):
        response = client.get(f"/es/api/courses/{course['id']}")

        assert response.status_code == 200
        assert response.headers["content-language"] == "es"
        detail = response.json()["course"]
        assert detail["title"] == "Yoga consciente para principiantes"
        assert detail["description"] == "Práctica suave de yoga para aliviar el estrés"
        assert detail["long_description"] == "A complete introduction to yoga."
        assert "49,99" in detail["price_formatted"]

    def test_missing_translation_falls_back_to_english(self, client: TestClient, advanced_course):
        detail = client.get(f"/api/courses/{advanced_course['id']}", params={"lang": "es"}).json()["course"]

        assert detail["title"] == "Advanced Meditation Retreat"
        assert "title_es" not in detail


class TestProducts:

    def test_product_hides_file_location(self, client: TestClient, product):
        response = client.get(f"/api/products/{product['id']}")

        assert response.status_code == 200
        detail = response.json()["product"]
        assert detail["title"] == "Yoga Pose Guide"
        assert detail["price_formatted"] == "$19.50"
        assert "file_key" not in detail
        assert "file_folder" not in detail

    def test_product_list_in_spanish(self, client: TestClient, product):
        data = client.get("/es/api/products").json()

        assert data["total"] == 1
        assert data["items"][0]["title"] == "Guía de posturas de yoga"
        assert "file_key" not in data["items"][0]

    def test_filter_by_product_type(self, client: TestClient, product):
        data = client.get("/api/products", params={"product_type": "audio"}).json()

        assert data["items"] == []
        assert data["total"] == 0

    def test_unknown_product(self, client: TestClient):
        response = client.get("/api/products/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Product not found"


class TestEvents:

    def test_past_events_are_not_listed(self, client: TestClient, event, past_event):
        data = client.get("/api/events").json()

        assert [item["id"] for item in data["items"]] == [event["id"]]
        item = data["items"][0]
        assert item["available_spots"] == 20
        assert item["is_sold_out"] is False
        assert item["event_date_formatted"]

    def test_filter_by_city(self, client: TestClient, event):
        assert client.get("/api/events", params={"city": "madrid"}).json()["total"] == 1
        assert client.get("/api/events", params={"city": "Paris"}).json()["total"] == 0

    def test_event_detail(self, client: TestClient, event):
        response = client.get(f"/api/events/{event['id']}")

        assert response.status_code == 200
        detail = response.json()["event"]
        assert detail["venue_city"] == "Madrid"
        assert detail["event_date_long"]
        assert detail["price_formatted"] == "$75.00"

    def test_sold_out_event(self, client: TestClient, db):
        from app.infrastructure.repositories import EventRepository
        from tests.conftest import future_date

        event_id = EventRepository(db).create({
            "title": "Tiny Sound Bath",
            "slug": "tiny-sound-bath",
            "description": "Only two mats",
            "price": 30,
            "event_date": future_date(5),
            "venue_name": "Studio",
            "venue_address": "Road 3",
            "venue_city": "Porto",
            "venue_country": "Portugal",
            "capacity": 2,
            "available_spots": 0,
            "is_published": True,
        })

        detail = client.get(f"/api/events/{event_id}").json()["event"]

        assert detail["is_sold_out"] is True
