"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test the participant limit
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_LIMIT = 10
CATEGORY_ID = None


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random.randint(0, 9999)}@test.com"


def random_name():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def future_date(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).strftime("%Y-%m-%d %H:%M:%S")


def register(client) -> int:
    resp = client.post("/admin/users", json={"name": random_name(), "email": random_email()})
    return resp.json()["id"] if resp.status_code == 201 else None


def ensure_category(client) -> int:
    global CATEGORY_ID
    if CATEGORY_ID is None:
        resp = client.post("/admin/categories", json={"name": f"Load {random_name()}"})
        if resp.status_code == 201:
            CATEGORY_ID = resp.json()["id"]
    return CATEGORY_ID


def publish_event(client, owner_id: int, limit: int, moderation: bool) -> int:
    resp = client.post(f"/users/{owner_id}/events", json={
        "title": f"Load Event {random.randint(1, 10000)}",
        "annotation": "Generated by the load test suite",
        "description": "Generated by the load test suite for capacity checks",
        "category": ensure_category(client),
        "eventDate": future_date(random.randint(1, 90)),
        "location": {"lat": 0, "lon": 0},
        "participantLimit": limit,
        "requestModeration": moderation,
    })
    if resp.status_code != 201:
        return None
    event_id = resp.json()["id"]
    client.patch(f"/admin/events/{event_id}", json={"stateAction": "PUBLISH_EVENT"})
    return event_id


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"SETUP: concurrency event will accept {CONCURRENCY_LIMIT} participants")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 places, no moderation

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM requests WHERE event_id = X AND status = 'CONFIRMED';
    Should be <= 10, and equal to events.confirmed_requests
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = register(self.client)

        if self.user_id and not CONCURRENCY_EVENT_ID:
            owner = register(self.client)
            event_id = publish_event(self.client, owner, CONCURRENCY_LIMIT, moderation=False)
            if event_id:
                globals()["CONCURRENCY_EVENT_ID"] = event_id
                print(f"\nCreated event {event_id} with {CONCURRENCY_LIMIT} places\n")

    @tag("concurrency")
    @task
    def apply_for_limited_event(self):
        """All users fight for the same 10 places."""
        if not CONCURRENCY_EVENT_ID or not self.user_id:
            return

        with self.client.post(f"/users/{self.user_id}/requests",
            params={"eventId": CONCURRENCY_EVENT_ID},
            name="/users/{id}/requests",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: full or already applied
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ModerationUser(HttpUser):
    """
    TEST 2: Admission - initiators confirm batches while requests keep coming

    Run: locust -f locustfile.py --tags admission -u 50 -r 10 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.owner = register(self.client)
        self.event_id = publish_event(self.client, self.owner, limit=5, moderation=True) if self.owner else None
        self.guests = [register(self.client) for _ in range(8)]

    @tag("admission")
    @task
    def fill_and_confirm(self):
        if not self.event_id:
            return
        request_ids = []
        for guest in self.guests:
            resp = self.client.post(f"/users/{guest}/requests", params={"eventId": self.event_id},
                name="/users/{id}/requests")
            if resp.status_code == 201:
                request_ids.append(resp.json()["id"])

        with self.client.patch(f"/users/{self.owner}/events/{self.event_id}/requests",
            json={"requestIds": request_ids or [0], "status": "CONFIRMED"},
            name="/users/{id}/events/{id}/requests",
            catch_response=True
        ) as resp:
            if resp.status_code in [200, 409]:
                resp.success()  # 409: limit exceeded part way, or nothing pending
            else:
                resp.failure(f"Unexpected: {resp.status_code}")
        # Next round starts on a fresh event
        self.event_id = publish_event(self.client, self.owner, limit=5, moderation=True)


class ThroughputUser(HttpUser):
    """
    TEST 3: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached endpoint."""
        offset = random.randint(0, 4) * 20
        resp = self.client.get(f"/events?from={offset}&size=20", name="/events [cached]")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        """Read individual events."""
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            self.client.get(f"/events/{event_id}", name="/events/{id}")

    @tag("throughput", "read")
    @task(2)
    def top_events(self):
        """Rankings hit the collaborators on every call."""
        self.client.get("/events/top-view?count=10", name="/events/top-view")
        self.client.get("/compilations?pinned=true", name="/compilations")

    @tag("throughput")
    @task(1)
    def health_check(self):
        """Monitor system health."""
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.user_id = register(self.client) or 0

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        """Apply to a non-existent event."""
        with self.client.post(f"/users/{self.user_id}/requests", params={"eventId": 999999},
            name="/users/{id}/requests [missing event]", catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def missing_event_param(self):
        with self.client.post(f"/users/{self.user_id}/requests",
            name="/users/{id}/requests [no eventId]", catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def negative_limit(self):
        with self.client.post(f"/users/{self.user_id}/events", json={
                "title": "Broken", "annotation": "x" * 20, "description": "x" * 20,
                "category": 1, "eventDate": future_date(3), "location": {"lat": 0, "lon": 0},
                "participantLimit": -5,
            }, name="/users/{id}/events [bad limit]", catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def too_soon(self):
        with self.client.post(f"/users/{self.user_id}/events", json={
                "title": "Too Soon", "annotation": "x" * 20, "description": "x" * 20,
                "category": ensure_category(self.client) or 1,
                "eventDate": (datetime.now(timezone.utc) + timedelta(minutes=30)).strftime("%Y-%m-%d %H:%M:%S"),
                "location": {"lat": 0, "lon": 0},
            }, name="/users/{id}/events [too soon]", catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def bad_admission_status(self):
        with self.client.patch(f"/users/{self.user_id}/events/1/requests",
            json={"requestIds": [1], "status": "CANCELED"},
            name="/users/{id}/events/{id}/requests [bad status]", catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.patch("/admin/events/1",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            name="/admin/events/{id} [garbage]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])


class RealisticUser(HttpUser):
    """
    TEST 5: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing (80%)
      - Some requests and cancellations (15%)
      - Rare creates (5%)
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.user_id = register(self.client)
        self.request_ids = []

    @task(50)
    def browse_events(self):
        """Most common: browsing."""
        resp = self.client.get("/events?from=0&size=20")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        """View details."""
        if EVENT_IDS:
            self.client.get(f"/events/{random.choice(EVENT_IDS)}", name="/events/{id}")

    @task(10)
    def apply(self):
        """Occasional participation request."""
        if EVENT_IDS and self.user_id:
            resp = self.client.post(f"/users/{self.user_id}/requests",
                params={"eventId": random.choice(EVENT_IDS)}, name="/users/{id}/requests")
            if resp.status_code == 201:
                self.request_ids.append(resp.json()["id"])

    @task(3)
    def cancel(self):
        if self.request_ids:
            request_id = self.request_ids.pop()
            self.client.patch(f"/users/{self.user_id}/requests/{request_id}/cancel",
                name="/users/{id}/requests/{id}/cancel")

    @task(3)
    def create_event(self):
        """Rare: create and publish a new event."""
        if self.user_id:
            event_id = publish_event(self.client, self.user_id,
                limit=random.randint(0, 50), moderation=random.random() < 0.5)
            if event_id:
                EVENT_IDS.append(event_id)
