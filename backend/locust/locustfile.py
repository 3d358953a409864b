"""
Locust Load Test Suite

Expects a seeded database: members LOAD_USER_MIN..LOAD_USER_MAX each holding
LOAD_CAPABILITY_ID, and session LOAD_SESSION_ID. Tokens are minted locally
with the same SECRET_KEY the API uses.

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Racing RSVPs
  locust -f locustfile.py --tags throughput   # Coverage + cached catalog reads
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import datetime, timedelta, timezone

from jose import jwt
from locust import HttpUser, task, between, tag, events

SECRET_KEY = os.environ.get("SECRET_KEY", "super-secret-key-change-in-production")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")
SESSION_ID = int(os.environ.get("LOAD_SESSION_ID", "1"))
CAPABILITY_ID = int(os.environ.get("LOAD_CAPABILITY_ID", "1"))
USER_MIN = int(os.environ.get("LOAD_USER_MIN", "1"))
USER_MAX = int(os.environ.get("LOAD_USER_MAX", "100"))


def token_for(user_id: int, role: str = "member") -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=1)
    return jwt.encode({"sub": str(user_id), "role": role, "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def headers_for(user_id: int, role: str = "member") -> dict:
    return {"Authorization": f"Bearer {token_for(user_id, role)}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"Session {SESSION_ID}, capability {CAPABILITY_ID}, members {USER_MIN}-{USER_MAX}")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - every member RSVPs to the same session, repeatedly

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify no member holds two commitments:
      SELECT user_id, COUNT(*) FROM session_commitments
      WHERE session_id = X GROUP BY user_id HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = random.randint(USER_MIN, USER_MAX)
        self.headers = headers_for(self.user_id)

    @tag("concurrency")
    @task(5)
    def rsvp(self):
        """Double-click RSVP: two identical requests back to back."""
        for _ in range(2):
            with self.client.post(f"/api/v1/sessions/{SESSION_ID}/commitments",
                json={"capability_ids": [CAPABILITY_ID]},
                headers=self.headers,
                name="/api/v1/sessions/{id}/commitments [rsvp]",
                catch_response=True
            ) as resp:
                if resp.status_code == 201:
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def cancel(self):
        with self.client.delete(f"/api/v1/sessions/{SESSION_ID}/commitments",
            headers=self.headers,
            name="/api/v1/sessions/{id}/commitments [cancel]",
            catch_response=True
        ) as resp:
            if resp.status_code in (200, 404):
                resp.success()  # 404: already cancelled
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - uncached coverage vs cached catalog

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the API, run again

    Compare P95/P99 of the catalog listing; coverage should not change.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = headers_for(random.randint(USER_MIN, USER_MAX))

    @tag("throughput", "read")
    @task(10)
    def coverage(self):
        self.client.get(f"/api/v1/sessions/{SESSION_ID}/coverage",
            headers=self.headers,
            name="/api/v1/sessions/{id}/coverage")

    @tag("throughput", "read")
    @task(5)
    def list_capabilities_cached(self):
        self.client.get("/api/v1/capabilities/",
            headers=self.headers,
            name="/api/v1/capabilities/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def candidates(self):
        self.client.get(f"/api/v1/sessions/{SESSION_ID}/candidates?capability_id={CAPABILITY_ID}",
            headers=self.headers,
            name="/api/v1/sessions/{id}/candidates")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = headers_for(random.randint(USER_MIN, USER_MAX))

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def empty_capabilities(self):
        with self.client.post(f"/api/v1/sessions/{SESSION_ID}/commitments",
            json={"capability_ids": []},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def unknown_session(self):
        with self.client.post("/api/v1/sessions/999999/commitments",
            json={"capability_ids": [CAPABILITY_ID]},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(f"/api/v1/sessions/{SESSION_ID}/commitments",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def member_sends_reminder(self):
        with self.client.post(f"/api/v1/sessions/{SESSION_ID}/remind",
            json={"message": "hi"},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (403,))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get(f"/api/v1/sessions/{SESSION_ID}/coverage", catch_response=True) as resp:
            self._expect(resp, (401,))
