"""Souk Sales Load Testing — Locust entry point.

Discovers all user classes from the scenarios package.
Run specific scenarios with Locust's class selection.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Admin dashboard reads only:
    locust -f loadtests/locustfile.py AnalyticsUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py CheckoutUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.orders import AnalyticsUser, CheckoutUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Fires globally for all scenarios — no per-task wiring needed.
    Extracts the API error body so you see "Cannot cancel an order that is shipped"
    instead of just "400".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    """Log a marker and check the target is up when the load test begins."""
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    try:
        resp = requests.get(f"{environment.host}/health", timeout=5)
        print(f"[LOADTEST] Health: {resp.status_code} {resp.text[:200]}")
    except requests.RequestException as e:
        print(f"[LOADTEST] Health check failed: {e}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the trailing 30-day summary when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    try:
        resp = requests.get(f"{environment.host}/analytics/summary", timeout=5)
        if resp.status_code == 200:
            print("\n[LOADTEST] Sales summary after run:")
            for key, value in resp.json().items():
                print(f"  {key}: {value}")
        print()
    except requests.RequestException as e:
        print(f"[LOADTEST] Could not fetch sales summary: {e}\n")
