"""
Liveness probe for the stock aggregation service.

Calls GET /health on the local port the service binds (PORT, default 9876).
Exits 0 when the service answers {"status": "ok"}, 1 otherwise.
"""
import os
import sys
import httpx

PORT = os.getenv("PORT", "9876")

try:
    response = httpx.get(f"http://localhost:{PORT}/health", timeout=3.0)

    if response.status_code == 200 and response.json().get("status") == "ok":
        print("Healthcheck passed.")
        sys.exit(0)
    else:
        print(f"Healthcheck failed with status code: {response.status_code}")
        sys.exit(1)

except (httpx.RequestError, ValueError) as e:
    print(f"Healthcheck failed with error: {e}")
    sys.exit(1)
