"""
Walk a running mock through every chaos mode and show what a worker would see.

    python smoke_upload.py                 # against http://localhost:3000
    BASE_URL=http://host:port python smoke_upload.py
"""
import os
import time

import requests

BASE_URL = os.environ.get("BASE_URL", "http://localhost:3000")
FAKE_PDF = b"%PDF-1.4\n%smoke\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


def set_behavior(**fields):
    print(f"\nSetting behavior {fields}...")
    resp = requests.post(f"{BASE_URL}/api/behavior", json=fields, timeout=5)
    if resp.status_code != 200:
        print(f"Failed to set behavior: {resp.text}")
    return resp


def upload(path, timeout=10):
    start = time.time()
    try:
        resp = requests.post(
            f"{BASE_URL}{path}",
            files={"pdf": ("smoke.pdf", FAKE_PDF, "application/pdf")},
            auth=("worker", "secret"),
            timeout=timeout,
        )
        latency = (time.time() - start) * 1000
        return resp.status_code, latency, resp.text[:80]
    except requests.exceptions.Timeout:
        return "TIMEOUT", (time.time() - start) * 1000, ""


def run_smoke():
    routes = requests.get(f"{BASE_URL}/api/routes", timeout=5).json()["upload"]
    path = routes["paths"][0]
    print(f"Upload route: {routes['method']} {path}")

    requests.post(f"{BASE_URL}/api/inbox/clear", timeout=5)

    requests.post(f"{BASE_URL}/api/behavior/reset", timeout=5)
    status, lat, body = upload(path)
    print(f"NORMAL: Status={status}, Latency={lat:.0f}ms, Body={body}")

    set_behavior(mode="error", errorCode=503)
    status, lat, body = upload(path)
    print(f"ERROR 503: Status={status}, Latency={lat:.0f}ms, Body={body}")

    set_behavior(mode="error", errorCode=400, errorMessage="Custom")
    status, lat, body = upload(path)
    print(f"CUSTOM MESSAGE: Status={status}, Body={body}")

    set_behavior(mode="normal", errorMessage="", delayMs=1000)
    status, lat, body = upload(path)
    print(f"DELAYED: Status={status}, Latency={lat:.0f}ms (Expected >= 1000ms)")

    set_behavior(mode="timeout", delayMs=0)
    status, lat, body = upload(path, timeout=3)
    print(f"TIMEOUT: Status={status}, Latency={lat:.0f}ms (Expected client timeout)")

    requests.post(f"{BASE_URL}/api/behavior/reset", timeout=5)
    inbox = requests.get(f"{BASE_URL}/api/inbox", timeout=5).json()
    print(f"\nInbox now holds {len(inbox)} entries:")
    for entry in inbox:
        print(f"   {entry['responseStatus']:>3} {entry['chaosMode']:<8} {entry['note'] or ''}")

    print("\nSMOKE RUN COMPLETE. Behavior restored to Normal.")


if __name__ == "__main__":
    run_smoke()
