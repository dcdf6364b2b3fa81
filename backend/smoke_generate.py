"""Manual smoke check against a running server: python smoke_generate.py"""

import httpx

payload = {
    "boundary": [
        {"lat": 51.5000, "lng": -0.1200},
        {"lat": 51.5000, "lng": -0.1128},
        {"lat": 51.5045, "lng": -0.1128},
        {"lat": 51.5045, "lng": -0.1200},
    ],
    "density": "medium",
    "layout": "grid",
    "seed": "smoke",
}

r = httpx.post("http://127.0.0.1:8000/api/layout/generate", json=payload, timeout=60)
print(r.status_code)
if r.is_success:
    print(r.json()["stats"])
else:
    print(r.text)
