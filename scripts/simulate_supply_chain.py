"""
Simple simulator: walk one herb batch through the four supply chain stages.
Run:
    python scripts/simulate_supply_chain.py
"""
import json
import os
import random
import time
from datetime import date, timedelta

import requests

API = os.getenv("API_URL", "http://localhost:8000")


def register(name, role, org):
    suffix = random.randint(1000, 9999)
    r = requests.post(f"{API}/api/users", json={
        "email": f"{role.lower()}{suffix}@herbchain.in",
        "name": name,
        "organization": org,
        "role": role,
    })
    r.raise_for_status()
    return r.json()["id"]


def post_event(path, user_id, data, location=None):
    form = {"data": json.dumps(data)}
    if location:
        form["location"] = json.dumps(location)
    r = requests.post(f"{API}{path}", data=form, headers={"X-User-Id": user_id})
    print(path, r.status_code, r.text)
    r.raise_for_status()
    return r.json()


def main():
    print("Seed:", requests.get(f"{API}/api/seed").json())

    collector = register("Ravi Kumar", "COLLECTOR", "Kerala Herb Collective")
    tester = register("Dr. Meera Nair", "TESTER", "AyurLab Kochi")
    processor = register("Suresh Pillai", "PROCESSOR", "Malabar Extracts")
    maker = register("Anita Rao", "MANUFACTURER", "Vaidya Naturals")

    today = date.today()
    receipt = post_event("/api/collections", collector, {
        "herb_species": "Brahmi",
        "weight_grams": round(random.uniform(2000, 8000), 1),
        "quality_grade": random.choice(["Premium", "Grade A", "Grade B"]),
        "price_per_unit": 0.45,
        "harvest_date": str(today - timedelta(days=2)),
        "collector_group": "Kerala Herb Collective",
    }, location={"latitude": 10.52, "longitude": 76.21, "zone": "Western Ghats - Kerala"})
    batch_id = receipt["batch_id"]
    time.sleep(1)

    post_event(f"/api/batches/{batch_id}/quality-tests", tester, {
        "test_date": str(today),
        "tester_name": "Dr. Meera Nair",
        "lab_name": "AyurLab Kochi",
        "test_method": "HPTLC",
        "moisture_content": round(random.uniform(6, 11), 2),
        "purity": round(random.uniform(92, 99), 2),
        "overall_result": "PASS",
    })
    time.sleep(1)

    post_event(f"/api/batches/{batch_id}/processing", processor, {
        "processor_name": "Suresh Pillai",
        "processing_facility": "Malabar Extracts Unit 2",
        "method": "Traditional Drying",
        "input_weight_grams": 2000,
        "output_weight_grams": round(random.uniform(500, 900), 1),
        "start_date": str(today),
        "end_date": str(today),
    })
    time.sleep(1)

    post_event(f"/api/batches/{batch_id}/manufacturing", maker, {
        "manufacturer_name": "Anita Rao",
        "manufacturing_facility": "Vaidya Naturals Plant",
        "product_name": "Brahmi Capsules",
        "product_type": "capsule",
        "quantity": 500,
        "unit": "bottles",
        "manufacturing_date": str(today),
        "expiry_date": str(today + timedelta(days=730)),
    })

    print("Track:", requests.get(f"{API}/api/track/{batch_id}").json())


if __name__ == "__main__":
    main()
