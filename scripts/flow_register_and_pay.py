#!/usr/bin/env python3
"""
Registration, payment and accreditation flow script.

This script only orchestrates API calls; all rules live in the backend.
Tokens come from scripts/create_staff.py (admin and validator) and the
auth provider (participant).

Usage:
    python scripts/flow_register_and_pay.py --participant-token <JWT> \\
        --admin-token <JWT> --validator-token <JWT>

Flow:
    1. Initialize payment (participant)
    2. Submit WhatsApp proof (participant)
    3. Verify payment (admin)
    4. Accredit participant (validator)
    5. Validate breakfast (validator)
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=10.0)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict) -> bool:
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False
    print(f"Status: {result['status']}")
    print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Register, pay and accredit a participant")
    parser.add_argument("--participant-token", required=True)
    parser.add_argument("--admin-token", required=True)
    parser.add_argument("--validator-token", required=True)
    parser.add_argument("--location", default="Main Hall")
    args = parser.parse_args()

    print_step(1, "Initialize payment")
    init_result = api_request(args.participant_token, "POST", "/api/v1/payments/initialize")
    if not print_result(init_result):
        sys.exit(1)
    reference = init_result["data"]["reference"]

    print_step(2, "Submit WhatsApp proof")
    if not print_result(api_request(args.participant_token, "POST", "/api/v1/payments/proof/whatsapp")):
        sys.exit(1)

    print_step(3, "Verify payment (admin)")
    verify_result = api_request(args.admin_token, "POST", "/api/v1/payments/verify", {"reference": reference})
    if not print_result(verify_result):
        sys.exit(1)
    participant_id = verify_result["data"]["profile_id"]

    print_step(4, "Accredit participant")
    if not print_result(api_request(args.validator_token, "POST", "/api/v1/scans", {
        "scan_type": "accreditation",
        "participant_id": participant_id,
        "location": args.location,
    })):
        sys.exit(1)

    print_step(5, "Validate breakfast")
    if not print_result(api_request(args.validator_token, "POST", "/api/v1/scans", {
        "scan_type": "breakfast",
        "participant_id": participant_id,
        "location": args.location,
    })):
        sys.exit(1)

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)
    print(f"Reference: {reference}")


if __name__ == "__main__":
    main()
