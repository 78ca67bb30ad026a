# backend/smoke_call.py
"""
Manual smoke run of one practice call against a running backend.

Usage:
    1. Start the backend: cd backend && uvicorn callsim.main:app --reload --host 0.0.0.0 --port 8000
    2. Run this script: python smoke_call.py
"""

import asyncio
import io
import sys

import httpx

# Fix Windows console encoding
if sys.platform == 'win32':
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')

BASE_URL = "http://localhost:8000"

REP_LINES = [
    "Good morning, this is Sam from LedgerFlow. Do you have two minutes?",
    "What challenges come up for your team at month-end close?",
    "How does that delay impact reporting to leadership?",
    "We help finance teams cut reconciliation time by 50% with automated matching.",
    "Can we book a 30 minute demo next Tuesday with your controller to review your close?",
]


async def run_practice_call():
    async with httpx.AsyncClient(timeout=60) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            print(f"[OK] Server health: {health.json()['status']}")
        except httpx.HTTPError as e:
            print(f"[FAIL] Server not running: {e}")
            print("\nStart the server first:")
            print("  cd backend && uvicorn callsim.main:app --reload --host 0.0.0.0 --port 8000")
            return

        payload = {
            "persona": {
                "level": "director",
                "title": "Director of Finance",
                "personality_traits": ["analytical", "skeptical"],
            },
            "business": {
                "company_name": "Northwind Logistics",
                "industry": "logistics",
                "company_size": "medium",
                "challenges": ["Manual invoice reconciliation", "Slow month-end close"],
            },
            "product": {
                "name": "LedgerFlow",
                "value_propositions": ["Automates invoice reconciliation"],
            },
            "call_type": "discovery-outbound",
            "difficulty": 3,
        }

        response = await client.post(f"{BASE_URL}/api/simulations", json=payload)
        if response.status_code != 200:
            print(f"[FAIL] Could not start simulation: {response.text}")
            return
        session_id = response.json()["session_id"]
        print(f"\n[CALL] Session {session_id} started")

        for line in REP_LINES:
            turn = (await client.post(f"{BASE_URL}/api/simulations/{session_id}/turns", json={"message": line})).json()
            print(f"\n   REP: {line}")
            print(f"   PROSPECT ({turn['phase']}, rapport {turn['rapport_level']:.2f}): {turn['reply']}")
            if turn["terminal"]:
                print(f"   [HANGUP] {turn['hangup_reason']}")
                break

        ended = (await client.post(f"{BASE_URL}/api/simulations/{session_id}/end")).json()
        print(f"\n[OK] Call ended: {ended['status']} after {ended['turns']} turns")

        score = (await client.post(f"{BASE_URL}/api/simulations/{session_id}/score")).json()
        print(f"\n[SCORE] {score['overall_score_rounded']}/100 ({score['analysis_mode']} analysis)")
        for row in score["metric_breakdown"]:
            print(f"   {row['metric']}: {row['score']}")
        print(f"\n{score['coaching_feedback']['summary']}")


if __name__ == "__main__":
    print("=" * 60)
    print("CallSim Practice Call Smoke Run")
    print("=" * 60)
    asyncio.run(run_practice_call())
