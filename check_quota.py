#!/usr/bin/env python3
"""Check an account's conversation minutes against its scheduled interviews."""

import asyncio
import os
import sys

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("MONGODB_DB_NAME", "mock_interviews")


async def check_quota(account_id: str):
    """Print the ledger and the minutes held by scheduled interviews."""
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[DB_NAME]

    profile = await db["profiles"].find_one({"_id": account_id})
    if not profile:
        print(f"❌ No profile for account {account_id}")
        client.close()
        return

    total = profile.get("total_conversation_minutes", 0)
    used = profile.get("used_conversation_minutes", 0)
    print(f"📋 Account: {account_id} ({profile.get('name')})")
    print(f"   Tier: {profile.get('subscription_tier')}")
    print(f"   Minutes: {used}/{total} used, {total - used} remaining")

    interviews = await db["interviews"].find(
        {"user_id": account_id}
    ).sort("scheduled_at", -1).to_list(length=100)

    held = 0
    print(f"\n📝 Interviews ({len(interviews)}):")
    for interview in interviews:
        if interview.get("status") == "scheduled":
            held += interview.get("duration", 0)
        print(
            f"   - {interview['_id']} | {interview.get('title')} | {interview.get('status')} | "
            f"{interview.get('duration')} min | prompt: {interview.get('prompt_status')}"
        )

    completed = sum(i.get("duration", 0) for i in interviews if i.get("status") == "completed")
    print(f"\n   Scheduled interviews hold {held} minutes, completed consumed {completed}")
    if held + completed != used:
        # Deleted completed interviews keep their minutes, so this is only a hint
        print(f"⚠️  Ledger shows {used} used minutes; records account for {held + completed}")
    else:
        print("✅ Ledger matches interview records")

    client.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python check_quota.py <ACCOUNT_ID>")
        sys.exit(1)
    asyncio.run(check_quota(sys.argv[1]))
