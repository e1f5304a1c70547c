"""Create a local test user with a few friends and one saved split.

Usage: python -m scripts.seed_test_data <firebase-uid> <email> [--name NAME]
Run from the backend/ directory. The uid must belong to a real Firebase
account if you want to sign in as this user afterwards.
"""

import argparse
import asyncio

from spliteasy.core.database import async_session_factory
from spliteasy.schemas.receipt import ReceiptCreate
from spliteasy.services.receipt_service import create_receipt
from spliteasy.services.user_service import add_friend, upsert_user

FRIENDS = ["Bob", "Charlie"]

SAMPLE_RECEIPT = {
    "name": "Test Dinner",
    "subtotal": "42.00",
    "tax": "3.36",
    "tip": "7.56",
    "total": "52.92",
    "participants": [
        {"id": "me", "name": "placeholder"},
        {"id": "bob", "name": "Bob"},
        {"id": "charlie", "name": "Charlie"},
    ],
    "items": [
        {"description": "Margherita Pizza", "quantity": 1, "price": "18.00",
         "assignments": [{"participant_id": "me", "amount": "6.00"},
                         {"participant_id": "bob", "amount": "6.00"},
                         {"participant_id": "charlie", "amount": "6.00"}]},
        {"description": "Caesar Salad", "quantity": 1, "price": "12.00",
         "assignments": [{"participant_id": "bob", "amount": "12.00"}]},
        {"description": "Lemonade", "quantity": 3, "price": "4.00",
         "assignments": [{"participant_id": "me", "amount": "4.00"},
                         {"participant_id": "charlie", "amount": "8.00"}]},
    ],
}


async def main(firebase_uid: str, email: str, name: str | None):
    async with async_session_factory() as db:
        user = await upsert_user(db, firebase_uid, email, name)
        print(f"User: {user.display_name} ({user.id})")

        for friend_name in FRIENDS:
            await add_friend(db, user.id, friend_name)
            print(f"  Friend: {friend_name}")

        data = dict(SAMPLE_RECEIPT)
        data["participants"] = [
            {**p, "name": user.display_name} if p["id"] == "me" else p
            for p in SAMPLE_RECEIPT["participants"]
        ]
        receipt = await create_receipt(db, user, ReceiptCreate.model_validate(data))
        print(f"  Receipt: {receipt.name} ({receipt.id})")

    print("\nDone!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("firebase_uid")
    parser.add_argument("email")
    parser.add_argument("--name")
    args = parser.parse_args()
    asyncio.run(main(args.firebase_uid, args.email, args.name))
