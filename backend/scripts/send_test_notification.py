#!/usr/bin/env python3
"""
Send a test notification (inbox row + push) to one user, or to every user with a device token.
Run: cd backend && poetry run python scripts/send_test_notification.py [user_id]
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from bakery_reminders.db.session import SessionLocal
from bakery_reminders.services.push import PushGatewayClient
from bakery_reminders.services.recipients import list_users_with_tokens
from bakery_reminders.services.user_notifications import create_test_notification


def main():
    db = SessionLocal()
    push_client = PushGatewayClient()
    try:
        if len(sys.argv) > 1:
            user_ids = [sys.argv[1]]
        else:
            user_ids = [r.id for r in list_users_with_tokens(db)]
            if not user_ids:
                print("No users with a registered device token.")
                return
            print(f"Sending to {len(user_ids)} user(s) with a device token...")
        for user_id in user_ids:
            result = create_test_notification(db, user_id, push_client)
            status = "push sent" if result["pushed"] else f"push not sent ({result.get('reason')})"
            print(f"  {user_id}: inbox notification {result['notification']['id']}, {status}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
