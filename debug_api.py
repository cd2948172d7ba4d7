import requests
import json
import sys

from app.utils.security import create_access_token

BASE_URL = "http://localhost:8000/api/v1"
ACCOUNT_ID = sys.argv[1] if len(sys.argv) > 1 else "debug-account"


def _headers():
    token = create_access_token(ACCOUNT_ID, user_metadata={"full_name": "Debug Candidate"})
    return {"Content-Type": "application/json", "Authorization": f"Bearer {token}"}


def test_quota():
    print(f"Checking quota for account {ACCOUNT_ID}...")
    response = requests.get(f"{BASE_URL}/quota", headers=_headers(), timeout=10)
    print(f"Status Code: {response.status_code}")
    print(f"Response: {response.text}")


def test_create_interview():
    print("\nTesting Create Interview...")
    payload = {
        "interview_type": "technical",
        "role": "Backend Engineer",
        "company": "Acme",
        "experience": "mid",
        "difficulty": "medium",
        "duration": 5
    }

    try:
        response = requests.post(f"{BASE_URL}/interviews/", json=payload, headers=_headers(), timeout=10)
        print(f"Status Code: {response.status_code}")
        print(f"Response: {response.text}")

        if response.status_code == 201:
            data = response.json()
            print(f"Interview ID: {data['id']}")
            print(f"Prompt status: {data['prompt_status']}")
            return data["id"]
        return None
    except requests.RequestException as e:
        print(f"Error: {e}")
        return None


def test_start_session(interview_id):
    if not interview_id:
        return
    print(f"\nTesting Start Session for interview {interview_id}...")

    try:
        response = requests.post(
            f"{BASE_URL}/interviews/{interview_id}/session",
            headers=_headers(),
            timeout=40
        )
        print(f"Status Code: {response.status_code}")
        if response.ok:
            print("Conversation:", json.dumps(response.json(), indent=2))
        else:
            print(f"Response: {response.text}")
    except requests.RequestException as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    test_quota()
    interview_id = test_create_interview()
    test_start_session(interview_id)
    test_quota()
