"""
Gmail refresh token helper for the subscription email scanner.

Runs the OAuth consent flow once (read-only mailbox access) and prints the
refresh token to put in backend/.env as GMAIL_REFRESH_TOKEN.

Usage:
    python scripts/get_gmail_token.py [--client-secrets credentials.json]
"""

import argparse
import os
import sys

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

# The scanner only searches and reads messages
SCOPES = ['https://www.googleapis.com/auth/gmail.readonly']
TOKEN_FILE = 'gmail_token.json'


def load_cached_credentials(token_file: str):
    if not os.path.exists(token_file):
        return None
    print(f"Using cached token from {token_file}")
    return Credentials.from_authorized_user_file(token_file, SCOPES)


def authorize(client_secrets: str, token_file: str = TOKEN_FILE):
    """
    Return valid credentials, refreshing or re-running consent as needed.
    Opens a browser window when consent is required.
    """
    creds = load_cached_credentials(token_file)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        print("Refreshing expired token...")
        creds.refresh(Request())
    else:
        if not os.path.exists(client_secrets):
            print(f"\nError: {client_secrets} not found.")
            print("Download the OAuth 2.0 Client ID JSON from Google Cloud Console")
            print("(APIs & Services > Credentials) and pass it with --client-secrets.")
            return None

        print("\nA browser window will open. Sign in and allow read-only Gmail access")
        print("for Subscription Guardian.\n")
        flow = InstalledAppFlow.from_client_secrets_file(client_secrets, SCOPES)
        creds = flow.run_local_server(port=0)

    with open(token_file, 'w') as token:
        token.write(creds.to_json())

    return creds


def main():
    parser = argparse.ArgumentParser(description="Get a Gmail refresh token for email scanning")
    parser.add_argument('--client-secrets', default='credentials.json')
    parser.add_argument('--token-file', default=TOKEN_FILE)
    args = parser.parse_args()

    creds = authorize(args.client_secrets, args.token_file)
    if not creds:
        print("\nAuthentication failed")
        sys.exit(1)

    print("\nAdd this to your backend/.env file:")
    print("-" * 60)
    print(f"GMAIL_REFRESH_TOKEN={creds.refresh_token}")
    print("-" * 60)


if __name__ == "__main__":
    main()
