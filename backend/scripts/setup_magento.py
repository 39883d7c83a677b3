#!/usr/bin/env python3
"""Magento setup script.

Verifies an integration access token against the store and offers to keep
it in the system keychain instead of the .env file.

Usage:
    1. In the Magento admin open System > Integrations and create an
       integration with access to the Catalog and Inventory resources
    2. Activate it and copy the "Access Token"
    3. Run this script: python -m scripts.setup_magento

    python -m scripts.setup_magento --forget removes a stored token.
"""

import argparse
import sys

from config import settings
from integrations.exceptions import UpstreamError
from integrations.magento_client import MagentoClient
from services.credential_manager import delete_credential, set_credential

TOKEN_KEY = "MAGENTO_ACCESS_TOKEN"


def _offer_keychain_store(credentials: dict[str, str]) -> None:
    """Prompt the user to store credentials in the system keychain."""
    answer = input("\nStore these credentials in the keychain? [Y/n] ").strip().lower()
    if answer not in ("", "y", "yes"):
        print("  Skipped keychain storage.")
        return
    for key, value in credentials.items():
        if set_credential(key, value):
            print(f"  Stored {key} in keychain")
        else:
            print(f"  Failed to store {key}")


def forget() -> None:
    if delete_credential(TOKEN_KEY):
        print(f"Removed {TOKEN_KEY} from the keychain.")
    else:
        print(f"No {TOKEN_KEY} stored in the keychain.")


def main(argv: list[str] | None = None) -> None:
    """Verify the token and store it."""
    parser = argparse.ArgumentParser(description="Configure Magento API access.")
    parser.add_argument(
        "--forget", action="store_true", help="Remove the stored access token and exit"
    )
    args = parser.parse_args(argv)
    if args.forget:
        forget()
        return

    print("Magento Setup")
    print("=" * 50)
    print()

    base_url = input(f"Store base URL [{settings.MAGENTO_BASE_URL}]: ").strip()
    base_url = (base_url or settings.MAGENTO_BASE_URL).rstrip("/")
    if not base_url:
        print("Error: No base URL provided")
        sys.exit(1)

    access_token = input("Paste the integration access token: ").strip()
    if not access_token:
        print("Error: No access token provided")
        sys.exit(1)

    print()
    print("Checking the token against the category endpoint...")

    client = MagentoClient(base_url=base_url, access_token=access_token)
    try:
        root = client.get_category_tree(settings.MAGENTO_ROOT_CATEGORY_ID)
    except UpstreamError as e:
        print(f"Error: {e}")
        print()
        print("Common issues:")
        print("  - Integration not activated or token copied incompletely")
        print("  - Integration lacks the Magento_Catalog resource")
        print("  - Base URL must be the store origin without /rest")
        sys.exit(1)
    finally:
        client.close()

    print(f"Success! Root category: {root.name} ({len(root.children)} children)")
    print()
    print("Add the following to your .env file:")
    print()
    print(f"MAGENTO_BASE_URL={base_url}")
    _offer_keychain_store({TOKEN_KEY: access_token})


if __name__ == "__main__":
    main()
