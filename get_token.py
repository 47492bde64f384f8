"""
Interactive login to obtain a Robinhood session token.

Run this script, enter your password (and MFA code if asked), and copy the
printed token into ROBINHOOD_AUTH_TOKEN in your .env file.
"""

import asyncio
import getpass
import os

from dotenv import load_dotenv

from robinhood_session import (
    AuthOptions,
    Credentials,
    ErrorEvent,
    ErrorType,
    Event,
    RobinhoodClient,
)

# Load .env file
load_dotenv()

USERNAME = os.getenv("ROBINHOOD_USERNAME")
PASSWORD = os.getenv("ROBINHOOD_PASSWORD")


async def login(username: str, password: str) -> str | None:
    """Log in, prompting for an MFA code when required. Returns the token or None."""
    client = RobinhoodClient()
    loop = asyncio.get_running_loop()
    outcome = loop.create_future()
    prompts: set[asyncio.Task] = set()

    async def prompt_mfa() -> None:
        try:
            code = await loop.run_in_executor(None, input, "Enter the MFA code: ")
        except EOFError:
            if not outcome.done():
                outcome.set_result(None)
            return
        client.login_with_mfa(code.strip())

    def on_mfa(details: dict) -> None:
        print(f"\nMFA required ({details.get('mfa_type') or 'unknown type'}).")
        task = loop.create_task(prompt_mfa())
        prompts.add(task)
        task.add_done_callback(prompts.discard)

    def on_error(error: ErrorEvent) -> None:
        print(f"\nERROR: {error.type.value}: {error.message}")
        if error.type is ErrorType.AUTHENTICATION_MFA:
            on_mfa({"mfa_type": None})
        elif not outcome.done():
            outcome.set_result(None)

    client.on(Event.MFA_REQUESTED, on_mfa)
    client.on(Event.ERROR, on_error)
    client.once(
        Event.AUTHENTICATED,
        lambda: outcome.done() or outcome.set_result(client.get_auth_token()),
    )

    client.authenticate(AuthOptions(credentials=Credentials(username=username, password=password)))
    return await outcome


def main():
    print("=" * 60)
    print("Robinhood Token Generator")
    print("=" * 60)

    username = USERNAME or input("Username: ").strip()
    password = PASSWORD or getpass.getpass("Password: ")

    if not username or not password:
        print("ERROR: A username and password are required")
        return

    print("\nLogging in...")
    token = asyncio.run(login(username, password))

    if token:
        print("\nSuccess! Add this line to your .env file:\n")
        print(f"  ROBINHOOD_AUTH_TOKEN={token}")
        print("\nThe token is not saved anywhere else.")
    else:
        print("\nLogin failed.")


if __name__ == "__main__":
    main()
