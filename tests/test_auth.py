"""Tests for the authentication lifecycle."""

import asyncio

import pytest

from conftest import ACCOUNT, ACCOUNTS_URL, CREDENTIALS, LOGIN_URL, LOGOUT_URL, wait
from robinhood_session.auth import AuthOptions
from robinhood_session.errors import (
    ErrorEvent,
    ErrorType,
    InvalidConfigurationError,
    NoAuthTokenError,
    RequestError,
)
from robinhood_session.events import AuthState, Event
from robinhood_session.session import DEFAULT_HEADERS, Credentials


class TestInvalidConfiguration:
    """authenticate() fails synchronously without options."""

    @pytest.mark.parametrize("options", [None, {}, AuthOptions(), {"credentials": None}])
    def test_falsy_options_raise(self, client, api, options):
        """Test that missing or empty options raise before any request."""
        with pytest.raises(InvalidConfigurationError) as exc_info:
            client.authenticate(options)

        assert exc_info.value.type is ErrorType.INVALID_ROBINHOOD_CONFIGURATION
        assert api.calls == []
        assert client.state is AuthState.UNAUTHENTICATED


class TestTokenPath:
    """Authenticating with an existing token."""

    @pytest.mark.asyncio
    async def test_fetches_account_and_emits_authenticated(self, client, api, recorder):
        """Test that a token is adopted and the first account bootstrapped."""
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT, {"url": "other"}]})
        authenticated = client.events.wait_for(Event.AUTHENTICATED)

        client.authenticate({"authToken": "foo7bar8baz"})
        assert client.get_auth_token() is None

        await wait(authenticated)

        assert client.get_auth_token() == "foo7bar8baz"
        assert client.account == ACCOUNT
        assert client.state is AuthState.AUTHENTICATED
        assert len(api.calls) == 1
        assert api.calls[0].method == "GET"
        assert api.calls[0].uri == ACCOUNTS_URL
        assert len(recorder.of(Event.AUTHENTICATED)) == 1

    @pytest.mark.asyncio
    async def test_account_request_carries_token_header(self, client, api):
        """Test that the account request is sent with the adopted token."""
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        authenticated = client.events.wait_for(Event.AUTHENTICATED)

        client.authenticate(AuthOptions(auth_token="foo7bar8baz"))
        await wait(authenticated)

        assert api.calls[0].authorization == "Token foo7bar8baz"
        headers = dict(client._auth.transport.config.headers)
        assert headers == {"Authorization": "Token foo7bar8baz", **DEFAULT_HEADERS}

    @pytest.mark.asyncio
    async def test_token_wins_over_credentials(self, client, api):
        """Test that a token skips the credential login."""
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        authenticated = client.events.wait_for(Event.AUTHENTICATED)

        client.authenticate({"authToken": "tok", "credentials": CREDENTIALS})
        await wait(authenticated)

        assert api.calls_to("POST", LOGIN_URL) == []
        assert client.get_auth_token() == "tok"

    @pytest.mark.asyncio
    async def test_account_failure_emits_setting_account(self, client, api, recorder):
        """Test that a failed account fetch emits SETTING_ACCOUNT and keeps the token."""
        api.route("GET", ACCOUNTS_URL, RequestError("foo bar"))
        error = client.events.wait_for(Event.ERROR)

        client.authenticate({"authToken": "foo7bar8baz"})

        assert await wait(error) == ErrorEvent(ErrorType.SETTING_ACCOUNT, "foo bar")
        await asyncio.sleep(0.01)
        assert recorder.of(Event.AUTHENTICATED) == []
        assert len(api.calls_to("GET", ACCOUNTS_URL)) == 1
        # The token is kept so later calls can still succeed
        assert client.get_auth_token() == "foo7bar8baz"
        assert client.account is None

    @pytest.mark.asyncio
    async def test_account_response_without_results(self, client, api, recorder):
        """Test that an empty account list emits SETTING_ACCOUNT."""
        api.route("GET", ACCOUNTS_URL, {"results": []})
        error = client.events.wait_for(Event.ERROR)

        client.authenticate({"authToken": "foo7bar8baz"})

        assert (await wait(error)).type is ErrorType.SETTING_ACCOUNT
        assert recorder.of(Event.AUTHENTICATED) == []

    @pytest.mark.asyncio
    async def test_account_entry_that_is_not_an_object(self, client, api, recorder):
        """Test that a malformed account entry is reported as SETTING_ACCOUNT."""
        api.route("GET", ACCOUNTS_URL, {"results": ["5SE16159"]})
        error = client.events.wait_for(Event.ERROR)

        client.authenticate({"authToken": "foo7bar8baz"})

        assert await wait(error) == ErrorEvent(
            ErrorType.SETTING_ACCOUNT, "Account response is invalid"
        )
        await asyncio.sleep(0.01)
        assert recorder.of(Event.AUTHENTICATED) == []
        assert client.get_auth_token() == "foo7bar8baz"
        assert client.account is None


class TestCredentialPath:
    """Authenticating with username and password."""

    @pytest.mark.asyncio
    async def test_login_then_account(self, client, api, recorder):
        """Test the credential login followed by the account bootstrap."""
        api.route("POST", LOGIN_URL, {"token": "abc123"})
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        authenticated = client.events.wait_for(Event.AUTHENTICATED)

        client.authenticate({"credentials": CREDENTIALS})
        await wait(authenticated)

        assert [(c.method, c.uri) for c in api.calls] == [
            ("POST", LOGIN_URL),
            ("GET", ACCOUNTS_URL),
        ]
        assert api.calls[0].data == {"password": "bar", "username": "foo"}
        assert api.calls[0].authorization is None
        assert api.calls[1].authorization == "Token abc123"
        assert client.get_auth_token() == "abc123"
        assert len(recorder.of(Event.AUTHENTICATED)) == 1

    @pytest.mark.asyncio
    async def test_accepts_credentials_dataclass(self, client, api):
        """Test that a Credentials instance works like a mapping."""
        api.route("POST", LOGIN_URL, {"token": "abc123"})
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        authenticated = client.events.wait_for(Event.AUTHENTICATED)

        client.authenticate(AuthOptions(credentials=Credentials("foo", "bar")))
        await wait(authenticated)

        assert client.get_auth_token() == "abc123"

    @pytest.mark.asyncio
    async def test_login_failure_emits_authentication_error(self, client, api, recorder):
        """Test that a rejected login emits AUTHENTICATION."""
        api.route("POST", LOGIN_URL, RequestError("Unable to log in with provided credentials."))
        error = client.events.wait_for(Event.ERROR)

        client.authenticate({"credentials": CREDENTIALS})

        assert await wait(error) == ErrorEvent(
            ErrorType.AUTHENTICATION, "Unable to log in with provided credentials."
        )
        assert api.calls_to("GET", ACCOUNTS_URL) == []
        assert client.get_auth_token() is None
        assert client.state is AuthState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_unexpected_body_emits_unhandled(self, client, api, recorder):
        """Test that a login body without token or MFA flag emits UNHANDLED."""
        api.route("POST", LOGIN_URL, {"foo": "bar"})
        error = client.events.wait_for(Event.ERROR)

        client.authenticate({"credentials": CREDENTIALS})

        assert await wait(error) == ErrorEvent(
            ErrorType.UNHANDLED, "Authentication body response is invalid"
        )
        assert recorder.of(Event.MFA_REQUESTED) == []
        assert client.get_auth_token() is None

    @pytest.mark.asyncio
    async def test_unexpected_exception_emits_unhandled(self, client, api, recorder):
        """Test that an unexpected failure inside the login flow is reported, not lost."""

        def broken_login():
            raise KeyError("token")

        api.route("POST", LOGIN_URL, broken_login)
        error = client.events.wait_for(Event.ERROR)

        client.authenticate({"credentials": CREDENTIALS})

        assert await wait(error) == ErrorEvent(ErrorType.UNHANDLED, "'token'")
        assert recorder.of(Event.AUTHENTICATED) == []
        assert client.get_auth_token() is None
        assert client.state is AuthState.UNAUTHENTICATED


class TestMFA:
    """Authenticating with credentials plus a one-time code."""

    @pytest.mark.asyncio
    async def test_mfa_requested_then_completed(self, client, api, recorder):
        """Test the MFA round trip from MFA_REQUESTED to AUTHENTICATED."""
        api.route(
            "POST",
            LOGIN_URL,
            {"mfa_required": True, "mfa_type": "sms"},
            {"token": "mfa-token"},
        )
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        mfa_requested = client.events.wait_for(Event.MFA_REQUESTED)

        client.authenticate({"credentials": CREDENTIALS})

        assert await wait(mfa_requested) == {"mfa_type": "sms"}
        await asyncio.sleep(0.01)
        assert recorder.of(Event.AUTHENTICATED) == []
        assert api.calls_to("GET", ACCOUNTS_URL) == []
        assert client.get_auth_token() is None
        assert client.state is AuthState.MFA_PENDING

        authenticated = client.events.wait_for(Event.AUTHENTICATED)
        client.login_with_mfa("123456")
        await wait(authenticated)

        assert [(c.method, c.uri) for c in api.calls] == [
            ("POST", LOGIN_URL),
            ("POST", LOGIN_URL),
            ("GET", ACCOUNTS_URL),
        ]
        assert api.calls[1].data == {"password": "bar", "username": "foo", "mfa_code": "123456"}
        assert client.get_auth_token() == "mfa-token"
        assert client.account == ACCOUNT

    @pytest.mark.asyncio
    async def test_mfa_without_token_emits_unhandled(self, client, api):
        """Test that an MFA response without a token emits UNHANDLED."""
        api.route("POST", LOGIN_URL, {"mfa_required": True, "mfa_type": "app"}, {})
        mfa_requested = client.events.wait_for(Event.MFA_REQUESTED)
        client.authenticate({"credentials": CREDENTIALS})
        await wait(mfa_requested)

        error = client.events.wait_for(Event.ERROR)
        client.login_with_mfa("123456")

        assert await wait(error) == ErrorEvent(
            ErrorType.UNHANDLED, "No token when authenticating using MFA"
        )
        assert client.get_auth_token() is None

    @pytest.mark.asyncio
    async def test_mfa_failure_emits_authentication_mfa(self, client, api):
        """Test that a rejected MFA code emits AUTHENTICATION_MFA."""
        api.route(
            "POST",
            LOGIN_URL,
            {"mfa_required": True, "mfa_type": "sms"},
            RequestError("Please enter a valid code."),
        )
        mfa_requested = client.events.wait_for(Event.MFA_REQUESTED)
        client.authenticate({"credentials": CREDENTIALS})
        await wait(mfa_requested)

        error = client.events.wait_for(Event.ERROR)
        client.login_with_mfa("000000")

        assert await wait(error) == ErrorEvent(
            ErrorType.AUTHENTICATION_MFA, "Please enter a valid code."
        )
        assert client.state is AuthState.MFA_PENDING

    @pytest.mark.asyncio
    async def test_mfa_without_credentials(self, client, api):
        """Test that MFA without stored credentials emits AUTHENTICATION."""
        error = client.events.wait_for(Event.ERROR)

        client.login_with_mfa("123456")

        assert (await wait(error)).type is ErrorType.AUTHENTICATION
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_during_mfa_emits_unhandled(self, client, api):
        """Test that an unexpected failure while completing MFA is reported as UNHANDLED."""

        def broken_login():
            raise ValueError("boom")

        api.route("POST", LOGIN_URL, {"mfa_required": True, "mfa_type": "sms"}, broken_login)
        mfa_requested = client.events.wait_for(Event.MFA_REQUESTED)
        client.authenticate({"credentials": CREDENTIALS})
        await wait(mfa_requested)

        error = client.events.wait_for(Event.ERROR)
        client.login_with_mfa("123456")

        assert await wait(error) == ErrorEvent(ErrorType.UNHANDLED, "boom")
        assert client.get_auth_token() is None


class TestExpireToken:
    """Logging out."""

    @pytest.mark.asyncio
    async def test_without_token_raises(self, client, api):
        """Test that logging out without a token raises NoAuthTokenError."""
        with pytest.raises(NoAuthTokenError) as exc_info:
            await client.expire_token()

        assert exc_info.value.message == "NO_AUTH_TOKEN"
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_logout_resets_session(self, client, api):
        """Test that logging out clears token, account and headers."""
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        api.route("POST", LOGOUT_URL, {"status": "ok"})
        authenticated = client.events.wait_for(Event.AUTHENTICATED)
        client.authenticate({"authToken": "foo7bar8baz"})
        await wait(authenticated)

        response = await client.expire_token()

        assert response == {"status": "ok"}
        assert api.calls_to("POST", LOGOUT_URL)[0].authorization == "Token foo7bar8baz"
        assert client.get_auth_token() is None
        assert client.account is None
        assert client.state is AuthState.UNAUTHENTICATED
        assert "Authorization" not in client._auth.transport.config.headers

    @pytest.mark.asyncio
    async def test_logout_failure_keeps_session(self, client, api):
        """Test that a failed logout leaves the session intact."""
        api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
        api.route("POST", LOGOUT_URL, RequestError("Server error", status_code=500))
        authenticated = client.events.wait_for(Event.AUTHENTICATED)
        client.authenticate({"authToken": "foo7bar8baz"})
        await wait(authenticated)

        with pytest.raises(RequestError):
            await client.expire_token()

        assert client.get_auth_token() == "foo7bar8baz"
