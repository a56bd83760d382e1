try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from mockup_publisher.clients.correlation import InMemoryCorrelationStore
from mockup_publisher.clients.oauth import (
    PkceAuthorizationFlow,
    SimpleAuthorizationFlow,
    derive_code_challenge,
    generate_code_verifier,
)
from mockup_publisher.core.errors import InvalidState, ProviderUnreachable, TokenExchangeFailed
from mockup_publisher.models.oauth import Provider, ProviderCredential

TOKEN_URL = "https://provider.example.com/oauth/token"
USERINFO_URL = "https://provider.example.com/userinfo"


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class TokenEndpoint:
    """Records token requests and answers with a fixed status and body."""

    def __init__(self, status_code: int = 200, body: dict | None = None) -> None:
        self.status_code = status_code
        self.body = body or {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
        }
        self.requests: list[dict[str, list[str]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/userinfo":
            return httpx.Response(200, json={"email": "Owner@Example.com"})
        self.requests.append(parse_qs(request.content.decode()))
        return httpx.Response(self.status_code, json=self.body)


def _pkce_flow(endpoint: TokenEndpoint, clock: FakeClock, store=None) -> PkceAuthorizationFlow:
    return PkceAuthorizationFlow(
        provider=Provider.ETSY,
        client_id="etsy-keystring",
        redirect_uri="https://app.example.com/api/auth/etsy/callback",
        scopes=("listings_w", "shops_r"),
        authorize_url="https://www.etsy.com/oauth/connect",
        token_url=TOKEN_URL,
        store=store if store is not None else InMemoryCorrelationStore(),
        state_ttl=timedelta(minutes=10),
        transport=httpx.MockTransport(endpoint),
        clock=clock,
    )


def _simple_flow(endpoint: TokenEndpoint) -> SimpleAuthorizationFlow:
    return SimpleAuthorizationFlow(
        provider=Provider.GOOGLE,
        client_id="google-client",
        client_secret="google-secret",
        redirect_uri="https://app.example.com/api/auth/google/callback",
        scopes=("https://www.googleapis.com/auth/drive", "email"),
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url=TOKEN_URL,
        userinfo_url=USERINFO_URL,
        extra_auth_params={"access_type": "offline", "prompt": "consent"},
        transport=httpx.MockTransport(endpoint),
    )


def test_code_challenge_matches_rfc7636_example() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

    assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_code_verifier_is_unpadded_base64url() -> None:
    verifier = generate_code_verifier()

    assert len(verifier) == 43
    assert "=" not in verifier
    assert generate_code_verifier() != verifier


def test_begin_auth_builds_s256_redirect() -> None:
    flow = _pkce_flow(TokenEndpoint(), FakeClock())

    request = flow.begin_auth("owner@example.com")

    query = parse_qs(urlparse(request.redirect_url).query)
    assert query["state"] == [request.state_token]
    assert query["code_challenge_method"] == ["S256"]
    assert query["client_id"] == ["etsy-keystring"]
    assert query["scope"] == ["listings_w shops_r"]
    assert len(query["code_challenge"][0]) == 43


@pytest.mark.asyncio
async def test_state_token_is_accepted_exactly_once() -> None:
    endpoint = TokenEndpoint()
    flow = _pkce_flow(endpoint, FakeClock())
    request = flow.begin_auth("owner@example.com")

    credential, owner = await flow.complete_auth("auth-code", request.state_token)

    assert owner == "owner@example.com"
    assert credential.access_token == "access-1"
    assert credential.refresh_token == "refresh-1"
    sent = endpoint.requests[0]
    assert sent["grant_type"] == ["authorization_code"]
    assert sent["code"] == ["auth-code"]
    challenge = parse_qs(urlparse(request.redirect_url).query)["code_challenge"][0]
    assert derive_code_challenge(sent["code_verifier"][0]) == challenge

    with pytest.raises(InvalidState):
        await flow.complete_auth("auth-code", request.state_token)
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_unknown_state_token_is_rejected() -> None:
    endpoint = TokenEndpoint()
    flow = _pkce_flow(endpoint, FakeClock())

    with pytest.raises(InvalidState):
        await flow.complete_auth("auth-code", "forged-state")
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_stale_entries_are_purged_by_next_begin_auth() -> None:
    clock = FakeClock()
    store = InMemoryCorrelationStore()
    flow = _pkce_flow(TokenEndpoint(), clock, store)
    stale = flow.begin_auth("owner@example.com")

    clock.advance(minutes=10, seconds=1)
    fresh = flow.begin_auth("other@example.com")

    assert len(store) == 1
    with pytest.raises(InvalidState):
        await flow.complete_auth("auth-code", stale.state_token)
    _, owner = await flow.complete_auth("auth-code", fresh.state_token)
    assert owner == "other@example.com"


@pytest.mark.asyncio
async def test_expired_entry_is_rejected_even_before_purge() -> None:
    clock = FakeClock()
    endpoint = TokenEndpoint()
    flow = _pkce_flow(endpoint, clock)
    request = flow.begin_auth("owner@example.com")

    clock.advance(minutes=11)

    with pytest.raises(InvalidState):
        await flow.complete_auth("auth-code", request.state_token)
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_token_endpoint_error_raises_token_exchange_failed() -> None:
    endpoint = TokenEndpoint(status_code=400, body={"error": "invalid_grant"})
    flow = _pkce_flow(endpoint, FakeClock())
    request = flow.begin_auth("owner@example.com")

    with pytest.raises(TokenExchangeFailed) as excinfo:
        await flow.complete_auth("used-code", request.state_token)

    assert excinfo.value.status == 400
    assert "invalid_grant" in excinfo.value.body
    assert len(endpoint.requests) == 1


def test_simple_flow_authorization_url_requests_offline_consent() -> None:
    flow = _simple_flow(TokenEndpoint())

    query = parse_qs(urlparse(flow.get_auth_url()).query)

    assert query["access_type"] == ["offline"]
    assert query["prompt"] == ["consent"]
    assert query["response_type"] == ["code"]
    assert "state" not in query


@pytest.mark.asyncio
async def test_simple_flow_exchanges_code_and_resolves_email() -> None:
    endpoint = TokenEndpoint()
    flow = _simple_flow(endpoint)

    credential = await flow.exchange_code("google-code")
    email = await flow.fetch_user_email(credential)

    assert credential.expires_at is not None
    assert email == "owner@example.com"
    sent = endpoint.requests[0]
    assert sent["client_secret"] == ["google-secret"]
    assert "code_verifier" not in sent


@pytest.mark.asyncio
async def test_refresh_keeps_refresh_token_when_provider_omits_it() -> None:
    endpoint = TokenEndpoint(body={"access_token": "access-2", "expires_in": 3600})
    flow = _simple_flow(endpoint)

    credential = await flow.refresh("refresh-1")

    assert credential.access_token == "access-2"
    assert credential.refresh_token == "refresh-1"
    assert endpoint.requests[0]["grant_type"] == ["refresh_token"]


@pytest.mark.asyncio
async def test_refresh_adopts_rotated_refresh_token() -> None:
    endpoint = TokenEndpoint(
        body={"access_token": "access-2", "refresh_token": "refresh-2", "expires_in": 3600}
    )
    flow = _pkce_flow(endpoint, FakeClock())

    credential = await flow.refresh("refresh-1")

    assert credential.refresh_token == "refresh-2"


@pytest.mark.asyncio
async def test_unreachable_userinfo_endpoint_raises_provider_unreachable() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    flow = _simple_flow(refuse)

    with pytest.raises(ProviderUnreachable) as excinfo:
        await flow.fetch_user_email(ProviderCredential(access_token="a1"))

    assert excinfo.value.status_code == 504
    assert excinfo.value.to_dict()["provider"] == "google"
