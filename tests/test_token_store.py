try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from mockup_publisher.core.errors import AuthExpired, ProviderNotConnected
from mockup_publisher.models.oauth import Provider, ProviderCredential
from mockup_publisher.services.token_cipher import TokenCipherService
from mockup_publisher.services.token_store import TokenStore


@pytest.fixture()
def token_store(sqlite_store, token_cipher) -> TokenStore:
    return TokenStore(sqlite_store, token_cipher)


def test_get_without_credential_raises_not_connected(token_store) -> None:
    with pytest.raises(ProviderNotConnected) as excinfo:
        token_store.get("owner@example.com", Provider.ETSY)

    assert excinfo.value.provider == "etsy"
    assert excinfo.value.status_code == 401


def test_saved_credential_is_encrypted_at_rest(token_store, sqlite_store) -> None:
    token_store.save(
        "owner@example.com",
        Provider.GOOGLE,
        ProviderCredential(access_token="ya29.secret", refresh_token="1//refresh"),
    )

    blob = sqlite_store.get_provider_tokens("owner@example.com", "google")
    assert blob is not None and "ya29.secret" not in blob
    assert token_store.get("owner@example.com", Provider.GOOGLE).access_token == "ya29.secret"
    assert sqlite_store.get_provider_tokens("owner@example.com", "etsy") is None


def test_save_replaces_credential_wholesale(token_store) -> None:
    token_store.save(
        "owner@example.com",
        Provider.ETSY,
        ProviderCredential(access_token="a1", refresh_token="r1", scope="shops_r"),
    )
    token_store.save("owner@example.com", Provider.ETSY, ProviderCredential(access_token="a2"))

    credential = token_store.get("owner@example.com", Provider.ETSY)
    assert credential.access_token == "a2"
    assert credential.refresh_token is None
    assert credential.scope is None


def test_invalidate_flags_instead_of_deleting(token_store) -> None:
    token_store.save(
        "owner@example.com", Provider.ETSY, ProviderCredential(access_token="a1")
    )

    token_store.invalidate("owner@example.com", Provider.ETSY)

    with pytest.raises(AuthExpired) as excinfo:
        token_store.get("owner@example.com", Provider.ETSY)
    assert not isinstance(excinfo.value, ProviderNotConnected)
    stored = token_store.find("owner@example.com", Provider.ETSY)
    assert stored is not None and stored.invalidated
    assert not token_store.is_connected("owner@example.com", Provider.ETSY)


def test_unreadable_blob_is_treated_as_missing(token_store, sqlite_store) -> None:
    sqlite_store.set_provider_tokens("owner@example.com", "google", "garbage")

    assert token_store.find("owner@example.com", Provider.GOOGLE) is None
    with pytest.raises(ProviderNotConnected):
        token_store.get("owner@example.com", Provider.GOOGLE)


def test_credentials_are_reencrypted_after_secret_rotation(sqlite_store) -> None:
    TokenStore(sqlite_store, TokenCipherService(secret="old-secret")).save(
        "owner@example.com", Provider.ETSY, ProviderCredential(access_token="a1")
    )
    rotated = TokenCipherService(secret="new-secret", previous_secrets=["old-secret"])

    credential = TokenStore(sqlite_store, rotated).get("owner@example.com", Provider.ETSY)

    assert credential.access_token == "a1"
    blob = sqlite_store.get_provider_tokens("owner@example.com", "etsy")
    assert TokenCipherService(secret="new-secret").decrypt(blob)
