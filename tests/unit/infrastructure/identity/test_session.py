import pytest

from auracli.infrastructure.identity.session import (
    DEFAULT_PROVIDER_KEY, ProviderAccessGate, SessionIdentityProvider,
)


def test_anonymous_sign_in_issues_fresh_uids():
    provider = SessionIdentityProvider()

    first = provider.sign_in()
    second = provider.sign_in()

    assert first.is_anonymous
    assert first.uid != second.uid
    assert provider.current == second


def test_custom_token_maps_to_a_stable_uid():
    first = SessionIdentityProvider().sign_in("token-abc")
    second = SessionIdentityProvider().sign_in("token-abc")
    other = SessionIdentityProvider().sign_in("token-xyz")

    assert not first.is_anonymous
    assert first.uid == second.uid
    assert first.uid != other.uid
    assert "token-abc" not in first.uid


@pytest.mark.parametrize("candidate", ["AURA-2026", "aura-2026", "  Aura-2026 "])
def test_gate_accepts_key_case_insensitively(candidate):
    assert ProviderAccessGate(DEFAULT_PROVIDER_KEY).authenticate(candidate)


@pytest.mark.parametrize("candidate", ["", None, "AURA-2025", "AURA"])
def test_gate_rejects_wrong_or_missing_key(candidate):
    assert not ProviderAccessGate().authenticate(candidate)


def test_gate_uses_configured_key():
    gate = ProviderAccessGate("clinic-7")
    assert gate.authenticate("CLINIC-7")
    assert not gate.authenticate(DEFAULT_PROVIDER_KEY)


def test_gate_requires_a_key():
    with pytest.raises(ValueError):
        ProviderAccessGate("")
