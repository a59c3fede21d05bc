"""Tests for admin-gated provider management and patient self-registration."""

import pytest

from helpers import ADMIN, OUTSIDER, PATIENT, PROVIDER
from medledger.errors import AlreadyExists, InvalidArgument, NotFound, Unauthorized
from medledger.models.ledger import ADDRESS_LENGTH


def test_admin_is_public(registry):
    assert registry.admin() == ADMIN


def test_initialize_is_idempotent_for_same_admin(registry):
    registry.initialize(ADMIN)
    assert registry.admin() == ADMIN


def test_admin_cannot_be_rebound(registry):
    with pytest.raises(AlreadyExists):
        registry.initialize(OUTSIDER)
    assert registry.admin() == ADMIN


def test_admin_registers_provider(registry):
    assert registry.is_provider(PROVIDER) is False
    registry.register_provider(ADMIN, PROVIDER)
    assert registry.is_provider(PROVIDER) is True


def test_non_admin_cannot_manage_providers(registry):
    """Provider set is unchanged when anyone but admin tries to modify it."""
    with pytest.raises(Unauthorized):
        registry.register_provider(OUTSIDER, PROVIDER)
    assert registry.is_provider(PROVIDER) is False

    registry.register_provider(ADMIN, PROVIDER)
    with pytest.raises(Unauthorized):
        registry.revoke_provider(PROVIDER, PROVIDER)
    assert registry.is_provider(PROVIDER) is True


def test_duplicate_provider_registration_fails(registry):
    registry.register_provider(ADMIN, PROVIDER)
    with pytest.raises(AlreadyExists):
        registry.register_provider(ADMIN, PROVIDER)


def test_revoking_inactive_provider_fails(registry):
    with pytest.raises(NotFound):
        registry.revoke_provider(ADMIN, PROVIDER)

    registry.register_provider(ADMIN, PROVIDER)
    registry.revoke_provider(ADMIN, PROVIDER)
    with pytest.raises(NotFound):
        registry.revoke_provider(ADMIN, PROVIDER)


def test_provider_can_toggle_between_active_and_revoked(registry):
    registry.register_provider(ADMIN, PROVIDER)
    registry.revoke_provider(ADMIN, PROVIDER)
    assert registry.is_provider(PROVIDER) is False

    registry.register_provider(ADMIN, PROVIDER)
    assert registry.is_provider(PROVIDER) is True


def test_empty_provider_address_rejected(registry):
    with pytest.raises(InvalidArgument):
        registry.register_provider(ADMIN, "")


def test_patient_registers_once(registry):
    assert registry.is_patient(PATIENT) is False
    registry.register_patient(PATIENT)
    assert registry.is_patient(PATIENT) is True

    with pytest.raises(AlreadyExists):
        registry.register_patient(PATIENT)
    assert registry.is_patient(PATIENT) is True


def test_provider_may_also_register_as_patient(registry):
    registry.register_provider(ADMIN, PROVIDER)
    registry.register_patient(PROVIDER)
    assert registry.is_patient(PROVIDER) is True
    assert registry.is_provider(PROVIDER) is True


def test_overlong_addresses_rejected(registry):
    """Identities longer than the address column never reach the database."""
    long_address = "0x" + "f" * ADDRESS_LENGTH
    with pytest.raises(InvalidArgument):
        registry.register_provider(ADMIN, long_address)
    with pytest.raises(InvalidArgument):
        registry.register_patient(long_address)

    registry.register_patient(PATIENT)
    with pytest.raises(InvalidArgument):
        registry.revoke_provider_access(PATIENT, long_address)
    assert registry.list_events(name="ProviderRegistered") == []


def test_address_at_column_limit_accepted(registry):
    address = "p" * ADDRESS_LENGTH
    registry.register_patient(address)
    assert registry.is_patient(address) is True
