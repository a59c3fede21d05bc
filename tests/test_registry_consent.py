"""Tests for patient-controlled provider authorization."""

import pytest

from helpers import ADMIN, OTHER_PATIENT, OTHER_PROVIDER, OUTSIDER, PATIENT, PROVIDER
from medledger.errors import InvalidArgument, NotFound, Unauthorized


def test_unregistered_caller_cannot_manage_consent(registry):
    registry.register_provider(ADMIN, PROVIDER)
    with pytest.raises(NotFound):
        registry.authorize_provider(OUTSIDER, PROVIDER)
    with pytest.raises(NotFound):
        registry.revoke_provider_access(OUTSIDER, PROVIDER)


def test_authorizing_non_provider_fails(registry):
    registry.register_patient(PATIENT)
    with pytest.raises(InvalidArgument):
        registry.authorize_provider(PATIENT, OUTSIDER)


def test_authorizing_revoked_provider_fails(registry):
    registry.register_provider(ADMIN, PROVIDER)
    registry.revoke_provider(ADMIN, PROVIDER)
    registry.register_patient(PATIENT)
    with pytest.raises(InvalidArgument):
        registry.authorize_provider(PATIENT, PROVIDER)


def test_reauthorizing_is_a_noop_success(consented):
    consented.authorize_provider(PATIENT, PROVIDER)
    consented.add_record(PROVIDER, PATIENT, "CID1")
    assert consented.get_record_count(PROVIDER, PATIENT) == 1


def test_grant_enables_provider_reads(consented):
    assert consented.get_record_count(PROVIDER, PATIENT) == 0


def test_access_revocation_blocks_writes_until_regranted(consented):
    consented.revoke_provider_access(PATIENT, PROVIDER)
    with pytest.raises(Unauthorized):
        consented.add_record(PROVIDER, PATIENT, "CID1")
    with pytest.raises(Unauthorized):
        consented.get_record_count(PROVIDER, PATIENT)

    consented.authorize_provider(PATIENT, PROVIDER)
    consented.add_record(PROVIDER, PATIENT, "CID1")
    assert consented.get_record_count(PATIENT, PATIENT) == 1


def test_revoking_access_is_idempotent_and_needs_no_provider(registry):
    """Withdrawing access from a never-registered identity is harmless."""
    registry.register_patient(PATIENT)
    registry.revoke_provider_access(PATIENT, OUTSIDER)
    registry.revoke_provider_access(PATIENT, OUTSIDER)


def test_consent_is_per_patient(consented):
    consented.register_patient(OTHER_PATIENT)
    with pytest.raises(Unauthorized):
        consented.add_record(PROVIDER, OTHER_PATIENT, "CID1")
    with pytest.raises(Unauthorized):
        consented.get_record_count(PROVIDER, OTHER_PATIENT)


def test_consent_is_per_provider(consented):
    consented.register_provider(ADMIN, OTHER_PROVIDER)
    with pytest.raises(Unauthorized):
        consented.add_record(OTHER_PROVIDER, PATIENT, "CID1")


def test_provider_revocation_keeps_grant_for_reads(consented):
    """A revoked provider keeps read access through the standing grant."""
    consented.add_record(PROVIDER, PATIENT, "CID1")
    consented.revoke_provider(ADMIN, PROVIDER)

    assert consented.get_record_count(PROVIDER, PATIENT) == 1
    assert consented.get_record(PROVIDER, PATIENT, 0).content_hash == "CID1"


def test_provider_reregistration_restores_writes_with_standing_grant(consented):
    consented.revoke_provider(ADMIN, PROVIDER)
    with pytest.raises(Unauthorized):
        consented.add_record(PROVIDER, PATIENT, "CID1")

    consented.register_provider(ADMIN, PROVIDER)
    assert consented.add_record(PROVIDER, PATIENT, "CID1") == 0
