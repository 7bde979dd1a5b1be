from datetime import datetime, timezone

from conftest import make_address, make_full_documents, make_next_of_kin, make_personal_details
from app.models.client import Client
from app.schemas.client import AccountStatus, ClientDocuments, VerificationStatus
from app.services import eligibility


def _client(**overrides) -> Client:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    defaults = dict(
        id="1",
        first_name="Tariro",
        last_name="Moyo",
        mobile="+263771000001",
        pin_hash="hash",
        created_at=now,
        updated_at=now,
    )
    defaults.update(overrides)
    return Client(**defaults)


def test_new_client_cannot_apply() -> None:
    derived = eligibility.derive_profile(_client())

    assert derived.can_apply_for_loan is False
    assert derived.account_status == AccountStatus.INCOMPLETE


def test_verified_client_with_sections_can_apply_without_next_of_kin() -> None:
    client = _client(
        personal_details=make_personal_details(),
        address=make_address(),
        documents=make_full_documents(),
        verification_status=VerificationStatus.VERIFIED,
    )

    derived = eligibility.derive_profile(client)
    assert derived.can_apply_for_loan is True
    assert derived.account_status == AccountStatus.INCOMPLETE


def test_unverified_complete_profile_cannot_apply() -> None:
    client = _client(
        personal_details=make_personal_details(),
        address=make_address(),
        documents=make_full_documents(),
        next_of_kin=make_next_of_kin(),
        verification_status=VerificationStatus.PENDING,
    )

    derived = eligibility.derive_profile(client)
    assert derived.account_status == AccountStatus.COMPLETE
    assert derived.can_apply_for_loan is False


def test_missing_proof_of_residence_blocks_application() -> None:
    documents = ClientDocuments(national_id=make_full_documents().national_id)
    client = _client(
        personal_details=make_personal_details(),
        address=make_address(),
        documents=documents,
        verification_status=VerificationStatus.VERIFIED,
    )

    assert eligibility.derive_profile(client).can_apply_for_loan is False


def test_with_derived_fields_is_idempotent() -> None:
    client = _client(
        personal_details=make_personal_details(),
        address=make_address(),
        documents=make_full_documents(),
        next_of_kin=make_next_of_kin(),
        verification_status=VerificationStatus.VERIFIED,
    )

    once = eligibility.with_derived_fields(client)
    twice = eligibility.with_derived_fields(once)

    assert once == twice
    assert once.can_apply_for_loan is True
    assert once.account_status == AccountStatus.COMPLETE


def test_stale_derived_fields_are_corrected() -> None:
    client = _client(can_apply_for_loan=True, account_status=AccountStatus.COMPLETE)

    corrected = eligibility.with_derived_fields(client)
    assert corrected.can_apply_for_loan is False
    assert corrected.account_status == AccountStatus.INCOMPLETE
