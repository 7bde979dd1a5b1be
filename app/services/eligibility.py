from __future__ import annotations

from dataclasses import dataclass

from app.models.client import Client
from app.schemas.client import (
    AccountStatus,
    Address,
    ClientDocuments,
    NextOfKin,
    PersonalDetails,
    VerificationStatus,
)


@dataclass(frozen=True)
class DerivedProfile:
    account_status: AccountStatus
    can_apply_for_loan: bool


def _identity_documents_present(documents: ClientDocuments | None) -> bool:
    return (
        documents is not None
        and documents.national_id is not None
        and documents.proof_of_residence is not None
    )


def account_status_for(
    *,
    personal_details: PersonalDetails | None,
    address: Address | None,
    documents: ClientDocuments | None,
    next_of_kin: NextOfKin | None,
) -> AccountStatus:
    if (
        personal_details is not None
        and address is not None
        and _identity_documents_present(documents)
        and next_of_kin is not None
    ):
        return AccountStatus.COMPLETE
    return AccountStatus.INCOMPLETE


def can_apply_for_loan(
    *,
    personal_details: PersonalDetails | None,
    address: Address | None,
    documents: ClientDocuments | None,
    verification_status: VerificationStatus | str,
) -> bool:
    # Next of kin is needed for a COMPLETE account but not to borrow.
    return (
        personal_details is not None
        and address is not None
        and _identity_documents_present(documents)
        and verification_status == VerificationStatus.VERIFIED
    )


def derive_profile(client: Client) -> DerivedProfile:
    return DerivedProfile(
        account_status=account_status_for(
            personal_details=client.personal_details,
            address=client.address,
            documents=client.documents,
            next_of_kin=client.next_of_kin,
        ),
        can_apply_for_loan=can_apply_for_loan(
            personal_details=client.personal_details,
            address=client.address,
            documents=client.documents,
            verification_status=client.verification_status,
        ),
    )


def with_derived_fields(client: Client) -> Client:
    """Return ``client`` with its derived fields recomputed from its sections."""
    derived = derive_profile(client)
    return client.model_copy(
        update={
            "account_status": derived.account_status,
            "can_apply_for_loan": derived.can_apply_for_loan,
        }
    )
