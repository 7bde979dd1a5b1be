from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.client import (
    AccountStatus,
    Address,
    ClientDocuments,
    ClientType,
    NextOfKin,
    PersonalDetails,
    VerificationStatus,
)


class Client(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str
    mobile: str
    pin_hash: str
    profile_picture: str | None = None
    personal_details: PersonalDetails | None = None
    address: Address | None = None
    documents: ClientDocuments | None = None
    next_of_kin: NextOfKin | None = None
    client_type: ClientType = ClientType.PRIVATE_SECTOR_EMPLOYEE
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    # Derived from the sections above; see app.services.eligibility.
    can_apply_for_loan: bool = False
    account_status: AccountStatus = AccountStatus.INCOMPLETE
    created_at: datetime
    updated_at: datetime


class ClientsDocument(BaseModel):
    clients: dict[str, Client] = Field(default_factory=dict)
    next_id: int = 1
