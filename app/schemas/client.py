from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.settings import settings


class VerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class AccountStatus(str, Enum):
    INCOMPLETE = "INCOMPLETE"
    COMPLETE = "COMPLETE"


class ClientType(str, Enum):
    PRIVATE_SECTOR_EMPLOYEE = "PRIVATE_SECTOR_EMPLOYEE"
    CIVIL_SERVANT = "CIVIL_SERVANT"
    SELF_EMPLOYED = "SELF_EMPLOYED"


class PersonalDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: date
    gender: str
    nationality: str
    occupation: str
    monthly_income: Decimal = Field(ge=0)


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    street_address: str = Field(min_length=1)
    suburb: str
    city: str
    province: str
    postal_code: str
    residence_type: str


class IdentityDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    file_name: str
    file_size: int = Field(ge=0)
    document_type: str
    verification_status: str = "PENDING"
    uploaded_at: datetime | None = None


class ClientDocuments(BaseModel):
    model_config = ConfigDict(frozen=True)

    national_id: IdentityDocument | None = None
    proof_of_residence: IdentityDocument | None = None


class NextOfKin(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str = Field(min_length=1)
    relationship: str
    phone_number: str
    address: Address


class ClientRegistrationRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=64)
    last_name: str = Field(min_length=1, max_length=64)
    mobile: str = Field(min_length=7, max_length=20)
    pin: str

    @field_validator("mobile")
    @classmethod
    def _normalize_mobile(cls, value: str) -> str:
        cleaned = value.strip().replace(" ", "")
        if not cleaned.lstrip("+").isdigit():
            raise ValueError("mobile must contain digits only")
        return cleaned

    @field_validator("pin")
    @classmethod
    def _pin_digits(cls, value: str) -> str:
        if not value.isdigit() or len(value) != settings.pin_length:
            raise ValueError(f"pin must be exactly {settings.pin_length} digits")
        return value


class ProfileUpdateRequest(BaseModel):
    personal_details: PersonalDetails | None = None
    address: Address | None = None
    documents: ClientDocuments | None = None
    next_of_kin: NextOfKin | None = None
    profile_picture: str | None = None


class VerificationUpdateRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    verification_status: VerificationStatus


class PinVerificationRequest(BaseModel):
    mobile: str
    pin: str


class PinVerificationResponse(BaseModel):
    verified: bool
    client_id: str | None = None
    reason: str | None = None


class ClientDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    first_name: str
    last_name: str
    mobile: str
    profile_picture: str | None = None
    personal_details: PersonalDetails | None = None
    address: Address | None = None
    documents: ClientDocuments | None = None
    next_of_kin: NextOfKin | None = None
    client_type: ClientType
    verification_status: VerificationStatus
    can_apply_for_loan: bool
    account_status: AccountStatus
    created_at: datetime
    updated_at: datetime
