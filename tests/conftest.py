"""Global test fixtures and shared test infrastructure.

Provides:
- Environment variable defaults (must be set before any app import)
- ScriptedDecisions: a deterministic stand-in for the random decision source
- Store fixtures backed by a per-test data directory
- A TestClient whose application writes into the per-test data directory
"""

from __future__ import annotations

import os

# Environment defaults — must be set before importing the app, which triggers
# pydantic Settings validation on import.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "10000")
os.environ.setdefault("SUBMISSION_DELAY_SECONDS", "0")
os.environ.setdefault("REVIEW_DELAY_MIN_SECONDS", "0")
os.environ.setdefault("REVIEW_DELAY_MAX_SECONDS", "0")
os.environ.setdefault("PAYMENT_PENDING_DELAY_SECONDS", "0")
os.environ.setdefault("GATEWAY_DELAY_MIN_SECONDS", "0")
os.environ.setdefault("GATEWAY_DELAY_MAX_SECONDS", "0")

import asyncio
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import cycle
from typing import Any, Callable, Sequence

import pytest
from fastapi.testclient import TestClient

from app.core.security import get_pin_hash
from app.core.settings import settings
from app.db.entity_store import EntityStore
from app.main import app
from app.models import ClientsDocument, LoansDocument, PaymentsDocument, TokensDocument
from app.schemas.client import (
    Address,
    ClientDocuments,
    IdentityDocument,
    NextOfKin,
    PersonalDetails,
    VerificationStatus,
)
from app.services.container import ServiceContainer
from app.stores.clients import ClientStore
from app.stores.loans import LoanStore
from app.stores.payments import PaymentStore
from app.stores.tokens import TokenStore


# ---------------------------------------------------------------------------
# Deterministic workflow inputs
# ---------------------------------------------------------------------------


class ScriptedDecisions:
    """Decision source returning scripted draws (cycled) and fixed delays."""

    def __init__(self, draws: Sequence[float] = (0.0,), delay: float = 0.0) -> None:
        self._draws = cycle(draws)
        self.delay = delay
        self.draw_count = 0

    def draw(self) -> float:
        self.draw_count += 1
        return next(self._draws)

    def uniform(self, low: float, high: float) -> float:
        return self.delay

    def choice(self, options):
        return options[0]


async def no_sleep(seconds: float) -> None:
    await asyncio.sleep(0)


def always_approve() -> ScriptedDecisions:
    return ScriptedDecisions(draws=(0.0,))


def always_decline() -> ScriptedDecisions:
    return ScriptedDecisions(draws=(0.999,))


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def make_document(document_type: str) -> IdentityDocument:
    return IdentityDocument(
        id=f"DOC-{document_type}",
        url=f"https://files.example.com/{document_type}.pdf",
        file_name=f"{document_type}.pdf",
        file_size=2048,
        document_type=document_type,
        uploaded_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def make_address(**overrides: Any) -> Address:
    defaults: dict[str, Any] = dict(
        street_address="12 Samora Machel Ave",
        suburb="Avondale",
        city="Harare",
        province="Harare",
        postal_code="0000",
        residence_type="OWNED",
    )
    defaults.update(overrides)
    return Address(**defaults)


def make_personal_details(**overrides: Any) -> PersonalDetails:
    defaults: dict[str, Any] = dict(
        first_name="Tariro",
        last_name="Moyo",
        date_of_birth=date(1990, 5, 17),
        gender="FEMALE",
        nationality="Zimbabwean",
        occupation="Accountant",
        monthly_income=Decimal("2500.00"),
    )
    defaults.update(overrides)
    return PersonalDetails(**defaults)


def make_full_documents() -> ClientDocuments:
    return ClientDocuments(
        national_id=make_document("NATIONAL_ID"),
        proof_of_residence=make_document("PROOF_OF_RESIDENCE"),
    )


def make_next_of_kin() -> NextOfKin:
    return NextOfKin(
        full_name="Rudo Moyo",
        relationship="SISTER",
        phone_number="+263771000002",
        address=make_address(),
    )


async def create_eligible_client(clients: ClientStore, mobile: str = "+263771000001"):
    client = await clients.create(
        first_name="Tariro", last_name="Moyo", mobile=mobile, pin_hash=get_pin_hash("1234")
    )
    await clients.update_profile(
        client.id,
        personal_details=make_personal_details(),
        address=make_address(),
        documents=make_full_documents(),
    )
    return await clients.set_verification_status(client.id, VerificationStatus.VERIFIED)


# ---------------------------------------------------------------------------
# Shared pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_store(tmp_path) -> ClientStore:
    return ClientStore(EntityStore(tmp_path / "clients.json", ClientsDocument))


@pytest.fixture
def loan_store(tmp_path) -> LoanStore:
    return LoanStore(EntityStore(tmp_path / "loans.json", LoansDocument))


@pytest.fixture
def payment_store(tmp_path) -> PaymentStore:
    return PaymentStore(EntityStore(tmp_path / "payments.json", PaymentsDocument))


@pytest.fixture
def token_store(tmp_path) -> TokenStore:
    return TokenStore(EntityStore(tmp_path / "tokens.json", TokensDocument))


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def decisions() -> ScriptedDecisions:
    return always_approve()


@pytest.fixture
def container_factory(data_dir) -> Callable[..., ServiceContainer]:
    def _build(decisions: ScriptedDecisions | None = None) -> ServiceContainer:
        return ServiceContainer.build(
            settings, decisions=decisions or always_approve(), sleep=no_sleep
        )

    return _build


@pytest.fixture
def api_client(data_dir, decisions, monkeypatch):
    """TestClient running startup/shutdown against a scripted container."""
    original_build = ServiceContainer.build

    def _build(app_settings, **kwargs):
        return original_build(app_settings, decisions=decisions, sleep=no_sleep)

    monkeypatch.setattr(ServiceContainer, "build", staticmethod(_build))
    with TestClient(app) as test_client:
        yield test_client


def wait_until(fetch: Callable[[], Any], done: Callable[[Any], bool], timeout: float = 5.0) -> Any:
    """Poll ``fetch`` until ``done(result)``; used while detached jobs finish."""
    deadline = time.monotonic() + timeout
    result = fetch()
    while not done(result):
        if time.monotonic() > deadline:
            raise AssertionError(f"condition not met within {timeout}s: {result!r}")
        time.sleep(0.02)
        result = fetch()
    return result
