from __future__ import annotations

import pytest

from backend.app import schemas
from backend.app.services import NotFoundError, ResellerService, ValidationError


def _create(db_session, name: str, email: str, referral_code: str | None = None):
    return ResellerService.create_reseller(
        db_session,
        schemas.ResellerCreate(full_name=name, email=email, referral_code=referral_code),
    )


def test_new_reseller_gets_unique_referral_code(db_session):
    first = _create(db_session, "First", "First@Example.com")
    second = _create(db_session, "Second", "second@example.com")

    assert first.email == "first@example.com"
    assert first.referral_code.startswith("SYN")
    assert first.referral_code == first.referral_code.upper()
    assert first.referral_code != second.referral_code
    assert first.referrer_id is None


def test_reseller_created_with_inviter_code_is_linked(db_session):
    referrer = _create(db_session, "Referrer", "ref@example.com")

    invited = _create(db_session, "Invited", "invited@example.com", referrer.referral_code.lower())

    assert invited.referrer_id == referrer.id


def test_invalid_inviter_code_is_rejected(db_session):
    with pytest.raises(ValidationError):
        _create(db_session, "Invited", "invited@example.com", "SYNNOPE")


def test_duplicate_email_is_rejected(db_session):
    _create(db_session, "Original", "same@example.com")

    with pytest.raises(ValidationError):
        _create(db_session, "Copy", "SAME@example.com")


def test_referrer_can_be_assigned_once(db_session):
    referrer = _create(db_session, "Referrer", "ref@example.com")
    other = _create(db_session, "Other", "other@example.com")
    reseller = _create(db_session, "Reseller", "reseller@example.com")

    linked = ResellerService.assign_referrer(db_session, reseller, referrer.referral_code)
    assert linked.referrer_id == referrer.id

    with pytest.raises(ValidationError):
        ResellerService.assign_referrer(db_session, reseller, other.referral_code)


def test_self_referral_is_rejected(db_session):
    reseller = _create(db_session, "Reseller", "reseller@example.com")

    with pytest.raises(ValidationError):
        ResellerService.assign_referrer(db_session, reseller, reseller.referral_code)


def test_list_resellers_search(db_session):
    _create(db_session, "Alpha Shop", "alpha@example.com")
    _create(db_session, "Beta Shop", "beta@example.com")

    items, total = ResellerService.list_resellers(db_session, search="beta")

    assert total == 1
    assert list(items)[0].full_name == "Beta Shop"


def test_require_reseller(db_session):
    with pytest.raises(NotFoundError):
        ResellerService.require_reseller(db_session, "missing")
