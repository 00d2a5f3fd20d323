from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from underwriter.models.audit_log import AuditLog
from underwriter.schemas.loan import LoanApplicationCreate, OverrideRequest
from underwriter.services import loan_applications

from conftest import application_payload


async def _audit_actions(session_factory, application_id):
    async with session_factory() as session:
        result = await session.execute(
            select(AuditLog).where(AuditLog.application_id == application_id)
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_submit_stores_processing_application(session_factory, borrower):
    payload = LoanApplicationCreate(**application_payload())
    async with session_factory() as session:
        application = await loan_applications.submit_application(session, payload, user=borrower)
        await session.commit()

    assert application.status == "processing"
    assert application.user_id == borrower.id
    assert application.credit_score is None
    assert application.final_decision is None
    assert application.annual_income == Decimal("120000.00")

    entries = await _audit_actions(session_factory, application.id)
    assert [entry.action for entry in entries] == ["application_submitted"]
    assert entries[0].user_id == borrower.id
    assert entries[0].details == {"loan_amount": "20000.00", "loan_purpose": "home_improvement"}


@pytest.mark.parametrize(
    "overrides",
    [
        {"loan_amount": "0"},
        {"annual_income": "-5"},
        {"employment_status": "retired"},
        {"email": "not-an-email"},
        {"employer": "   "},
    ],
)
def test_create_schema_rejects_invalid_input(overrides):
    with pytest.raises(ValidationError):
        LoanApplicationCreate(**application_payload(**overrides))


def test_override_reason_length():
    with pytest.raises(ValidationError):
        OverrideRequest(new_decision="approved", override_reason="123456789")
    with pytest.raises(ValidationError):
        OverrideRequest(new_decision="approved", override_reason="   short    ")
    with pytest.raises(ValidationError):
        OverrideRequest(new_decision="escalated", override_reason="Long enough reason")
    request = OverrideRequest(new_decision="approved", override_reason="1234567890")
    assert request.new_decision == "approved"


@pytest.mark.asyncio
async def test_override_updates_decision_and_audits_once(
    session_factory, make_application, officer
):
    application = await make_application(status="escalated")
    async with session_factory() as session:
        stored = await loan_applications.get_application(session, application.id)
        stored.final_decision = "escalated"
        updated = await loan_applications.override_decision(
            session,
            stored,
            new_decision="approved",
            reason="  Verified additional income  ",
            actor=officer,
        )
        await session.commit()

    assert updated.status == "approved"
    assert updated.final_decision == "approved"
    assert updated.overridden_by == officer.id
    assert updated.override_reason == "Verified additional income"
    assert updated.overridden_at is not None

    entries = await _audit_actions(session_factory, application.id)
    overrides = [entry for entry in entries if entry.action == "override_applied"]
    assert len(overrides) == 1
    assert overrides[0].user_id == officer.id
    assert overrides[0].details == {
        "previous_decision": "escalated",
        "new_decision": "approved",
        "reason": "Verified additional income",
    }


@pytest.mark.asyncio
async def test_override_refused_while_processing(session_factory, make_application, officer):
    application = await make_application()
    async with session_factory() as session:
        stored = await loan_applications.get_application(session, application.id)
        with pytest.raises(loan_applications.OverrideNotAllowedError) as exc_info:
            await loan_applications.override_decision(
                session, stored, new_decision="approved", reason="Reason long enough", actor=officer
            )
    assert exc_info.value.code == "application_processing"
    assert await _audit_actions(session_factory, application.id) == []


@pytest.mark.asyncio
async def test_listing_is_newest_first(session_factory, make_application, borrower):
    first = await make_application()
    second = await make_application(status="approved")

    async with session_factory() as session:
        items, total = await loan_applications.list_applications(session, limit=10, offset=0)
        assert total == 2
        assert [item.id for item in items] == [second.id, first.id]

        items, total = await loan_applications.list_applications(
            session, limit=10, offset=0, statuses=["approved"]
        )
        assert [item.id for item in items] == [second.id]

        latest = await loan_applications.get_latest_for_user(session, borrower.id)
        assert latest.id == second.id
        assert await loan_applications.get_latest_for_user(session, "nobody") is None
