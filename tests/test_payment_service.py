"""
Payment state machine tests.

Covers initialization, proof submission, admin verification and rejection,
gateway confirmation, and concurrent verification of one reference.
"""
import asyncio

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    AlreadyCompletedError,
    AlreadyVerifiedError,
    DuplicateReferenceError,
    ExternalServiceError,
    ForbiddenError,
    InvalidPaymentStatus,
    PaymentError,
    ReferenceNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.permissions import Role
from app.domain.payment_state import COMPLETED, NOT_REGISTERED, PENDING, PROOF_SUBMITTED
from app.gateways.base import GatewayVerification
from app.models.profile import Profile
from app.services import payment_service as payment_module
from app.services.storage_service import WHATSAPP_PROOF
from app.utils.reference import validate_reference_format


async def _status(session_factory, profile_id) -> Profile:
    async with session_factory() as session:
        return (await session.execute(select(Profile).where(Profile.id == profile_id))).scalar_one()


class TestInitializePayment:

    @pytest.mark.asyncio
    async def test_assigns_reference_and_moves_to_pending(self, services, make_profile, principal_for, session_factory) -> None:
        participant = await make_profile()

        result = await services.payments.initialize_payment(principal_for(participant))

        assert result.status == PENDING
        assert result.amount == 20000
        assert validate_reference_format(result.reference)
        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == PENDING
        assert stored.payment_reference == result.reference
        assert stored.payment_amount == 20000

    @pytest.mark.asyncio
    async def test_is_idempotent_for_existing_reference(self, services, make_profile, principal_for) -> None:
        participant = await make_profile()
        principal = principal_for(participant)

        first = await services.payments.initialize_payment(principal)
        second = await services.payments.initialize_payment(principal)

        assert first.reference == second.reference
        assert second.status == PENDING

    @pytest.mark.asyncio
    async def test_uses_configured_registration_amount(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        await services.config.set(principal_for(admin), "registrationAmount", 25000)
        participant = await make_profile()

        result = await services.payments.initialize_payment(principal_for(participant))

        assert result.amount == 25000

    @pytest.mark.asyncio
    async def test_keeps_proof_submitted_state(self, services, make_profile, principal_for) -> None:
        participant = await make_profile()
        principal = principal_for(participant)
        await services.payments.submit_proof(principal, WHATSAPP_PROOF)

        result = await services.payments.initialize_payment(principal)

        assert result.status == PROOF_SUBMITTED

    @pytest.mark.asyncio
    async def test_rejects_completed_payment(self, services, make_profile, principal_for) -> None:
        participant = await make_profile(
            payment_status=COMPLETED, payment_reference="NAPPS-2025-DONE-0001"
        )

        with pytest.raises(AlreadyCompletedError):
            await services.payments.initialize_payment(principal_for(participant))

    @pytest.mark.asyncio
    async def test_requires_principal(self, services) -> None:
        with pytest.raises(UnauthorizedError):
            await services.payments.initialize_payment(None)

    @pytest.mark.asyncio
    async def test_validator_cannot_initialize(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR)

        with pytest.raises(ForbiddenError):
            await services.payments.initialize_payment(principal_for(validator))

    @pytest.mark.asyncio
    async def test_participant_cannot_initialize_for_someone_else(
        self, services, make_profile, principal_for
    ) -> None:
        participant = await make_profile()
        other = await make_profile()

        with pytest.raises(ForbiddenError):
            await services.payments.initialize_payment(principal_for(participant), profile_id=other.id)

    @pytest.mark.asyncio
    async def test_retries_reference_collision(
        self, services, make_profile, principal_for, monkeypatch
    ) -> None:
        await make_profile(payment_status=PENDING, payment_reference="NAPPS-2025-TAKEN-AAAA")
        participant = await make_profile()
        references = iter(["NAPPS-2025-TAKEN-AAAA", "NAPPS-2025-FRESH-BBBB"])
        monkeypatch.setattr(
            payment_module, "generate_payment_reference", lambda prefix: next(references)
        )

        result = await services.payments.initialize_payment(principal_for(participant))

        assert result.reference == "NAPPS-2025-FRESH-BBBB"

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_collisions(
        self, services, make_profile, principal_for, monkeypatch
    ) -> None:
        await make_profile(payment_status=PENDING, payment_reference="NAPPS-2025-TAKEN-AAAA")
        participant = await make_profile()
        monkeypatch.setattr(
            payment_module, "generate_payment_reference", lambda prefix: "NAPPS-2025-TAKEN-AAAA"
        )

        with pytest.raises(DuplicateReferenceError) as exc_info:
            await services.payments.initialize_payment(principal_for(participant))

        assert exc_info.value.retryable


class TestSubmitProof:

    @pytest.mark.asyncio
    async def test_whatsapp_proof_from_not_registered(self, services, make_profile, principal_for, session_factory) -> None:
        participant = await make_profile()

        result = await services.payments.submit_proof(principal_for(participant), WHATSAPP_PROOF)

        assert result.status == PROOF_SUBMITTED
        assert result.previous_proof is None
        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == PROOF_SUBMITTED
        assert stored.payment_proof == WHATSAPP_PROOF
        assert stored.payment_reference == result.reference
        assert stored.payment_date is not None

    @pytest.mark.asyncio
    async def test_upload_stores_file_and_submits(self, services, make_profile, principal_for, s3_client) -> None:
        participant = await make_profile()
        principal = principal_for(participant)
        await services.payments.initialize_payment(principal)

        result = await services.payments.upload_and_submit_proof(principal, b"%PDF-1.4", "application/pdf")

        assert result.proof.startswith(f"https://storage.test/test-proofs/payment-proofs/{participant.id}/")
        assert result.proof.endswith(".pdf")
        s3_client.upload_fileobj.assert_called_once()
        s3_client.delete_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_replacing_upload_deletes_previous_file(self, services, make_profile, principal_for, s3_client) -> None:
        participant = await make_profile()
        principal = principal_for(participant)

        first = await services.payments.upload_and_submit_proof(principal, b"\x89PNG", "image/png")
        second = await services.payments.upload_and_submit_proof(principal, b"\x89PNG", "image/png")

        assert second.previous_proof == first.proof
        s3_client.delete_object.assert_called_once()
        assert s3_client.delete_object.call_args.kwargs["Key"] == services.storage.key_from_locator(first.proof)

    @pytest.mark.asyncio
    async def test_rejects_unsupported_file_type(self, services, make_profile, principal_for, s3_client) -> None:
        participant = await make_profile()

        with pytest.raises(ValidationError):
            await services.payments.upload_and_submit_proof(principal_for(participant), b"GIF89a", "image/gif")

        s3_client.upload_fileobj.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_on_completed_payment_discards_new_file(
        self, services, make_profile, principal_for, s3_client
    ) -> None:
        participant = await make_profile(
            payment_status=COMPLETED, payment_reference="NAPPS-2025-DONE-0002"
        )

        with pytest.raises(AlreadyCompletedError):
            await services.payments.upload_and_submit_proof(principal_for(participant), b"\xff\xd8", "image/jpeg")

        s3_client.upload_fileobj.assert_called_once()
        s3_client.delete_object.assert_called_once()

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_state_unchanged(
        self, services, make_profile, principal_for, s3_client, session_factory
    ) -> None:
        from botocore.exceptions import EndpointConnectionError

        participant = await make_profile()
        s3_client.upload_fileobj.side_effect = EndpointConnectionError(endpoint_url="https://storage.test")

        with pytest.raises(ExternalServiceError):
            await services.payments.upload_and_submit_proof(principal_for(participant), b"\xff\xd8", "image/jpeg")

        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == NOT_REGISTERED


class TestVerifyPayment:

    @pytest.mark.asyncio
    async def test_admin_verifies_submitted_proof(self, services, make_profile, principal_for, session_factory) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        submission = await services.payments.submit_proof(principal_for(participant), WHATSAPP_PROOF)

        summary = await services.payments.verify_payment(principal_for(admin), submission.reference)

        assert summary.status == COMPLETED
        assert summary.completed_at is not None
        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == COMPLETED

    @pytest.mark.asyncio
    async def test_second_verification_is_rejected(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        submission = await services.payments.submit_proof(principal_for(participant), WHATSAPP_PROOF)
        await services.payments.verify_payment(principal_for(admin), submission.reference)

        with pytest.raises(AlreadyVerifiedError):
            await services.payments.verify_payment(principal_for(admin), submission.reference)

    @pytest.mark.asyncio
    async def test_concurrent_verifications_complete_once(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        submission = await services.payments.submit_proof(principal_for(participant), WHATSAPP_PROOF)

        results = await asyncio.gather(
            *(services.payments.verify_payment(principal_for(admin), submission.reference) for _ in range(5)),
            return_exceptions=True,
        )

        completed = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, AlreadyVerifiedError)]
        assert len(completed) == 1
        assert len(rejected) == 4

    @pytest.mark.asyncio
    async def test_unknown_reference(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)

        with pytest.raises(ReferenceNotFoundError):
            await services.payments.verify_payment(principal_for(admin), "NAPPS-2025-NOPE-0000")

    @pytest.mark.asyncio
    async def test_participant_cannot_verify(self, services, make_profile, principal_for) -> None:
        participant = await make_profile()
        submission = await services.payments.submit_proof(principal_for(participant), WHATSAPP_PROOF)

        with pytest.raises(ForbiddenError):
            await services.payments.verify_payment(principal_for(participant), submission.reference)

    @pytest.mark.asyncio
    async def test_no_transition_out_of_completed(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        principal = principal_for(participant)
        submission = await services.payments.submit_proof(principal, WHATSAPP_PROOF)
        await services.payments.verify_payment(principal_for(admin), submission.reference)

        with pytest.raises(AlreadyCompletedError):
            await services.payments.submit_proof(principal, WHATSAPP_PROOF)
        with pytest.raises(AlreadyCompletedError):
            await services.payments.reject_payment(principal_for(admin), submission.reference)


class TestRejectPayment:

    @pytest.mark.asyncio
    async def test_returns_to_pending_and_clears_proof(
        self, services, make_profile, principal_for, session_factory, s3_client
    ) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        submission = await services.payments.upload_and_submit_proof(
            principal_for(participant), b"\x89PNG", "image/png"
        )

        summary = await services.payments.reject_payment(
            principal_for(admin), submission.reference, reason="Blurry receipt"
        )

        assert summary.status == PENDING
        assert summary.proof is None
        stored = await _status(session_factory, participant.id)
        assert stored.payment_reference == submission.reference
        s3_client.delete_object.assert_called_once()

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_block_rejection(
        self, services, make_profile, principal_for, session_factory, s3_client
    ) -> None:
        from botocore.exceptions import ClientError

        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        submission = await services.payments.upload_and_submit_proof(
            principal_for(participant), b"\x89PNG", "image/png"
        )
        s3_client.delete_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "DeleteObject"
        )

        summary = await services.payments.reject_payment(principal_for(admin), submission.reference)

        assert summary.status == PENDING
        assert summary.proof is None
        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == PENDING
        assert stored.payment_proof is None
        s3_client.delete_object.assert_called_once()

    @pytest.mark.asyncio
    async def test_only_submitted_proofs_can_be_rejected(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        init = await services.payments.initialize_payment(principal_for(participant))

        with pytest.raises(InvalidPaymentStatus):
            await services.payments.reject_payment(principal_for(admin), init.reference)


class TestGatewayConfirmation:

    @pytest.mark.asyncio
    async def test_successful_gateway_payment_completes(
        self, services, make_profile, principal_for, stub_gateway, session_factory
    ) -> None:
        participant = await make_profile()
        principal = principal_for(participant)
        init = await services.payments.initialize_payment(principal)
        stub_gateway.result = GatewayVerification(status="success", reference="", amount=20000)

        result = await services.payments.confirm_gateway_payment(principal, init.reference)

        assert result.verified
        assert result.status == COMPLETED
        assert stub_gateway.calls == [init.reference]
        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == COMPLETED

    @pytest.mark.asyncio
    async def test_failed_gateway_payment_changes_nothing(
        self, services, make_profile, principal_for, stub_gateway, session_factory
    ) -> None:
        participant = await make_profile()
        principal = principal_for(participant)
        init = await services.payments.initialize_payment(principal)
        stub_gateway.result = GatewayVerification(status="abandoned", reference="")

        with pytest.raises(PaymentError):
            await services.payments.confirm_gateway_payment(principal, init.reference)

        stored = await _status(session_factory, participant.id)
        assert stored.payment_status == PENDING

    @pytest.mark.asyncio
    async def test_underpayment_is_refused(self, services, make_profile, principal_for, stub_gateway) -> None:
        participant = await make_profile()
        principal = principal_for(participant)
        init = await services.payments.initialize_payment(principal)
        stub_gateway.result = GatewayVerification(status="success", reference="", amount=5000)

        with pytest.raises(PaymentError):
            await services.payments.confirm_gateway_payment(principal, init.reference)

    @pytest.mark.asyncio
    async def test_already_completed_skips_gateway(
        self, services, make_profile, principal_for, stub_gateway
    ) -> None:
        participant = await make_profile(
            payment_status=COMPLETED, payment_reference="NAPPS-2025-DONE-0003"
        )

        result = await services.payments.confirm_gateway_payment(
            principal_for(participant), "NAPPS-2025-DONE-0003"
        )

        assert result.status == COMPLETED
        assert result.message == "Payment already verified"
        assert stub_gateway.calls == []

    @pytest.mark.asyncio
    async def test_cannot_confirm_someone_elses_reference(self, services, make_profile, principal_for) -> None:
        owner = await make_profile()
        intruder = await make_profile()
        init = await services.payments.initialize_payment(principal_for(owner))

        with pytest.raises(ForbiddenError):
            await services.payments.confirm_gateway_payment(principal_for(intruder), init.reference)


class TestPaymentQueries:

    @pytest.mark.asyncio
    async def test_pending_list_contains_submitted_proofs_only(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        submitted = await make_profile(full_name="Submitted")
        initialized = await make_profile(full_name="Initialized")
        await services.payments.submit_proof(principal_for(submitted), WHATSAPP_PROOF)
        await services.payments.initialize_payment(principal_for(initialized))

        pending = await services.payments.list_pending_payments(principal_for(admin))

        assert [p.profile_id for p in pending] == [submitted.id]

    @pytest.mark.asyncio
    async def test_summary_defaults_amount_before_initialization(self, services, make_profile, principal_for) -> None:
        participant = await make_profile()

        summary = await services.payments.get_payment_summary(principal_for(participant))

        assert summary.status == NOT_REGISTERED
        assert summary.amount == 20000
        assert summary.reference is None


class TestRevalidationSignal:

    @pytest.mark.asyncio
    async def test_committed_changes_signal_payment_pages(self, services, make_profile, principal_for, mocker) -> None:
        from app.services.revalidation_service import PAYMENT_PATHS

        notify = mocker.patch.object(services.revalidation, "notify")
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()
        submission = await services.payments.submit_proof(principal_for(participant), WHATSAPP_PROOF)
        await services.payments.verify_payment(principal_for(admin), submission.reference)

        assert notify.call_count == 2
        notify.assert_called_with(PAYMENT_PATHS)

    @pytest.mark.asyncio
    async def test_failed_transition_does_not_signal(self, services, make_profile, principal_for, mocker) -> None:
        notify = mocker.patch.object(services.revalidation, "notify")
        admin = await make_profile(role=Role.ADMIN)

        with pytest.raises(ReferenceNotFoundError):
            await services.payments.verify_payment(principal_for(admin), "NAPPS-2025-NOPE-0001")

        notify.assert_not_called()
