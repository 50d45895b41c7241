"""Payment service.

Moves a profile's ``payment_status`` through the payment state machine.
Every write runs in one ledger transaction against the locked profile row;
completion additionally uses a conditional UPDATE so two concurrent
verifications can never both succeed.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyCompletedError,
    AlreadyVerifiedError,
    DuplicateReferenceError,
    ForbiddenError,
    InvalidPaymentStatus,
    PaymentError,
    ProfileNotFoundError,
    ReferenceNotFoundError,
)
from app.core.permissions import Capability, Principal, authorize, authorize_self_or_admin
from app.domain.payment_state import (
    COMPLETED,
    PENDING,
    PROOF_SUBMITTED,
    assert_payment_transition,
)
from app.models.profile import Profile
from app.services.config_service import ConfigService
from app.services.gateway_service import GatewayService
from app.services.ledger_store import LedgerStore
from app.services.profile_service import lock_profile
from app.services.revalidation_service import PAYMENT_PATHS, RevalidationService
from app.services.storage_service import WHATSAPP_PROOF, StorageService
from app.utils.reference import generate_payment_reference
from app.utils.validators import validate_proof_upload

logger = logging.getLogger(__name__)

MAX_REFERENCE_ATTEMPTS = 3


@dataclass
class PaymentSummary:
    profile_id: uuid.UUID
    full_name: str
    email: str
    status: str
    amount: int
    reference: str | None
    proof: str | None
    payment_date: datetime | None
    completed_at: datetime | None


@dataclass
class PaymentInitialization:
    reference: str
    amount: int
    status: str


@dataclass
class ProofSubmission:
    reference: str
    proof: str
    previous_proof: str | None
    status: str = PROOF_SUBMITTED


@dataclass
class GatewayConfirmation:
    verified: bool
    reference: str
    status: str
    message: str


def _summary(profile: Profile, default_amount: int) -> PaymentSummary:
    return PaymentSummary(
        profile_id=profile.id,
        full_name=profile.full_name,
        email=profile.email,
        status=profile.payment_status,
        amount=profile.payment_amount or default_amount,
        reference=profile.payment_reference,
        proof=profile.payment_proof,
        payment_date=profile.payment_date,
        completed_at=profile.payment_completed_at,
    )


class PaymentService:
    """Payment state machine operations."""

    def __init__(
        self,
        ledger: LedgerStore,
        config: ConfigService,
        gateway: GatewayService,
        storage: StorageService,
        revalidation: RevalidationService,
        reference_prefix: str = "NAPPS",
    ) -> None:
        self.ledger = ledger
        self.config = config
        self.gateway = gateway
        self.storage = storage
        self.revalidation = revalidation
        self.reference_prefix = reference_prefix

    def _new_reference(self) -> str:
        return generate_payment_reference(self.reference_prefix)

    async def _with_reference_retry(self, fn):
        """Run a transaction that may mint a reference, retrying on collision."""
        for attempt in range(1, MAX_REFERENCE_ATTEMPTS + 1):
            try:
                return await self.ledger.run_in_transaction(fn)
            except DuplicateReferenceError:
                if attempt == MAX_REFERENCE_ATTEMPTS:
                    raise
                logger.warning(f"Payment reference collision, retrying (attempt {attempt})")

    async def initialize_payment(
        self,
        principal: Principal | None,
        profile_id: uuid.UUID | None = None,
        amount: int | None = None,
    ) -> PaymentInitialization:
        """Assign a payment reference and move the profile to ``pending``.

        Idempotent: a profile that already has a reference gets it back.

        Raises:
            AlreadyCompletedError: Payment already completed
            ProfileNotFoundError: Unknown profile
        """
        subject_id = authorize_self_or_admin(
            principal, profile_id, Capability.MANAGE_OWN_PAYMENT, Capability.VERIFY_PAYMENT
        )
        if amount is None:
            amount = await self.config.get_registration_amount()

        async def _initialize(session: AsyncSession) -> PaymentInitialization:
            profile = await lock_profile(session, Profile.id == subject_id)
            if profile is None:
                raise ProfileNotFoundError(str(subject_id))
            if profile.payment_status == COMPLETED:
                raise AlreadyCompletedError()

            if profile.payment_status == PROOF_SUBMITTED:
                # Proof is awaiting review; only an admin rejection may move it back
                if profile.payment_reference is None:
                    profile.payment_reference = self._new_reference()
                    await session.flush()
                return PaymentInitialization(
                    reference=profile.payment_reference,
                    amount=profile.payment_amount or amount,
                    status=profile.payment_status,
                )

            assert_payment_transition(profile.payment_status, PENDING)
            if profile.payment_reference is None:
                profile.payment_reference = self._new_reference()
            profile.payment_status = PENDING
            profile.payment_proof = None
            profile.payment_amount = amount
            await session.flush()
            return PaymentInitialization(
                reference=profile.payment_reference, amount=amount, status=PENDING
            )

        result = await self._with_reference_retry(_initialize)
        logger.info(f"Payment initialized for {subject_id}: {result.reference} status={result.status}")
        self.revalidation.notify(PAYMENT_PATHS)
        return result

    async def submit_proof(
        self,
        principal: Principal | None,
        proof_locator: str,
        profile_id: uuid.UUID | None = None,
    ) -> ProofSubmission:
        """Record a payment proof and move the profile to ``proof_submitted``.

        Returns the previous proof locator so the caller can discard a
        replaced artifact after commit.
        """
        subject_id = authorize_self_or_admin(
            principal, profile_id, Capability.MANAGE_OWN_PAYMENT, Capability.VERIFY_PAYMENT
        )
        default_amount = await self.config.get_registration_amount()

        async def _submit(session: AsyncSession) -> ProofSubmission:
            profile = await lock_profile(session, Profile.id == subject_id)
            if profile is None:
                raise ProfileNotFoundError(str(subject_id))
            assert_payment_transition(profile.payment_status, PROOF_SUBMITTED)

            previous = profile.payment_proof
            if profile.payment_reference is None:
                profile.payment_reference = self._new_reference()
            if profile.payment_amount is None:
                profile.payment_amount = default_amount
            profile.payment_proof = proof_locator
            profile.payment_date = datetime.now(UTC)
            profile.payment_status = PROOF_SUBMITTED
            await session.flush()
            return ProofSubmission(
                reference=profile.payment_reference,
                proof=proof_locator,
                previous_proof=previous,
            )

        result = await self._with_reference_retry(_submit)
        logger.info(f"Payment proof submitted for {subject_id}: {result.reference}")
        self.revalidation.notify(PAYMENT_PATHS)
        return result

    async def upload_and_submit_proof(
        self,
        principal: Principal | None,
        content: bytes,
        content_type: str | None,
        profile_id: uuid.UUID | None = None,
    ) -> ProofSubmission:
        """Store an uploaded proof file, then submit it.

        The upload happens first; if submission fails the new object is
        deleted best-effort. A replaced proof is deleted after commit.
        """
        subject_id = authorize_self_or_admin(
            principal, profile_id, Capability.MANAGE_OWN_PAYMENT, Capability.VERIFY_PAYMENT
        )
        extension = validate_proof_upload(content_type, len(content))
        url = await self.storage.upload(
            content, self.storage.proof_path(subject_id, extension), content_type
        )

        try:
            result = await self.submit_proof(principal, url, profile_id=subject_id)
        except Exception:
            await self._discard_proof(url)
            raise

        if result.previous_proof and result.previous_proof != url:
            await self._discard_proof(result.previous_proof)
        return result

    async def verify_payment(self, principal: Principal | None, reference: str) -> PaymentSummary:
        """Admin confirmation of a payment.

        Raises:
            ReferenceNotFoundError: Unknown reference
            AlreadyVerifiedError: Payment already completed (including by a
                concurrent verification)
        """
        authorize(principal, Capability.VERIFY_PAYMENT)
        default_amount = await self.config.get_registration_amount()

        profile = await self.ledger.run_in_transaction(
            lambda session: self._complete(session, reference)
        )
        logger.info(f"Payment {reference} verified by {principal.id}")
        self.revalidation.notify(PAYMENT_PATHS)
        return _summary(profile, default_amount)

    async def reject_payment(
        self,
        principal: Principal | None,
        reference: str,
        reason: str | None = None,
    ) -> PaymentSummary:
        """Send a submitted proof back: proof_submitted → pending, proof cleared."""
        authorize(principal, Capability.REJECT_PAYMENT)
        default_amount = await self.config.get_registration_amount()

        async def _reject(session: AsyncSession) -> tuple[Profile, str | None]:
            profile = await lock_profile(session, Profile.payment_reference == reference)
            if profile is None:
                raise ReferenceNotFoundError(reference)
            if profile.payment_status == COMPLETED:
                raise AlreadyCompletedError()
            if profile.payment_status != PROOF_SUBMITTED:
                raise InvalidPaymentStatus(
                    f"Cannot reject a payment in '{profile.payment_status}' status"
                )
            assert_payment_transition(profile.payment_status, PENDING, rejection=True)

            previous = profile.payment_proof
            result = await session.execute(
                update(Profile)
                .where(Profile.id == profile.id, Profile.payment_status == PROOF_SUBMITTED)
                .values(payment_status=PENDING, payment_proof=None, payment_date=None)
            )
            if result.rowcount == 0:
                raise InvalidPaymentStatus("Payment status changed during rejection")
            await session.refresh(profile)
            return profile, previous

        profile, previous = await self.ledger.run_in_transaction(_reject)
        logger.info(
            f"Payment {reference} rejected by {principal.id}"
            + (f": {reason}" if reason else "")
        )
        await self._discard_proof(previous)
        self.revalidation.notify(PAYMENT_PATHS)
        return _summary(profile, default_amount)

    async def confirm_gateway_payment(
        self, principal: Principal | None, reference: str
    ) -> GatewayConfirmation:
        """Participant callback after paying through the gateway.

        The gateway is asked first; local state only changes once it reports
        a successful payment of at least the expected amount.
        """
        authorize(principal, Capability.MANAGE_OWN_PAYMENT)

        rows = await self.ledger.run_query(
            select(Profile.id, Profile.payment_status, Profile.payment_amount).where(
                Profile.payment_reference == reference
            )
        )
        if not rows:
            raise ReferenceNotFoundError(reference)
        row = rows[0]
        if row["id"] != principal.id and not principal.is_admin:
            raise ForbiddenError("You can only confirm your own payment")
        if row["payment_status"] == COMPLETED:
            return GatewayConfirmation(
                verified=True, reference=reference, status=COMPLETED,
                message="Payment already verified",
            )

        verification = await self.gateway.verify(reference)
        if not verification.succeeded:
            raise PaymentError(f"Payment not successful: {verification.status}")
        expected = row["payment_amount"] or await self.config.get_registration_amount()
        if verification.amount is not None and verification.amount < expected:
            logger.warning(
                f"Gateway amount {verification.amount} below expected {expected} for {reference}"
            )
            raise PaymentError("Paid amount is less than the registration fee")

        try:
            await self.ledger.run_in_transaction(
                lambda session: self._complete(session, reference)
            )
        except AlreadyVerifiedError:
            # Lost a race with another confirmation or an admin verification
            return GatewayConfirmation(
                verified=True, reference=reference, status=COMPLETED,
                message="Payment already verified",
            )

        logger.info(f"Payment {reference} confirmed via {self.gateway.gateway_type.value}")
        self.revalidation.notify(PAYMENT_PATHS)
        return GatewayConfirmation(
            verified=True, reference=reference, status=COMPLETED,
            message="Payment verified successfully",
        )

    async def get_payment_summary(
        self, principal: Principal | None, profile_id: uuid.UUID | None = None
    ) -> PaymentSummary:
        subject_id = authorize_self_or_admin(
            principal, profile_id, Capability.VIEW_OWN_PROFILE, Capability.VIEW_ALL_PAYMENTS
        )
        rows = await self.ledger.run_query(select(Profile).where(Profile.id == subject_id))
        if not rows:
            raise ProfileNotFoundError(str(subject_id))
        return _summary(rows[0]["Profile"], await self.config.get_registration_amount())

    async def list_pending_payments(self, principal: Principal | None) -> list[PaymentSummary]:
        """Profiles awaiting proof review, newest proof first."""
        authorize(principal, Capability.VIEW_ALL_PAYMENTS)
        default_amount = await self.config.get_registration_amount()
        rows = await self.ledger.run_query(
            select(Profile)
            .where(Profile.payment_status == PROOF_SUBMITTED)
            .order_by(Profile.payment_date.desc())
        )
        return [_summary(row["Profile"], default_amount) for row in rows]

    async def _complete(self, session: AsyncSession, reference: str) -> Profile:
        profile = await lock_profile(session, Profile.payment_reference == reference)
        if profile is None:
            raise ReferenceNotFoundError(reference)
        if profile.payment_status == COMPLETED:
            raise AlreadyVerifiedError(reference)
        assert_payment_transition(profile.payment_status, COMPLETED)

        result = await session.execute(
            update(Profile)
            .where(Profile.id == profile.id, Profile.payment_status != COMPLETED)
            .values(payment_status=COMPLETED, payment_completed_at=datetime.now(UTC))
        )
        if result.rowcount == 0:
            raise AlreadyVerifiedError(reference)
        await session.refresh(profile)
        return profile

    async def _discard_proof(self, locator: str | None) -> None:
        if not locator or locator == WHATSAPP_PROOF:
            return
        if not await self.storage.delete(locator):
            logger.warning(f"Stored proof {locator} was not deleted")
