# meatshare/farmer/services/onboarding_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import Farm
from meatshare.farmer.repository.farm_repo import FarmRepository
from meatshare.farmer.services.farm_service import FarmService
from meatshare.integrations.payments.stripe.payment_gateway import (
    AccountReadiness,
    PaymentGateway,
)

logger = logging.getLogger(__name__)


class OnboardingState(str, Enum):
    NO_ACCOUNT = "no-account"
    ACCOUNT_CREATED = "account-created"
    ONBOARDING_INCOMPLETE = "onboarding-incomplete"
    PAYMENTS_READY = "payments-ready"


def derive_onboarding_state(
    farm: Farm, readiness: Optional[AccountReadiness] = None
) -> OnboardingState:
    if not farm.stripe_account_id:
        return OnboardingState.NO_ACCOUNT
    if farm.stripe_onboarding_complete or (readiness and readiness.charges_enabled):
        return OnboardingState.PAYMENTS_READY
    if readiness is None:
        return OnboardingState.ACCOUNT_CREATED
    return OnboardingState.ONBOARDING_INCOMPLETE


@dataclass
class PaymentSetupResult:
    farm_id: str
    account_id: str
    onboarding_url: str
    account_created: bool
    state: OnboardingState


@dataclass
class PaymentStatusResult:
    farm_id: str
    state: OnboardingState
    readiness: Optional[AccountReadiness]
    can_create_shares: bool
    flag_written: bool


class OnboardingService:
    """
    Farmer Stripe Connect onboarding.

    Responsibilities:
      - create the connected account once and persist its id on the farm
      - re-issue onboarding links while charges are not enabled
      - poll readiness and flip stripe_onboarding_complete exactly once

    Policy:
      - the share-creation gate reads the persisted flag, never the client
    """

    def __init__(
        self,
        db: Session,
        *,
        gateway: Optional[PaymentGateway] = None,
        repo: Optional[FarmRepository] = None,
    ) -> None:
        self.db = db
        self.gateway = gateway or PaymentGateway()
        self.repo = repo or FarmRepository(db)
        self.farms = FarmService(db, repo=self.repo)

    # ==================================================
    # Setup
    # ==================================================
    def setup_payments(
        self,
        session: AuthSession,
        *,
        origin_url: str,
        email: Optional[str] = None,
        farm_name: Optional[str] = None,
    ) -> PaymentSetupResult:
        """
        no-account -> account-created, or a fresh onboarding link when the
        account already exists (one connected account per farm).
        """
        farm = self.farms.require_my_farm(session)

        if farm.stripe_account_id:
            link = self.gateway.refresh_onboarding_link(
                account_id=farm.stripe_account_id,
                origin_url=origin_url,
            )
            return PaymentSetupResult(
                farm_id=farm.id,
                account_id=farm.stripe_account_id,
                onboarding_url=link.onboarding_url,
                account_created=False,
                state=derive_onboarding_state(farm),
            )

        result = self.gateway.create_connected_account(
            user_id=session.user_id,
            email=email or session.email,
            farm_name=farm_name or farm.name,
            origin_url=origin_url,
        )
        self.attach_account(farm, result.account_id)
        logger.info("connected account %s attached to farm %s", result.account_id, farm.id)

        return PaymentSetupResult(
            farm_id=farm.id,
            account_id=result.account_id,
            onboarding_url=result.onboarding_url,
            account_created=True,
            state=OnboardingState.ACCOUNT_CREATED,
        )

    def attach_account(self, farm: Farm, account_id: str) -> Farm:
        self.repo.update_fields(farm, stripe_account_id=account_id)
        self.db.commit()
        return farm

    # ==================================================
    # Status polling
    # ==================================================
    def sync_payment_status(self, session: AuthSession) -> PaymentStatusResult:
        farm = self.farms.require_my_farm(session)
        if not farm.stripe_account_id:
            return PaymentStatusResult(
                farm_id=farm.id,
                state=OnboardingState.NO_ACCOUNT,
                readiness=None,
                can_create_shares=False,
                flag_written=False,
            )

        readiness = self.gateway.get_account_readiness(account_id=farm.stripe_account_id)
        flag_written = False
        if readiness.charges_enabled and not farm.stripe_onboarding_complete:
            flag_written = self._mark_ready(farm.id)

        self.db.refresh(farm)
        return PaymentStatusResult(
            farm_id=farm.id,
            state=derive_onboarding_state(farm, readiness),
            readiness=readiness,
            can_create_shares=can_create_shares(farm),
            flag_written=flag_written,
        )

    def handle_account_updated(self, *, account_id: str, charges_enabled: bool) -> bool:
        """
        Webhook path for account.updated; same idempotent flag write.
        The caller owns the transaction.
        """
        if not charges_enabled:
            return False
        farm = self.repo.get_by_stripe_account(account_id)
        if farm is None:
            logger.info("account.updated for unknown account %s", account_id)
            return False
        return self.repo.mark_onboarding_complete(farm.id)

    def _mark_ready(self, farm_id: str) -> bool:
        written = self.repo.mark_onboarding_complete(farm_id)
        self.db.commit()
        if written:
            logger.info("farm %s is now payments-ready", farm_id)
        return written


def can_create_shares(farm: Optional[Farm]) -> bool:
    return farm is not None and farm.payments_ready
