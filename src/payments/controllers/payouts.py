import typing as t
from uuid import UUID

from django.db.models import QuerySet
from django.utils.translation import gettext_lazy as _
from ninja.errors import HttpError
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate

from accounts.models import Role
from accounts.service import account as account_service
from common.authentication import AUTH
from common.controllers import UserAwareController
from common.permissions import HasRole
from common.throttling import WriteThrottle
from payments import schema
from payments.models import Payout, PayoutStatus
from payments.service import payout_service


@api_controller(
    "/organizer/payouts",
    auth=AUTH,
    permissions=[HasRole(Role.ORGANIZER)],
    tags=["Payouts"],
)
class PayoutController(UserAwareController):
    @route.get("/balance", url_name="payout_balance", response=schema.BalanceSchema)
    def balance(self) -> dict[str, t.Any]:
        """Revenue, settled balance available for payout, and fees collected on your orders."""
        return payout_service.calculate_balances(self.user())

    @route.get("/bank-account", url_name="get_bank_account", response={200: schema.BankAccountSchema})
    def get_bank_account(self) -> dict[str, t.Any]:
        profile = account_service.get_organizer_profile(self.user())
        if not profile.recipient_code:
            raise HttpError(404, str(_("No bank account configured.")))
        return dict(profile.payout_details)

    @route.post(
        "/bank-account",
        url_name="setup_bank_account",
        response=schema.BankAccountSchema,
        throttle=WriteThrottle(),
    )
    def setup_bank_account(self, payload: schema.BankAccountSetupSchema) -> dict[str, t.Any]:
        """Register the bank account payouts are sent to."""
        profile = payout_service.setup_bank_account(self.user(), **payload.model_dump())
        return dict(profile.payout_details)

    @route.get("/", url_name="list_payouts", response=PaginatedResponseSchema[schema.PayoutSchema])
    @paginate(PageNumberPaginationExtra, page_size=20)
    def list_payouts(self, status: PayoutStatus | None = None) -> QuerySet[Payout]:
        return payout_service.list_payouts(self.user(), status)

    @route.post("/", url_name="request_payout", response={201: schema.PayoutSchema}, throttle=WriteThrottle())
    def request_payout(self, payload: schema.PayoutRequestSchema) -> tuple[int, Payout]:
        """Withdraw part of your available balance to your bank account.

        The amount must be at least the minimum payout and at most the available balance.
        """
        return 201, payout_service.request_payout(self.user(), payload.amount, payload.recipient_code)

    @route.get("/{payout_id}", url_name="get_payout", response=schema.PayoutSchema)
    def get_payout(self, payout_id: UUID) -> Payout:
        return payout_service.get_payout(self.user(), payout_id)

    @route.post("/{payout_id}/sync", url_name="sync_payout", response=schema.PayoutSchema)
    def sync_payout(self, payout_id: UUID) -> Payout:
        """Refresh the transfer status from Paystack."""
        return payout_service.sync_payout(payout_service.get_payout(self.user(), payout_id))
