"""Platform statistics, analytics and settings."""

import typing as t
from datetime import date

from ninja_extra import api_controller, route

from accounts.models import Role
from common.authentication import AUTH
from common.controllers import UserAwareController
from common.models import PlatformSettings
from common.permissions import HasRole
from console import schema, service


@api_controller("/console", auth=AUTH, permissions=[HasRole(Role.ADMIN)], tags=["Console"])
class DashboardController(UserAwareController):
    @route.get("/stats", url_name="console_stats", response=schema.PlatformStatsSchema)
    def stats(self) -> dict[str, t.Any]:
        """Users, events, orders, tickets sold and revenue across the platform."""
        return service.platform_stats()

    @route.get("/analytics", url_name="console_analytics", response=schema.PlatformAnalyticsSchema)
    def analytics(self, start: date | None = None, end: date | None = None) -> dict[str, t.Any]:
        """Paid-order analytics for an inclusive date range. Defaults to the last 30 days."""
        return service.platform_analytics(start, end)

    @route.get("/settings", url_name="console_get_settings", response=schema.PlatformSettingsSchema)
    def get_settings(self) -> PlatformSettings:
        return PlatformSettings.get_solo()

    @route.put("/settings", url_name="console_update_settings", response=schema.PlatformSettingsSchema)
    def update_settings(self, payload: schema.PlatformSettingsUpdateSchema) -> PlatformSettings:
        """Update fees, payout rules and e-mail settings. Changes are recorded in the history table."""
        return service.update_settings(self.user(), payload)
