from django.contrib import admin

from payments.models import Payout


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["id", "organizer", "amount", "currency", "status", "reference", "processed_at", "created_at"]
    list_filter = ["status", "currency"]
    search_fields = ["reference", "transfer_code", "organizer__email"]
    readonly_fields = ["recipient_code", "bank_account", "reference", "transfer_code", "processed_at", "created_at"]
    raw_id_fields = ["organizer"]
