from django.contrib import admin
from .exceptions import ConflictError, InvalidTransitionError
from .models import Order, Ticket, VerificationRecord
from .store import TicketStore


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    can_delete = False
    fields = ('code', 'status', 'price', 'used_at')
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'payment_id', 'event', 'buyer_email', 'quantity', 'total_price', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('payment_id', 'buyer_email', 'buyer_id')
    readonly_fields = ('payment_id', 'payment_provider', 'event', 'buyer_id', 'buyer_email',
                       'quantity', 'total_price', 'currency', 'status', 'created_at', 'refunded_at')
    inlines = [TicketInline]


@admin.action(description="Отменить выбранные билеты")
def cancel_tickets(modeladmin, request, queryset):
    store = TicketStore()
    cancelled = skipped = 0
    for ticket in queryset:
        try:
            store.transition(ticket.pk, ticket.status, Ticket.Status.CANCELLED)
            cancelled += 1
        except (ConflictError, InvalidTransitionError):
            skipped += 1
    modeladmin.message_user(request, f"Отменено: {cancelled}, пропущено: {skipped}")


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ('code', 'event', 'owner_email', 'status', 'price', 'issued_at', 'used_at')
    list_filter = ('status', 'event')
    search_fields = ('code', 'owner_email', 'owner_id', 'event__title')
    # статус меняется только через переходы автомата
    readonly_fields = ('code', 'order', 'event', 'owner_id', 'owner_email', 'price',
                       'status', 'issued_at', 'used_at', 'reminder_sent_at')
    actions = [cancel_tickets]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(VerificationRecord)
class VerificationRecordAdmin(admin.ModelAdmin):
    list_display = ('code', 'event', 'outcome', 'reason', 'verified_by', 'verified_at')
    list_filter = ('outcome', 'event')
    search_fields = ('code', 'verified_by')

    # журнал только на чтение
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
