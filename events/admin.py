# events/admin.py
from django.contrib import admin
from .models import Event


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('title', 'starts_at', 'location', 'status', 'tickets_sold', 'tickets_available')
    list_filter = ('status', 'starts_at')
    search_fields = ('title', 'location', 'seller_email')
    # продажи и завершение меняют только выпуск билетов и свипер
    readonly_fields = ('tickets_sold', 'completed_at', 'created_at', 'updated_at')
