from django.contrib import admin
from .models import (
    UserProfile, EmailSettings, EmailTemplate, InvoiceTemplate,
    Invoice, LineItem, Activity
)


class LineItemInline(admin.TabularInline):
    model = LineItem
    extra = 0
    fields = ('description', 'hours', 'rate', 'quantity', 'unit_price', 'days', 'amount', 'total')


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'company_name', 'bank_name')
    search_fields = ('user__username', 'company_name')


@admin.register(EmailSettings)
class EmailSettingsAdmin(admin.ModelAdmin):
    list_display = ('user', 'email', 'delivery_method', 'smtp_host', 'smtp_port')
    list_filter = ('delivery_method',)
    exclude = ('app_password',)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        'invoice_number', 'client', 'status', 'total_amount', 'is_recurring',
        'recurring_frequency', 'next_recurring_date', 'recurring_count', 'created_at',
    )
    list_filter = ('status', 'is_recurring', 'recurring_frequency', 'item_structure')
    search_fields = ('invoice_number', 'client', 'client_email')
    readonly_fields = ('parent_invoice', 'sent_at', 'pdf_template_sent', 'created_at', 'updated_at')
    inlines = [LineItemInline]


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ('activity_type', 'user', 'text', 'created_at')
    list_filter = ('activity_type',)
    search_fields = ('text',)
    readonly_fields = ('user', 'activity_type', 'text', 'invoice_id', 'metadata', 'created_at')


admin.site.register(EmailTemplate)
admin.site.register(InvoiceTemplate)
