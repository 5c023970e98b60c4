from django.contrib import admin
from django.utils.html import format_html
from .models import OrderGroup, Order


class OrderInline(admin.TabularInline):
    model = Order
    extra = 0
    fields = ['customer_name', 'phrase', 'keychain_type', 'delivery_type', 'date_delivery', 'amount', 'status', 'accepted', 'done']
    show_change_link = True


@admin.register(OrderGroup)
class OrderGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'order_count', 'completed_count', 'progress_percent', 'created_at']
    search_fields = ['name']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [OrderInline]

    def get_queryset(self, request):
        return super().get_queryset(request).prefetch_related('orders')

    def order_count(self, obj):
        return obj.get_total_orders()
    order_count.short_description = 'Orders'

    def completed_count(self, obj):
        return obj.get_completed_orders()
    completed_count.short_description = 'Done'

    def progress_percent(self, obj):
        return f"{obj.get_progress_display()}%"
    progress_percent.short_description = 'Progress'


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['customer_name', 'group', 'phrase', 'keychain_type', 'delivery_type', 'date_delivery', 'amount', 'status', 'accepted', 'done']
    list_filter = ['status', 'keychain_type', 'delivery_type', 'accepted', 'done', 'date_delivery']
    search_fields = ['customer_name', 'phrase', 'order_source', 'group__name']
    list_select_related = ['group']
    ordering = ['-created_at']
    readonly_fields = ['image_preview', 'created_at', 'updated_at']
    exclude = ['image_url']

    def image_preview(self, obj):
        """Display the stored photo"""
        if not obj.image_url:
            return 'No photo'
        return format_html(
            '<img src="{}" style="max-width: 300px; max-height: 300px; border: 1px solid #ddd; border-radius: 4px;" />',
            obj.image_url,
        )
    image_preview.short_description = 'Photo'
