import django_filters
from django.db.models import Q, Exists, OuterRef
from .models import OrderGroup, Order


class OrderGroupFilter(django_filters.FilterSet):
    """Filters for the order group list"""

    STATUS_ALL = 'all'
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_ALL, 'All'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    status = django_filters.ChoiceFilter(choices=STATUS_CHOICES, method='filter_status', label='Status')
    search = django_filters.CharFilter(method='filter_search', label='Search')
    created_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = OrderGroup
        fields = ['status', 'search', 'created_from', 'created_to']

    def filter_status(self, queryset, name, value):
        """
        active: the group has at least one order that is not done
        completed: the group has orders and every one of them is done
        """
        if not value or value == self.STATUS_ALL:
            return queryset

        undone = Order.objects.filter(group=OuterRef('pk'), done=False)
        if value == self.STATUS_ACTIVE:
            return queryset.filter(Exists(undone))

        any_order = Order.objects.filter(group=OuterRef('pk'))
        return queryset.filter(Exists(any_order)).exclude(Exists(undone))

    def filter_search(self, queryset, name, value):
        """Match the group name or any of its orders' customer/phrase"""
        value = (value or '').strip()
        if not value:
            return queryset
        matching_orders = Order.objects.filter(group=OuterRef('pk')).filter(
            Q(customer_name__icontains=value) | Q(phrase__icontains=value)
        )
        return queryset.filter(Q(name__icontains=value) | Exists(matching_orders))


class OrderFilter(django_filters.FilterSet):
    """Filters for the flat order list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    delivery_from = django_filters.DateFilter(field_name='date_delivery', lookup_expr='gte')
    delivery_to = django_filters.DateFilter(field_name='date_delivery', lookup_expr='lte')

    class Meta:
        model = Order
        fields = ['group', 'status', 'keychain_type', 'delivery_type', 'accepted', 'done',
                  'search', 'delivery_from', 'delivery_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(customer_name__icontains=value) |
            Q(phrase__icontains=value) |
            Q(order_source__icontains=value)
        )
