import math

from django.db import models
from django.utils import timezone


def today():
    return timezone.localdate()


class OrderGroup(models.Model):
    """A named batch of keychain orders created together"""
    name = models.CharField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def _order_list(self):
        # Reuse prefetched orders when available
        return list(self.orders.all())

    def get_total_orders(self):
        return len(self._order_list())

    def get_completed_orders(self):
        return sum(1 for order in self._order_list() if order.done)

    def get_progress(self):
        """Percentage of done orders, 0 when the group is empty"""
        total = self.get_total_orders()
        if total == 0:
            return 0.0
        return self.get_completed_orders() / total * 100

    def get_progress_display(self):
        """Progress rounded half up to a whole percent"""
        return int(math.floor(self.get_progress() + 0.5))

    def is_active(self):
        """Active while any order is not done"""
        return any(not order.done for order in self._order_list())

    def is_completed(self):
        """Completed when it has orders and none are left undone"""
        orders = self._order_list()
        return bool(orders) and all(order.done for order in orders)

    class Meta:
        db_table = 'order_groups'
        ordering = ['-created_at', '-id']


class Order(models.Model):
    """A single custom keychain order inside a group"""
    KEYCHAIN_GH = 'GH'
    KEYCHAIN_2G = '2G'
    KEYCHAIN_COUPLED = 'Coupled'
    KEYCHAIN_SQUARE = 'Square'
    KEYCHAIN_TYPE_CHOICES = [
        (KEYCHAIN_GH, 'GH'),
        (KEYCHAIN_2G, '2G'),
        (KEYCHAIN_COUPLED, 'Coupled'),
        (KEYCHAIN_SQUARE, 'Square'),
    ]

    DELIVERY_TO_DELIVER = 'to deliver'
    DELIVERY_PICKUP = 'comes and takes'
    DELIVERY_TYPE_CHOICES = [
        (DELIVERY_TO_DELIVER, 'To deliver'),
        (DELIVERY_PICKUP, 'Comes and takes'),
    ]

    STATUS_CRITICAL = 'critical'
    STATUS_NORMAL = 'normal'
    STATUS_DONE = 'done'
    STATUS_CHOICES = [
        (STATUS_CRITICAL, 'Critical'),
        (STATUS_NORMAL, 'Normal'),
        (STATUS_DONE, 'Done'),
    ]

    # Boolean fields that can be flipped with a single toggle call
    TOGGLE_FIELDS = ('accepted', 'done')

    group = models.ForeignKey(OrderGroup, on_delete=models.CASCADE, related_name='orders')
    date_accepted = models.DateField(default=today)
    date_delivery = models.DateField()
    customer_name = models.CharField(max_length=200)
    order_source = models.CharField(max_length=200, help_text="Where the order came from (Instagram, in person, ...)")
    phrase = models.CharField(max_length=500, help_text="Text engraved on the keychain")
    keychain_type = models.CharField(max_length=20, choices=KEYCHAIN_TYPE_CHOICES, default=KEYCHAIN_GH)
    address = models.TextField(blank=True, default='')
    delivery_type = models.CharField(max_length=20, choices=DELIVERY_TYPE_CHOICES, default=DELIVERY_TO_DELIVER)
    amount = models.PositiveIntegerField(default=100)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NORMAL)
    accepted = models.BooleanField(default=False)
    done = models.BooleanField(default=False)
    image_url = models.TextField(blank=True, null=True, help_text="Compressed photo as a base64 JPEG data URI")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.customer_name} - {self.phrase}"

    def requires_address(self):
        return self.delivery_type == self.DELIVERY_TO_DELIVER

    class Meta:
        db_table = 'orders'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['group', 'done'], name='orders_group_done_idx'),
            models.Index(fields=['status'], name='orders_status_idx'),
            models.Index(fields=['date_delivery'], name='orders_delivery_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gte=0), name='orders_amount_non_negative'),
        ]
