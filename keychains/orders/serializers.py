from django.db import transaction
from rest_framework import serializers

from keychains.core.cache_signals import suspend_cache_signals
from keychains.core.cache_utils import invalidate_order_groups_cache
from .images import ImageProcessingError, compress_data_uri, compress_uploaded_image
from .models import OrderGroup, Order


class OrderSerializer(serializers.ModelSerializer):
    group_name = serializers.CharField(source='group.name', read_only=True)
    image_url = serializers.CharField(required=False, allow_null=True, allow_blank=True, trim_whitespace=True)
    requires_address = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'group', 'group_name', 'date_accepted', 'date_delivery', 'customer_name',
            'order_source', 'phrase', 'keychain_type', 'address', 'delivery_type', 'amount',
            'status', 'accepted', 'done', 'image_url', 'requires_address', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_requires_address(self, obj):
        return obj.requires_address()

    def validate_image_url(self, value):
        if not value:
            return None
        # Edits send the stored photo back unchanged; don't recompress it
        if self.instance is not None and value == self.instance.image_url:
            return value
        try:
            return compress_data_uri(value)
        except ImageProcessingError as e:
            raise serializers.ValidationError(str(e))

    def validate(self, attrs):
        """Address is required for orders that are delivered"""
        instance = self.instance
        delivery_type = attrs.get(
            'delivery_type',
            instance.delivery_type if instance is not None else Order.DELIVERY_TO_DELIVER
        )
        address = attrs.get('address', instance.address if instance is not None else '')
        if delivery_type == Order.DELIVERY_TO_DELIVER and not (address or '').strip():
            raise serializers.ValidationError({
                'address': 'Address is required when the order is delivered.'
            })
        return attrs


class GroupOrderSerializer(OrderSerializer):
    """Order rows written through their group; the group comes from the URL or parent"""

    class Meta(OrderSerializer.Meta):
        read_only_fields = ['group', 'created_at', 'updated_at']


class OrderGroupSerializer(serializers.ModelSerializer):
    orders = GroupOrderSerializer(many=True, read_only=True)
    total_orders = serializers.SerializerMethodField()
    completed_orders = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()
    progress_display = serializers.SerializerMethodField()
    is_active = serializers.SerializerMethodField()
    is_completed = serializers.SerializerMethodField()

    class Meta:
        model = OrderGroup
        fields = [
            'id', 'name', 'created_at', 'updated_at', 'orders',
            'total_orders', 'completed_orders', 'progress', 'progress_display',
            'is_active', 'is_completed'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_total_orders(self, obj):
        return obj.get_total_orders()

    def get_completed_orders(self, obj):
        return obj.get_completed_orders()

    def get_progress(self, obj):
        return obj.get_progress()

    def get_progress_display(self, obj):
        return obj.get_progress_display()

    def get_is_active(self, obj):
        return obj.is_active()

    def get_is_completed(self, obj):
        return obj.is_completed()


class OrderGroupCreateSerializer(OrderGroupSerializer):
    """Creates one group and any number of orders in a single submission"""
    orders = GroupOrderSerializer(many=True, required=False)

    def validate_orders(self, value):
        if not value:
            raise serializers.ValidationError('Add at least one order.')
        return value

    def create(self, validated_data):
        orders_data = validated_data.pop('orders', [])

        # One invalidation for the whole batch instead of one per row
        with suspend_cache_signals():
            with transaction.atomic():
                group = OrderGroup.objects.create(**validated_data)
                for order_data in orders_data:
                    Order.objects.create(group=group, **order_data)

        invalidate_order_groups_cache()
        return group


class OrderToggleSerializer(serializers.Serializer):
    field = serializers.ChoiceField(choices=Order.TOGGLE_FIELDS)
    # None flips the current value
    value = serializers.BooleanField(required=False, allow_null=True, default=None)


class OrderImageSerializer(serializers.Serializer):
    """Accepts a multipart `image` file or an `image_url` data URI"""
    image = serializers.FileField(required=False)
    image_url = serializers.CharField(required=False)

    def validate(self, attrs):
        image = attrs.get('image')
        image_url = attrs.get('image_url')
        if not image and not image_url:
            raise serializers.ValidationError('Provide either an image file or an image_url data URI.')
        if image and image_url:
            raise serializers.ValidationError('Provide only one of image or image_url.')

        try:
            if image:
                compressed = compress_uploaded_image(image)
            else:
                compressed = compress_data_uri(image_url)
        except ImageProcessingError as e:
            raise serializers.ValidationError({'image': str(e)})

        return {'image_url': compressed}
