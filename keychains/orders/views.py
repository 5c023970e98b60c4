import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import DatabaseError
from keychains.core.cache_utils import (
    get_cached_order_groups, cache_order_groups,
    get_cached_order_group, cache_order_group,
)
from keychains.core.utils import create_audit_log
from .filters import OrderGroupFilter, OrderFilter
from .models import OrderGroup, Order
from .serializers import (
    OrderSerializer, GroupOrderSerializer, OrderGroupSerializer, OrderGroupCreateSerializer,
    OrderToggleSerializer, OrderImageSerializer,
)
from .summary import get_order_summary

logger = logging.getLogger('keychains.orders')


def _group_queryset():
    return OrderGroup.objects.prefetch_related('orders')


def _audit_changes(validated_data):
    """Validated fields as JSON-safe values, without inline photo payloads"""
    changes = {}
    for field, value in validated_data.items():
        if field == 'image_url':
            changes[field] = 'set' if value else 'removed'
        elif field == 'group':
            changes[field] = value.pk if value is not None else None
        elif field == 'orders':
            changes[field] = len(value)
        else:
            changes[field] = value if isinstance(value, (bool, int, str)) or value is None else str(value)
    return changes


# Order group views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_group_list_create(request):
    """List all order groups with their orders, or create a group (optionally with orders)"""
    try:
        if request.method == 'GET':
            filterset = OrderGroupFilter(request.query_params, queryset=_group_queryset())
            if not filterset.is_valid():
                logger.warning(f"Invalid order group filters: {filterset.errors}")
                return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

            filters_dict = {
                key: value for key, value in request.query_params.items()
                if key in filterset.filters
            }
            cached_data, cache_key = get_cached_order_groups(filters_dict)
            if cached_data is not None:
                logger.debug(f"Cache hit for order group list ({filters_dict})")
                return Response(cached_data)

            try:
                response_data = OrderGroupSerializer(filterset.qs, many=True).data
            except DatabaseError as e:
                # Reads degrade to an empty list instead of failing the page
                logger.error(f"Error fetching order groups: {str(e)}", exc_info=True)
                return Response([])

            cache_order_groups(cache_key, response_data)
            logger.debug(f"Cached order group list ({filters_dict}), returning {len(response_data)} groups")
            return Response(response_data)

        logger.info(f"User {request.user.username} creating order group")
        serializer = OrderGroupCreateSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Order group creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            group = serializer.save()
        except DatabaseError as e:
            logger.error(f"Error creating order group: {str(e)}", exc_info=True)
            return Response({'error': 'Failed to create the order group. Please try again.'},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        create_audit_log(
            request=request,
            action='create',
            model_name='OrderGroup',
            object_id=group.id,
            object_name=group.name,
            changes=_audit_changes(serializer.validated_data),
        )
        group = _group_queryset().get(pk=group.pk)
        logger.info(f"Order group '{group.name}' created with {group.get_total_orders()} orders by {request.user.username}")
        return Response(OrderGroupSerializer(group).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Unexpected error in order_group_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_group_summary(request):
    """Counts and overall progress across all groups"""
    try:
        return Response(get_order_summary())
    except DatabaseError as e:
        logger.error(f"Error computing order summary: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to load order summary'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_group_detail(request, pk):
    """Retrieve, rename or delete an order group"""
    if request.method == 'GET':
        cached_data, cache_key = get_cached_order_group(pk)
        if cached_data is not None:
            return Response(cached_data)

    group = _group_queryset().filter(pk=pk).first()
    if group is None:
        logger.warning(f"Order group {pk} not found")
        return Response({'error': 'Order group not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        if request.method == 'GET':
            response_data = OrderGroupSerializer(group).data
            cache_order_group(cache_key, response_data)
            return Response(response_data)

        if request.method in ('PUT', 'PATCH'):
            partial = request.method == 'PATCH'
            logger.info(f"User {request.user.username} updating order group {pk} with data: {request.data}")
            serializer = OrderGroupSerializer(group, data=request.data, partial=partial)
            if not serializer.is_valid():
                logger.warning(f"Order group update validation failed: {serializer.errors}")
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            group = serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='OrderGroup',
                object_id=group.id,
                object_name=group.name,
                changes=_audit_changes(serializer.validated_data),
            )
            logger.info(f"Order group {pk} updated successfully")
            return Response(OrderGroupSerializer(_group_queryset().get(pk=pk)).data)

        # DELETE removes the group and, through the cascade, all of its orders
        order_count = group.get_total_orders()
        group_name = group.name
        logger.info(f"User {request.user.username} deleting order group {pk} ({group_name}) with {order_count} orders")
        group.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='OrderGroup',
            object_id=pk,
            object_name=group_name,
            changes={'orders_deleted': order_count},
        )
        logger.info(f"Order group {pk} deleted successfully")
        return Response(status=status.HTTP_204_NO_CONTENT)
    except DatabaseError as e:
        logger.error(f"Database error in order_group_detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to save the order group. Please try again.'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_group_add_order(request, pk):
    """Append a new order to an existing group"""
    group = OrderGroup.objects.filter(pk=pk).first()
    if group is None:
        logger.warning(f"Order group {pk} not found")
        return Response({'error': 'Order group not found'}, status=status.HTTP_404_NOT_FOUND)

    serializer = GroupOrderSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Order creation validation failed for group {pk}: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        order = serializer.save(group=group)
    except DatabaseError as e:
        logger.error(f"Error creating order in group {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to create the order. Please try again.'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='create',
        model_name='Order',
        object_id=order.id,
        object_name=order.customer_name,
        changes=_audit_changes(serializer.validated_data),
    )
    logger.info(f"Order {order.id} added to group {pk} by {request.user.username}")
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders with filtering, or create an order for a given group"""
    if request.method == 'GET':
        filterset = OrderFilter(request.query_params, queryset=Order.objects.select_related('group'))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            serializer = OrderSerializer(filterset.qs, many=True)
            return Response(serializer.data)
        except DatabaseError as e:
            logger.error(f"Error fetching orders: {str(e)}", exc_info=True)
            return Response([])

    serializer = OrderSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Order creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        order = serializer.save()
    except DatabaseError as e:
        logger.error(f"Error creating order: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to create the order. Please try again.'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='create',
        model_name='Order',
        object_id=order.id,
        object_name=order.customer_name,
        changes=_audit_changes(serializer.validated_data),
    )
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve, edit or delete a single order"""
    order = Order.objects.select_related('group').filter(pk=pk).first()
    if order is None:
        logger.warning(f"Order {pk} not found")
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        if request.method == 'GET':
            return Response(OrderSerializer(order).data)

        if request.method in ('PUT', 'PATCH'):
            partial = request.method == 'PATCH'
            serializer = OrderSerializer(order, data=request.data, partial=partial)
            if not serializer.is_valid():
                logger.warning(f"Order {pk} update validation failed: {serializer.errors}")
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Order',
                object_id=order.id,
                object_name=order.customer_name,
                changes=_audit_changes(serializer.validated_data),
            )
            logger.info(f"Order {pk} updated by {request.user.username}")
            return Response(serializer.data)

        customer_name = order.customer_name
        group_id = order.group_id
        order.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Order',
            object_id=pk,
            object_name=customer_name,
            changes={'group': group_id},
        )
        logger.info(f"Order {pk} deleted from group {group_id} by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)
    except DatabaseError as e:
        logger.error(f"Database error in order_detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to update the order. Please try again.'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_toggle(request, pk):
    """Flip (or explicitly set) the accepted / done checkbox of an order"""
    order = Order.objects.select_related('group').filter(pk=pk).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)

    serializer = OrderToggleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    field = serializer.validated_data['field']
    new_value = serializer.validated_data.get('value')
    if new_value is None:
        new_value = not getattr(order, field)

    try:
        setattr(order, field, new_value)
        order.save(update_fields=[field, 'updated_at'])
    except DatabaseError as e:
        logger.error(f"Error toggling {field} on order {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to update the order. Please try again.'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='order_toggle',
        model_name='Order',
        object_id=order.id,
        object_name=order.customer_name,
        changes={field: new_value},
    )
    logger.info(f"Order {pk} {field} set to {new_value} by {request.user.username}")
    return Response(OrderSerializer(order).data)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_image(request, pk):
    """Attach a compressed photo to an order, or remove it"""
    order = Order.objects.select_related('group').filter(pk=pk).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'POST':
        serializer = OrderImageSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Order {pk} image rejected: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        order.image_url = serializer.validated_data['image_url']
        action = 'image_set'
    else:
        order.image_url = None
        action = 'image_remove'

    try:
        order.save(update_fields=['image_url', 'updated_at'])
    except DatabaseError as e:
        logger.error(f"Error saving image for order {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to save the image. Please try again.'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action=action,
        model_name='Order',
        object_id=order.id,
        object_name=order.customer_name,
    )
    return Response(OrderSerializer(order).data)
