from django.urls import path
from .views import (
    order_group_list_create, order_group_summary, order_group_detail, order_group_add_order,
    order_list_create, order_detail, order_toggle, order_image,
)

urlpatterns = [
    # Order group endpoints
    path('order-groups/', order_group_list_create, name='order-group-list-create'),
    path('order-groups/summary/', order_group_summary, name='order-group-summary'),
    path('order-groups/<int:pk>/', order_group_detail, name='order-group-detail'),
    path('order-groups/<int:pk>/orders/', order_group_add_order, name='order-group-add-order'),

    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/toggle/', order_toggle, name='order-toggle'),
    path('orders/<int:pk>/image/', order_image, name='order-image'),
]
