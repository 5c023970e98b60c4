"""
URL configuration for the keychain orders backend.

All API routes are mounted under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Keychain Orders Admin Panel"
admin.site.site_title = "Keychain Orders Admin Portal"
admin.site.index_title = "Order groups and keychain orders"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('keychains.core.urls')),
    path('api/v1/', include('keychains.orders.urls')),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
