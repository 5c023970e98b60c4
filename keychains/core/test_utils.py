"""
Test utilities and factories for creating test data
"""
import base64
import io
import random
import string
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from PIL import Image
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from keychains.orders.models import OrderGroup, Order

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_order_group(name=None):
        """Create a test order group"""
        if not name:
            name = f'Group_{TestDataFactory.random_string(6)}'
        return OrderGroup.objects.create(name=name)

    @staticmethod
    def order_payload(**overrides):
        """Valid request body for a single order"""
        payload = {
            'date_accepted': timezone.localdate().isoformat(),
            'date_delivery': (timezone.localdate() + timedelta(days=3)).isoformat(),
            'customer_name': f'Customer_{TestDataFactory.random_string(6)}',
            'order_source': 'Instagram',
            'phrase': 'Forever yours',
            'keychain_type': 'GH',
            'address': '12 Main Street',
            'delivery_type': 'to deliver',
            'amount': 100,
            'status': 'normal',
            'accepted': False,
            'done': False,
        }
        payload.update(overrides)
        return payload

    @staticmethod
    def create_order(group=None, **overrides):
        """Create a test order"""
        if group is None:
            group = TestDataFactory.create_order_group()
        fields = TestDataFactory.order_payload(**overrides)
        return Order.objects.create(group=group, **fields)

    @staticmethod
    def make_image_bytes(width=1600, height=1200, image_format='PNG', mode='RGB', color=(200, 80, 40)):
        """Render a solid-color image in memory"""
        buffer = io.BytesIO()
        Image.new(mode, (width, height), color).save(buffer, format=image_format)
        return buffer.getvalue()

    @staticmethod
    def make_data_uri(width=1600, height=1200, image_format='PNG', mode='RGB'):
        """Render an image and wrap it in a base64 data URI"""
        raw = TestDataFactory.make_image_bytes(width, height, image_format, mode)
        mime = f'image/{image_format.lower()}'
        return f'data:{mime};base64,{base64.b64encode(raw).decode("ascii")}'

    @staticmethod
    def open_data_uri(data_uri):
        """Decode a data URI back into a PIL image"""
        _, encoded = data_uri.split(',', 1)
        return Image.open(io.BytesIO(base64.b64decode(encoded)))


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
