"""
Test suite for the Orders module
Tests: group/order models, image compression, filters, API endpoints and cache refresh
"""
from io import StringIO
from unittest import mock

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from keychains.core.models import AuditLog
from keychains.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from keychains.orders.filters import OrderGroupFilter
from keychains.orders.images import (
    ImageProcessingError, compress_data_uri, compress_uploaded_image, scaled_dimensions,
)
from keychains.orders.models import OrderGroup, Order


class OrderGroupModelTests(TestCase):
    """Test derived stats and predicates on OrderGroup"""

    def setUp(self):
        self.group = TestDataFactory.create_order_group(name='Week 6-12')

    def test_group_str(self):
        self.assertEqual(str(self.group), 'Week 6-12')

    def test_empty_group_stats(self):
        """An empty group has zero progress and is neither active nor completed"""
        self.assertEqual(self.group.get_total_orders(), 0)
        self.assertEqual(self.group.get_completed_orders(), 0)
        self.assertEqual(self.group.get_progress(), 0.0)
        self.assertFalse(self.group.is_active())
        self.assertFalse(self.group.is_completed())

    def test_progress_counts_done_orders(self):
        TestDataFactory.create_order(group=self.group, done=True)
        TestDataFactory.create_order(group=self.group, done=True)
        TestDataFactory.create_order(group=self.group, done=False)
        self.assertEqual(self.group.get_total_orders(), 3)
        self.assertEqual(self.group.get_completed_orders(), 2)
        self.assertAlmostEqual(self.group.get_progress(), 200 / 3)
        self.assertEqual(self.group.get_progress_display(), 67)

    def test_progress_display_rounds_half_up(self):
        TestDataFactory.create_order(group=self.group, done=True)
        for _ in range(7):
            TestDataFactory.create_order(group=self.group, done=False)
        # 1 of 8 done = 12.5%
        self.assertEqual(self.group.get_progress_display(), 13)

    def test_active_and_completed_predicates(self):
        order = TestDataFactory.create_order(group=self.group, done=False)
        self.assertTrue(self.group.is_active())
        self.assertFalse(self.group.is_completed())

        order.done = True
        order.save()
        self.assertFalse(self.group.is_active())
        self.assertTrue(self.group.is_completed())

    def test_status_and_done_are_independent(self):
        """status='done' does not imply done=True"""
        TestDataFactory.create_order(group=self.group, status='done', done=False)
        self.assertTrue(self.group.is_active())

    def test_delete_group_cascades_to_orders(self):
        TestDataFactory.create_order(group=self.group)
        TestDataFactory.create_order(group=self.group)
        group_id = self.group.id
        self.group.delete()
        self.assertFalse(Order.objects.filter(group_id=group_id).exists())

    def test_groups_ordered_newest_first(self):
        newer = TestDataFactory.create_order_group(name='Newer')
        self.assertEqual(list(OrderGroup.objects.all())[0], newer)


class OrderModelTests(TestCase):
    """Test Order model defaults"""

    def test_requires_address(self):
        order = TestDataFactory.create_order(delivery_type='to deliver')
        self.assertTrue(order.requires_address())
        order.delivery_type = 'comes and takes'
        self.assertFalse(order.requires_address())

    def test_defaults(self):
        group = TestDataFactory.create_order_group()
        order = Order.objects.create(
            group=group,
            date_delivery='2025-02-12',
            customer_name='Anna',
            order_source='Instagram',
            phrase='Hi',
        )
        self.assertEqual(order.keychain_type, 'GH')
        self.assertEqual(order.delivery_type, 'to deliver')
        self.assertEqual(order.status, 'normal')
        self.assertEqual(order.amount, 100)
        self.assertFalse(order.accepted)
        self.assertFalse(order.done)
        self.assertIsNone(order.image_url)
        self.assertIsNotNone(order.date_accepted)

    def test_negative_amount_fails_validation(self):
        order = TestDataFactory.create_order()
        order.amount = -1
        with self.assertRaises(ValidationError):
            order.full_clean()


class ImageCompressionTests(TestCase):
    """Test photo downscaling and JPEG re-encoding"""

    def test_scaled_dimensions_landscape(self):
        self.assertEqual(scaled_dimensions(1600, 1200, 800), (800, 600))

    def test_scaled_dimensions_portrait(self):
        self.assertEqual(scaled_dimensions(600, 1600, 800), (300, 800))

    def test_scaled_dimensions_square(self):
        self.assertEqual(scaled_dimensions(1000, 1000, 800), (800, 800))

    def test_scaled_dimensions_small_image_untouched(self):
        self.assertEqual(scaled_dimensions(500, 300, 800), (500, 300))

    def test_compress_data_uri_downscales_to_jpeg(self):
        result = compress_data_uri(TestDataFactory.make_data_uri(1600, 1200))
        self.assertTrue(result.startswith('data:image/jpeg;base64,'))
        img = TestDataFactory.open_data_uri(result)
        self.assertEqual(img.format, 'JPEG')
        self.assertEqual(img.size, (800, 600))

    def test_compress_flattens_transparency(self):
        result = compress_data_uri(TestDataFactory.make_data_uri(200, 100, mode='RGBA'))
        img = TestDataFactory.open_data_uri(result)
        self.assertEqual(img.mode, 'RGB')
        self.assertEqual(img.size, (200, 100))

    def test_rejects_non_image_mime(self):
        with self.assertRaises(ImageProcessingError):
            compress_data_uri('data:text/plain;base64,aGVsbG8=')

    def test_rejects_plain_string(self):
        with self.assertRaises(ImageProcessingError):
            compress_data_uri('https://example.com/photo.jpg')

    def test_rejects_undecodable_image(self):
        with self.assertRaises(ImageProcessingError):
            compress_data_uri('data:image/png;base64,bm90IGFuIGltYWdl')

    @override_settings(ORDER_IMAGE_MAX_UPLOAD_BYTES=100)
    def test_rejects_oversize_image(self):
        with self.assertRaises(ImageProcessingError):
            compress_data_uri(TestDataFactory.make_data_uri(400, 400, image_format='BMP'))

    def test_compress_uploaded_file(self):
        upload = SimpleUploadedFile(
            'photo.png', TestDataFactory.make_image_bytes(900, 1800), content_type='image/png'
        )
        img = TestDataFactory.open_data_uri(compress_uploaded_image(upload))
        self.assertEqual(img.size, (400, 800))

    @override_settings(ORDER_IMAGE_MAX_PIXELS=10_000)
    def test_rejects_image_over_pixel_limit(self):
        with self.assertRaises(ImageProcessingError):
            compress_data_uri(TestDataFactory.make_data_uri(200, 200))

    def test_rejects_decompression_bomb(self):
        data_uri = TestDataFactory.make_data_uri(200, 200)
        with mock.patch('PIL.Image.MAX_IMAGE_PIXELS', 1_000):
            with self.assertRaises(ImageProcessingError):
                compress_data_uri(data_uri)

    def test_uploaded_non_image_rejected(self):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        with self.assertRaises(ImageProcessingError):
            compress_uploaded_image(upload)


class OrderGroupFilterTests(TestCase):
    """Test the all / active / completed filter"""

    def setUp(self):
        self.completed = TestDataFactory.create_order_group(name='Completed')
        TestDataFactory.create_order(group=self.completed, done=True)
        TestDataFactory.create_order(group=self.completed, done=True)

        self.active = TestDataFactory.create_order_group(name='Active')
        TestDataFactory.create_order(group=self.active, done=True)
        TestDataFactory.create_order(group=self.active, done=False, customer_name='Zarina')

        self.empty = TestDataFactory.create_order_group(name='Empty')

    def _filter(self, **params):
        filterset = OrderGroupFilter(params, queryset=OrderGroup.objects.all())
        self.assertTrue(filterset.is_valid(), filterset.errors)
        return set(filterset.qs)

    def test_all(self):
        self.assertEqual(self._filter(status='all'), {self.completed, self.active, self.empty})

    def test_active(self):
        self.assertEqual(self._filter(status='active'), {self.active})

    def test_completed_excludes_empty_groups(self):
        self.assertEqual(self._filter(status='completed'), {self.completed})

    def test_search_matches_customer(self):
        self.assertEqual(self._filter(search='zarina'), {self.active})

    def test_search_matches_group_name(self):
        self.assertEqual(self._filter(search='empt'), {self.empty})

    def test_invalid_status(self):
        filterset = OrderGroupFilter({'status': 'archived'}, queryset=OrderGroup.objects.all())
        self.assertFalse(filterset.is_valid())


class OrderGroupAPITests(TestCase):
    """Test order group endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_requires_authentication(self):
        response = APIClient().get('/api/v1/order-groups/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_group_with_orders(self):
        data = {
            'name': 'Week 6-12 February',
            'orders': [
                TestDataFactory.order_payload(customer_name='Anna'),
                TestDataFactory.order_payload(
                    customer_name='Boris', delivery_type='comes and takes', address=''
                ),
            ],
        }
        response = self.client.post('/api/v1/order-groups/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Week 6-12 February')
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['completed_orders'], 0)
        self.assertEqual(
            [o['customer_name'] for o in response.data['orders']], ['Anna', 'Boris']
        )
        group = OrderGroup.objects.get(pk=response.data['id'])
        self.assertEqual(group.orders.count(), 2)

    def test_create_group_without_orders(self):
        response = self.client.post('/api/v1/order-groups/', {'name': 'Empty batch'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_orders'], 0)

    def test_create_group_blank_name(self):
        response = self.client.post('/api/v1/order-groups/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_create_group_empty_order_list(self):
        response = self.client.post('/api/v1/order-groups/', {'name': 'Batch', 'orders': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('orders', response.data)

    def test_one_invalid_order_rejects_whole_submission(self):
        data = {
            'name': 'Batch',
            'orders': [
                TestDataFactory.order_payload(),
                TestDataFactory.order_payload(amount=-5),
            ],
        }
        response = self.client.post('/api/v1/order-groups/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('orders', response.data)
        self.assertFalse(OrderGroup.objects.exists())
        self.assertFalse(Order.objects.exists())

    def test_address_required_for_delivery(self):
        data = {
            'name': 'Batch',
            'orders': [TestDataFactory.order_payload(delivery_type='to deliver', address='')],
        }
        response = self.client.post('/api/v1/order-groups/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('address', response.data['orders'][0])

    def test_missing_required_order_fields(self):
        data = {'name': 'Batch', 'orders': [{'customer_name': 'Anna'}]}
        response = self.client.post('/api/v1/order-groups/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        errors = response.data['orders'][0]
        for field in ('date_delivery', 'order_source', 'phrase'):
            self.assertIn(field, errors)

    def test_create_group_compresses_order_photo(self):
        data = {
            'name': 'With photo',
            'orders': [TestDataFactory.order_payload(image_url=TestDataFactory.make_data_uri(2000, 1000))],
        }
        response = self.client.post('/api/v1/order-groups/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        image_url = response.data['orders'][0]['image_url']
        self.assertTrue(image_url.startswith('data:image/jpeg;base64,'))
        self.assertEqual(TestDataFactory.open_data_uri(image_url).size, (800, 400))

    def test_create_group_writes_audit_log(self):
        data = {'name': 'Audited', 'orders': [TestDataFactory.order_payload()]}
        response = self.client.post('/api/v1/order-groups/', data, format='json')
        log = AuditLog.objects.get(model_name='OrderGroup', object_id=str(response.data['id']))
        self.assertEqual(log.action, 'create')
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.changes['orders'], 1)

    def test_create_group_database_error(self):
        with mock.patch.object(OrderGroup.objects, 'create', side_effect=DatabaseError('boom')):
            response = self.client.post('/api/v1/order-groups/', {'name': 'Batch'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn('error', response.data)

    def test_list_groups_with_stats(self):
        group = TestDataFactory.create_order_group(name='Stats')
        TestDataFactory.create_order(group=group, done=True)
        TestDataFactory.create_order(group=group, done=False)

        response = self.client.get('/api/v1/order-groups/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        entry = response.data[0]
        self.assertEqual(entry['total_orders'], 2)
        self.assertEqual(entry['completed_orders'], 1)
        self.assertEqual(entry['progress_display'], 50)
        self.assertTrue(entry['is_active'])
        self.assertFalse(entry['is_completed'])
        self.assertEqual(len(entry['orders']), 2)

    def test_list_status_filter(self):
        done_group = TestDataFactory.create_order_group(name='Done')
        TestDataFactory.create_order(group=done_group, done=True)
        open_group = TestDataFactory.create_order_group(name='Open')
        TestDataFactory.create_order(group=open_group, done=False)

        active = self.client.get('/api/v1/order-groups/?status=active')
        self.assertEqual([g['name'] for g in active.data], ['Open'])

        completed = self.client.get('/api/v1/order-groups/?status=completed')
        self.assertEqual([g['name'] for g in completed.data], ['Done'])

        everything = self.client.get('/api/v1/order-groups/?status=all')
        self.assertEqual(len(everything.data), 2)

    def test_list_invalid_status_filter(self):
        response = self.client.get('/api/v1/order-groups/?status=archived')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_returns_empty_on_database_error(self):
        TestDataFactory.create_order_group()
        with mock.patch('keychains.orders.views.OrderGroupSerializer') as serializer_cls:
            type(serializer_cls.return_value).data = mock.PropertyMock(side_effect=DatabaseError('boom'))
            response = self.client.get('/api/v1/order-groups/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_list_refreshes_after_mutation(self):
        group = TestDataFactory.create_order_group()
        order = TestDataFactory.create_order(group=group, done=False)

        first = self.client.get('/api/v1/order-groups/')
        self.assertEqual(first.data[0]['completed_orders'], 0)

        toggle = self.client.post(f'/api/v1/orders/{order.id}/toggle/', {'field': 'done'}, format='json')
        self.assertEqual(toggle.status_code, status.HTTP_200_OK)

        second = self.client.get('/api/v1/order-groups/')
        self.assertEqual(second.data[0]['completed_orders'], 1)

    def test_group_detail(self):
        group = TestDataFactory.create_order_group(name='Detail')
        TestDataFactory.create_order(group=group)
        response = self.client.get(f'/api/v1/order-groups/{group.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Detail')
        self.assertEqual(len(response.data['orders']), 1)

    def test_group_detail_not_found(self):
        response = self.client.get('/api/v1/order-groups/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_detail_refreshes_after_order_added(self):
        group = TestDataFactory.create_order_group()
        self.assertEqual(self.client.get(f'/api/v1/order-groups/{group.id}/').data['total_orders'], 0)

        response = self.client.post(
            f'/api/v1/order-groups/{group.id}/orders/', TestDataFactory.order_payload(), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.client.get(f'/api/v1/order-groups/{group.id}/').data['total_orders'], 1)

    def test_rename_group(self):
        group = TestDataFactory.create_order_group(name='Old')
        response = self.client.patch(f'/api/v1/order-groups/{group.id}/', {'name': 'New'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'New')
        group.refresh_from_db()
        self.assertEqual(group.name, 'New')

    def test_delete_group_removes_orders(self):
        group = TestDataFactory.create_order_group()
        TestDataFactory.create_order(group=group)
        TestDataFactory.create_order(group=group)
        response = self.client.delete(f'/api/v1/order-groups/{group.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(OrderGroup.objects.filter(pk=group.id).exists())
        self.assertFalse(Order.objects.filter(group_id=group.id).exists())
        log = AuditLog.objects.get(action='delete', model_name='OrderGroup')
        self.assertEqual(log.changes['orders_deleted'], 2)

    def test_add_order_to_group(self):
        group = TestDataFactory.create_order_group()
        response = self.client.post(
            f'/api/v1/order-groups/{group.id}/orders/',
            TestDataFactory.order_payload(customer_name='Dina', amount=1),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['group'], group.id)
        self.assertEqual(response.data['amount'], 1)

    def test_add_order_to_missing_group(self):
        response = self.client.post(
            '/api/v1/order-groups/99999/orders/', TestDataFactory.order_payload(), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_summary(self):
        done_group = TestDataFactory.create_order_group()
        TestDataFactory.create_order(group=done_group, done=True, keychain_type='Square', amount=150)
        open_group = TestDataFactory.create_order_group()
        TestDataFactory.create_order(group=open_group, done=False, status='critical', amount=50)
        TestDataFactory.create_order_group()

        response = self.client.get('/api/v1/order-groups/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_groups'], 3)
        self.assertEqual(response.data['active_groups'], 1)
        self.assertEqual(response.data['completed_groups'], 1)
        self.assertEqual(response.data['empty_groups'], 1)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['completed_orders'], 1)
        self.assertEqual(response.data['critical_orders'], 1)
        self.assertEqual(response.data['total_amount'], 200)
        self.assertEqual(response.data['progress'], 50.0)
        self.assertEqual(response.data['by_keychain_type']['Square'], 1)
        self.assertEqual(response.data['by_keychain_type']['Coupled'], 0)


class OrderAPITests(TestCase):
    """Test order endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.group = TestDataFactory.create_order_group()
        self.order = TestDataFactory.create_order(group=self.group)

    def test_create_order(self):
        data = TestDataFactory.order_payload(group=self.group.id, keychain_type='Coupled')
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['keychain_type'], 'Coupled')
        self.assertEqual(response.data['group_name'], self.group.name)

    def test_create_order_requires_group(self):
        response = self.client.post('/api/v1/orders/', TestDataFactory.order_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('group', response.data)

    def test_create_order_unknown_keychain_type(self):
        data = TestDataFactory.order_payload(group=self.group.id, keychain_type='Round')
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('keychain_type', response.data)

    def test_list_orders_with_filters(self):
        TestDataFactory.create_order(group=self.group, done=True, customer_name='Kamil')
        other_group = TestDataFactory.create_order_group()
        TestDataFactory.create_order(group=other_group)

        response = self.client.get(f'/api/v1/orders/?group={self.group.id}')
        self.assertEqual(len(response.data), 2)

        response = self.client.get(f'/api/v1/orders/?group={self.group.id}&done=true')
        self.assertEqual([o['customer_name'] for o in response.data], ['Kamil'])

        response = self.client.get('/api/v1/orders/?search=kami')
        self.assertEqual(len(response.data), 1)

    def test_get_order(self):
        response = self.client.get(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.order.id)
        self.assertTrue(response.data['requires_address'])

    def test_get_missing_order(self):
        response = self.client.get('/api/v1/orders/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_order(self):
        response = self.client.patch(
            f'/api/v1/orders/{self.order.id}/', {'amount': 250, 'phrase': 'New text'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.amount, 250)
        self.assertEqual(self.order.phrase, 'New text')
        log = AuditLog.objects.get(action='update', model_name='Order')
        self.assertEqual(log.changes, {'amount': 250, 'phrase': 'New text'})

    def test_patch_negative_amount(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'amount': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

    def test_patch_clearing_address_of_delivered_order(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'address': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('address', response.data)

    def test_patch_switch_to_delivery_needs_stored_address(self):
        pickup = TestDataFactory.create_order(group=self.group, delivery_type='comes and takes', address='')
        response = self.client.patch(
            f'/api/v1/orders/{pickup.id}/', {'delivery_type': 'to deliver'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(
            f'/api/v1/orders/{pickup.id}/', {'delivery_type': 'to deliver', 'address': '5 Pine Road'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_patch_status_does_not_touch_done(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'done')
        self.assertFalse(response.data['done'])

    def test_put_keeps_unchanged_photo(self):
        photo = compress_data_uri(TestDataFactory.make_data_uri(300, 300))
        self.order.image_url = photo
        self.order.save()

        payload = self.client.get(f'/api/v1/orders/{self.order.id}/').data
        payload = {key: value for key, value in payload.items() if value is not None}
        payload['customer_name'] = 'Renamed'
        response = self.client.put(f'/api/v1/orders/{self.order.id}/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.image_url, photo)
        self.assertEqual(self.order.customer_name, 'Renamed')

    def test_delete_order(self):
        response = self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.filter(pk=self.order.id).exists())
        self.assertTrue(OrderGroup.objects.filter(pk=self.group.id).exists())

    def test_toggle_flips_value(self):
        url = f'/api/v1/orders/{self.order.id}/toggle/'
        response = self.client.post(url, {'field': 'accepted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['accepted'])

        response = self.client.post(url, {'field': 'accepted'}, format='json')
        self.assertFalse(response.data['accepted'])
        self.assertEqual(AuditLog.objects.filter(action='order_toggle').count(), 2)

    def test_toggle_form_post_without_value_flips(self):
        url = f'/api/v1/orders/{self.order.id}/toggle/'
        response = self.client.post(url, {'field': 'done'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertTrue(self.order.done)

        self.client.post(url, {'field': 'done'}, format='multipart')
        self.order.refresh_from_db()
        self.assertFalse(self.order.done)

    def test_toggle_form_post_explicit_false(self):
        self.order.accepted = True
        self.order.save()
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/toggle/', {'field': 'accepted', 'value': 'false'}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['accepted'])

    def test_toggle_explicit_value(self):
        url = f'/api/v1/orders/{self.order.id}/toggle/'
        response = self.client.post(url, {'field': 'done', 'value': True}, format='json')
        self.assertTrue(response.data['done'])
        response = self.client.post(url, {'field': 'done', 'value': True}, format='json')
        self.assertTrue(response.data['done'])

    def test_toggle_invalid_field(self):
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/toggle/', {'field': 'status'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_toggle_missing_order(self):
        response = self.client.post('/api/v1/orders/99999/toggle/', {'field': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_upload_image_file(self):
        upload = SimpleUploadedFile(
            'photo.png', TestDataFactory.make_image_bytes(1200, 1600), content_type='image/png'
        )
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/image/', {'image': upload}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        img = TestDataFactory.open_data_uri(response.data['image_url'])
        self.assertEqual(img.size, (600, 800))
        self.assertTrue(AuditLog.objects.filter(action='image_set').exists())

    def test_upload_image_data_uri(self):
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/image/',
            {'image_url': TestDataFactory.make_data_uri(100, 50)},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertTrue(self.order.image_url.startswith('data:image/jpeg;base64,'))

    def test_upload_requires_image(self):
        response = self.client.post(f'/api/v1/orders/{self.order.id}/image/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(ORDER_IMAGE_MAX_PIXELS=10_000)
    def test_upload_rejects_image_over_pixel_limit(self):
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/image/',
            {'image_url': TestDataFactory.make_data_uri(200, 200)},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image', response.data)
        self.order.refresh_from_db()
        self.assertIsNone(self.order.image_url)

    def test_upload_rejects_non_image(self):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/image/', {'image': upload}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('image', response.data)

    def test_remove_image(self):
        self.order.image_url = compress_data_uri(TestDataFactory.make_data_uri(50, 50))
        self.order.save()
        response = self.client.delete(f'/api/v1/orders/{self.order.id}/image/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['image_url'])
        self.order.refresh_from_db()
        self.assertIsNone(self.order.image_url)


class ManagementCommandTests(TestCase):
    """Test seed and recompress commands"""

    def test_seed_orders(self):
        call_command('seed_orders', groups=2, orders=3, stdout=StringIO())
        self.assertEqual(OrderGroup.objects.count(), 2)
        self.assertEqual(Order.objects.count(), 6)
        for order in Order.objects.all():
            if order.delivery_type == 'to deliver':
                self.assertTrue(order.address)

    def test_seed_orders_clear(self):
        TestDataFactory.create_order()
        call_command('seed_orders', groups=1, orders=1, clear=True, stdout=StringIO())
        self.assertEqual(OrderGroup.objects.count(), 1)
        self.assertEqual(Order.objects.count(), 1)

    def test_recompress_order_images(self):
        order = TestDataFactory.create_order()
        original = TestDataFactory.make_data_uri(1000, 1000, image_format='BMP')
        Order.objects.filter(pk=order.pk).update(image_url=original)

        call_command('recompress_order_images', dry_run=True, stdout=StringIO())
        order.refresh_from_db()
        self.assertEqual(order.image_url, original)

        call_command('recompress_order_images', stdout=StringIO())
        order.refresh_from_db()
        self.assertTrue(order.image_url.startswith('data:image/jpeg;base64,'))
        self.assertEqual(TestDataFactory.open_data_uri(order.image_url).size, (800, 800))
